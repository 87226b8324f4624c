"""
The following code builds the spectral response matrix (SRM) on the rebinned channel grid.

Response matrices here have rows of incident photon energy bins and columns of
detector channels.
"""

import numpy as np

from hespex.exceptions import ShapeError
from hespex.instruments import Instrument
from hespex.rebinning import rebin_groups

__all__ = ["make_srm", "rebin_response_matrix"]


def make_srm(rmf_matrix, arf_array):
    """ Takes rmf and arf and produces the spectral response matrix.

    Each energy row of the redistribution matrix is multiplied by the effective area
    of the same energy bin.

    Parameters
    ----------
    rmf_matrix : numpy 2D array
            Array representing the redistribution matrix (energy rows, channel columns).

    arf_array : numpy 1D array/list
            List representing the ancillary response, one value per energy row.

    Returns
    -------
    An array that is the spectral response (srm).
    """
    rmf_matrix = np.asarray(rmf_matrix, dtype=float)
    arf_array = np.asarray(arf_array, dtype=float)
    if rmf_matrix.ndim != 2 or arf_array.shape != (rmf_matrix.shape[0],):
        raise ShapeError(f"Effective area of shape {arf_array.shape} does not match the "
                         f"{rmf_matrix.shape[0]} energy rows of the redistribution matrix.")

    return arf_array[:, None]*rmf_matrix


def rebin_response_matrix(matrix, schema, instrument, effective_area=None):
    """
    Reduce the channel columns of a (masked) response matrix onto a rebin schema.

    For Swift-XRT and SVOM-MXT the rows are first scaled by the effective area (see
    `make_srm`); the Swift-BAT response is already in the right units and is used as
    it is. Every energy row is then averaged over the channels of each group, the same
    reduction applied to the data.

    Parameters
    ----------
    matrix : 2d array
            Masked redistribution matrix, shape (n_energy, n_channels).

    schema : 1d array of int
            Rebin schema over the masked channels.

    instrument : `~hespex.instruments.Instrument` or str
            The instrument the matrix belongs to.

    effective_area : 1d array or None
            Effective area per energy row. Required for Swift-XRT and SVOM-MXT.
            Default: None

    Returns
    -------
    The rebinned response matrix, shape (n_energy, len(schema)).
    """
    instrument = Instrument.from_name(instrument)
    if not instrument.is_multichannel:
        raise ShapeError(f"{instrument.value} data have no response matrix to rebin.")

    if instrument.uses_effective_area:
        if effective_area is None:
            raise ShapeError(f"{instrument.value} responses need the effective area (ARF).")
        matrix = make_srm(matrix, effective_area)

    return rebin_groups(matrix, schema, combine_by="mean", axis=1)
