"""
The ``io`` module contains code to read OGIP spectral files (PHA, ARF and RMF).
"""

import numpy as np

from astropy.io import fits

__all__ = ["_read_pha", "_read_arf", "_read_rmf", "_expand_rmf_matrix"]

_COMPRESSION_COLUMNS = ("N_GRP", "F_CHAN", "N_CHAN")


def _column_names(hdu):
    columns = getattr(hdu, "columns", None)
    return [] if columns is None else [name.upper() for name in columns.names]


def _find_hdu(hdul, column):
    """Return the first extension of `hdul` holding a table with `column`."""
    for hdu in hdul[1:]:
        if column in _column_names(hdu):
            return hdu
    raise ValueError(f"No table extension with a {column} column in {hdul.filename()}.")


def _read_pha(file):
    """
    Read a .pha file and extract useful information from it.

    Parameters
    ----------
    file : `str`, `file-like` or `pathlib.Path`
        A .pha file (see `~astropy.fits.io.open` for details).

    Returns
    -------
    `tuple`
        The columns of the spectrum (e.g., 'COUNTS' or 'RATE', 'STAT_ERR', 'SYS_ERR') as a dict
        with upper case keys, the exposure time and the background scaling factor. A missing
        EXPOSURE or BACKSCAL header keyword is taken as 1.
    """
    with fits.open(file) as hdul:
        hdu = hdul[1]
        data = {name.upper(): np.array(hdu.data[name]) for name in hdu.columns.names}
        header = hdu.header

        exposure = float(header.get('EXPOSURE', 1.))
        backscal = float(header.get('BACKSCAL', 1.))

    return data, exposure, backscal


def _read_arf(file):
    """
    Read a .arf file and extract useful information from it.

    Parameters
    ----------
    file :  `str`, `file-like` or `pathlib.Path`
        A .arf file (see `~astropy.fits.io.open` for details ).

    Returns
    -------
    `tuple`
        The low and high boundary of energy bins, and the ancillary response [cm^2] (data['specresp']).
    """
    with fits.open(file) as hdul:
        data = hdul[1].data
        energ_lo = np.array(data['energ_lo'], dtype=float)
        energ_hi = np.array(data['energ_hi'], dtype=float)
        specresp = np.array(data['specresp'], dtype=float)

    return energ_lo, energ_hi, specresp


def _read_rmf(file):
    """
    Read a .rmf file and extract useful information from it.

    The redistribution matrix and the channel boundaries are found by their columns
    (MATRIX and E_MIN) rather than by extension number, since Swift-XRT files store
    EBOUNDS first and Swift-BAT files store it last. Compressed rows (N_GRP, F_CHAN,
    N_CHAN) are expanded to one entry per channel.

    Parameters
    ----------
    file :  `str`, `file-like` or `pathlib.Path`
        A .rmf file (see `~astropy.fits.io.open` for details).

    Returns
    -------
    `tuple`
        The low and high boundary of energy bins (data['energ_lo'], data['energ_hi']), the dense
        redistribution matrix [counts per photon] with energy rows and channel columns, and the
        channel numbers with their low and high energy boundaries (ebounds['channel'],
        ebounds['e_min'], ebounds['e_max']).
    """
    with fits.open(file) as hdul:
        ebounds = _find_hdu(hdul, 'E_MIN').data
        channels = np.array(ebounds['channel'], dtype=int)
        e_min = np.array(ebounds['e_min'], dtype=float)
        e_max = np.array(ebounds['e_max'], dtype=float)

        matrix_hdu = _find_hdu(hdul, 'MATRIX')
        data = matrix_hdu.data
        energ_lo = np.array(data['energ_lo'], dtype=float)
        energ_hi = np.array(data['energ_hi'], dtype=float)

        names = _column_names(matrix_hdu)
        if all(c in names for c in _COMPRESSION_COLUMNS):
            # F_CHAN counts from TLMIN (0 or 1 depending on the mission)
            default_first = channels[0] if channels.size else 0
            first_channel = int(matrix_hdu.header.get(f"TLMIN{names.index('F_CHAN') + 1}", default_first))
            matrix = _expand_rmf_matrix(data['matrix'], data['n_grp'], data['f_chan'], data['n_chan'],
                                        n_channels=channels.size, first_channel=first_channel)
        else:
            matrix = np.array([np.atleast_1d(row) for row in data['matrix']], dtype=float)

    return energ_lo, energ_hi, matrix, channels, e_min, e_max


def _expand_rmf_matrix(matrix, n_grp, f_chan, n_chan, n_channels, first_channel=0):
    """ Takes the compressed redistribution rows of a .rmf file and returns the dense matrix.

    Parameters
    ----------
    matrix : list-like of 1d arrays
            The non-zero redistribution values of each energy row, concatenated over the
            row's channel subsets.

    n_grp : 1d array
            The number of channel subsets in each energy row.

    f_chan, n_chan : list-like of 1d arrays
            The first channel and the number of channels of each subset.

    n_channels : int
            The total number of detector channels.

    first_channel : int
            The channel number of the first detector channel (the TLMIN of F_CHAN).
            Default: 0

    Returns
    -------
    A 2D numpy array with dimensions of energy in the rows and channels in the columns.

    Example
    -------
    A row with matrix=[a, b, c, d, e], n_grp=2, f_chan=[0, 5], n_chan=[2, 3] becomes
    [a, b, 0, 0, 0, c, d, e, 0, ...].
    """
    dense = np.zeros((len(matrix), n_channels))
    for row, (values, ngrp, fch, nch) in enumerate(zip(matrix, n_grp, f_chan, n_chan)):
        values = np.atleast_1d(values)
        fch, nch = np.atleast_1d(fch), np.atleast_1d(nch)
        start = 0
        for f, n in zip(fch[:int(ngrp)], nch[:int(ngrp)]):
            lo = int(f) - first_channel
            dense[row, lo:lo + int(n)] = values[start:start + int(n)]
            start += int(n)
    return dense
