"""
Background correction of source spectra.

The net counts use a Gaussian approximation to the combined Poisson variance of the
source and the scaled background, so only Gaussian fit statistics are appropriate
downstream.
"""

import numpy as np

from hespex.exceptions import ShapeError, StateError, UnsupportedInstrumentError
from hespex.instruments import Instrument
from hespex.logging import get_logger

logger = get_logger(__name__)

__all__ = ["subtract_background", "correct_dataset"]


def subtract_background(src_counts, bkg_counts=None, src_exposure=1., bkg_exposure=1., src_backscal=1.,
                        bkg_backscal=1.):
    """
    Subtract a background spectrum scaled to the source region and exposure.

    .. math::
        B_{corr} = B \\frac{BACKSCAL_{src}}{BACKSCAL_{bkg}} \\frac{EXPOSURE_{src}}{EXPOSURE_{bkg}}

        N = S - B_{corr}, \\quad \\sigma_{N} = \\sqrt{S + B_{corr}}

    Parameters
    ----------
    src_counts : 1d array
            Source counts per channel.

    bkg_counts : 1d array or None
            Background counts per channel. None means no background, which leaves the
            source untouched.
            Default: None

    src_exposure, bkg_exposure : float
            Exposure times (s) of the source and background spectra.
            Default: 1

    src_backscal, bkg_backscal : float
            Background scaling factors (extraction region size) of the source and
            background spectra.
            Default: 1

    Returns
    -------
    The net counts, their uncertainty, and the scaled background counts (net, net_error, corrected_bkg).
    """
    src_counts = np.asarray(src_counts, dtype=float)
    if bkg_counts is None:
        bkg_counts = np.zeros_like(src_counts)
    bkg_counts = np.asarray(bkg_counts, dtype=float)
    if src_counts.shape != bkg_counts.shape:
        raise ShapeError(f"Source {src_counts.shape} and background {bkg_counts.shape} spectra "
                         "must have the same channels.")

    corrected_bkg = bkg_counts * (src_backscal / bkg_backscal) * (src_exposure / bkg_exposure)
    net = src_counts - corrected_bkg
    net_error = np.sqrt(src_counts + corrected_bkg)
    return net, net_error, corrected_bkg


def correct_dataset(dataset, verbose=True, strict=False):
    """
    Fill the dataset's input data and error from its imported source (and background) spectra.

    Swift-XRT and SVOM-MXT counts are background subtracted with `subtract_background`.
    Swift-BAT spectra are already background subtracted rates, so the rate and its
    statistical error are used directly; the systematic error stays in
    ``src_rate_sys_error``.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            Dataset with the source spectrum loaded.

    verbose : bool
            Log a warning when nothing can be done.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` instead of warning when the dataset
            has not been created.
            Default: False

    Returns
    -------
    `True` if the input data were set, `False` otherwise.
    """
    if not dataset.created:
        message = f"Dataset {dataset.name!r} not created yet."
        if strict:
            raise StateError(message)
        if verbose:
            logger.warning(message)
        return False

    if not isinstance(dataset.instrument, Instrument):
        raise UnsupportedInstrumentError(f"Unknown instrument: {dataset.instrument!r}.")

    if dataset.instrument is Instrument.OTHER:
        if verbose:
            logger.warning(f"Dataset {dataset.name!r} is not from a multi-channel instrument, "
                           "import it with `import_other` instead.")
        return False

    if dataset.instrument.subtracts_background:
        if dataset.src_counts is None:
            raise ShapeError(f"Dataset {dataset.name!r} has no source counts to correct.")
        dataset.backscal_ratio = dataset.src_backscal / dataset.bkg_backscal
        dataset.exposure_ratio = dataset.src_exposure / dataset.bkg_exposure
        net, net_error, corrected_bkg = subtract_background(dataset.src_counts,
                                                            bkg_counts=dataset.bkg_counts,
                                                            src_exposure=dataset.src_exposure,
                                                            bkg_exposure=dataset.bkg_exposure,
                                                            src_backscal=dataset.src_backscal,
                                                            bkg_backscal=dataset.bkg_backscal)
        dataset.bkg_counts_corrected = corrected_bkg
        dataset.input_data, dataset.input_data_error = net, net_error
    else:
        if dataset.src_rate is None:
            raise ShapeError(f"Dataset {dataset.name!r} has no source rate to use.")
        dataset.input_data = np.asarray(dataset.src_rate, dtype=float)
        dataset.input_data_error = np.asarray(dataset.src_rate_error, dtype=float)

    logger.debug(f"Input data set for {dataset.name!r} ({dataset.instrument.value}).")
    return True
