"""
The stage operations that take a `~hespex.dataset.Dataset` from raw files to a
rebinned spectrum and response matrix.

The stages are, in order::

    import_multichannel / import_other -> ignore_channels -> rebin -> rebin_ancillary
                                                                 \\-> build_response_matrix

Each stage mutates the dataset in place and returns its completion flag. A stage
whose preconditions are not met does nothing but log a warning (``verbose=True``)
and, where it makes sense, set its flag to `False` and reset the flags of every later
stage; with ``strict=True`` it raises
`~hespex.exceptions.StateError` instead. Unknown instruments and malformed input
always raise.
"""

import numpy as np
from astropy.table import Table

from hespex import io
from hespex.background import correct_dataset
from hespex.exceptions import ShapeError, StateError
from hespex.instruments import Instrument
from hespex.logging import get_logger
from hespex.masking import apply_mask, build_channel_mask, renumber_channels
from hespex.rebinning import DEFAULT_MIN_SN, find_rebin_schema, group_widths, rebin_groups
from hespex.response import rebin_response_matrix

logger = get_logger(__name__)

__all__ = ["import_multichannel", "import_other", "ignore_channels", "rebin", "rebin_ancillary",
           "build_response_matrix"]


def _soft_fail(dataset, message, verbose=True, strict=False, flag=None):
    """Refuse a stage: raise if `strict`, otherwise warn and record `False` in `flag` (if given)."""
    if strict:
        raise StateError(f"Dataset {dataset.name!r}: {message}")
    if verbose:
        logger.warning(f"Dataset {dataset.name!r}: {message}")
    if flag is not None:
        _refuse(dataset, flag)
    return False


def _refuse(dataset, flag):
    # a refused stage invalidates everything built on its earlier result
    setattr(dataset, flag, False)
    dataset.reset_after(flag)


def _complete(dataset, flag):
    setattr(dataset, flag, True)
    dataset.reset_after(flag)
    logger.debug(f"Dataset {dataset.name!r}: {flag} done.")
    return True


def _column(columns, name, file):
    try:
        return np.asarray(columns[name], dtype=float)
    except KeyError:
        raise ShapeError(f"No {name} column in {file}.") from None


def import_multichannel(dataset, rmf_file=None, arf_file=None, src_file=None, bkg_file=None, verbose=True,
                        strict=False):
    """
    Import the response and spectrum files of a multi-channel instrument.

    The redistribution matrix, channel boundaries, effective area (Swift-XRT and
    SVOM-MXT only) and source (and background) spectra are read, and the input data
    are built with `~hespex.background.correct_dataset`.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            A created Swift-XRT, Swift-BAT or SVOM-MXT dataset.

    rmf_file : `str` or `pathlib.Path`
            The redistribution matrix (.rmf or .rsp).

    arf_file : `str`, `pathlib.Path` or None
            The ancillary response (.arf). Required for Swift-XRT and SVOM-MXT,
            ignored for Swift-BAT.
            Default: None

    src_file : `str` or `pathlib.Path`
            The source spectrum (.pha or .pi): COUNTS for Swift-XRT and SVOM-MXT,
            RATE, STAT_ERR and SYS_ERR for Swift-BAT.

    bkg_file : `str`, `pathlib.Path` or None
            The background spectrum (COUNTS). Without one the background is zero,
            with unit exposure and scaling. Ignored for Swift-BAT.
            Default: None

    verbose : bool
            Log a warning when the import is refused.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the import is refused.
            Default: False

    Returns
    -------
    The ``imported`` flag.

    Examples
    --------
    >>> from hespex import create_dataset, import_multichannel  # doctest: +SKIP
    >>> ds = create_dataset("XRTTest", "Swift-XRT")  # doctest: +SKIP
    >>> import_multichannel(ds, rmf_file="wt.rmf", arf_file="wt.arf",
    ...                     src_file="wtsource.pi", bkg_file="wtback.pi")  # doctest: +SKIP
    True
    """
    if not dataset.check("created", verbose=verbose, strict=strict):
        return False

    instrument = Instrument.from_name(dataset.instrument)
    if not instrument.is_multichannel:
        return _soft_fail(dataset, "not from a multi-channel instrument, use `import_other` instead.",
                          verbose=verbose, strict=strict)

    if rmf_file is None or src_file is None:
        raise ShapeError("A response (rmf_file) and a source spectrum (src_file) are needed.")
    if instrument.uses_effective_area and arf_file is None:
        raise ShapeError(f"{instrument.value} data need an ancillary response (arf_file).")

    energ_lo, energ_hi, matrix, channel_numbers, e_min, e_max = io._read_rmf(rmf_file)
    n_channels = channel_numbers.size
    if matrix.shape[1] != n_channels:
        raise ShapeError(f"Response matrix has {matrix.shape[1]} channels but EBOUNDS has {n_channels}.")

    rmf = Table([energ_lo, energ_hi, matrix], names=["ENERG_LO", "ENERG_HI", "MATRIX"])
    energy = Table([(energ_lo + energ_hi) / 2, energ_hi - energ_lo, energ_lo, energ_hi],
                   names=["E", "dE", "E_MIN", "E_MAX"], units=["keV"] * 4)
    channels = Table([channel_numbers, e_min, e_max, (e_min + e_max) / 2], names=["CHANNEL", "E_MIN", "E_MAX", "E"])

    arf = None
    if instrument.uses_effective_area:
        arf_lo, arf_hi, specresp = io._read_arf(arf_file)
        if specresp.size != len(rmf):
            raise ShapeError(f"The ARF has {specresp.size} energy bins but the RMF has {len(rmf)}.")
        arf = Table([arf_lo, arf_hi, specresp], names=["ENERG_LO", "ENERG_HI", "SPECRESP"])

    src_columns, src_exposure, src_backscal = io._read_pha(src_file)

    dataset.src_counts = dataset.bkg_counts = dataset.bkg_counts_corrected = None
    dataset.src_rate = dataset.src_rate_error = dataset.src_rate_sys_error = None
    if instrument.subtracts_background:
        dataset.src_counts = _column(src_columns, "COUNTS", src_file)
        if bkg_file is not None:
            bkg_columns, bkg_exposure, bkg_backscal = io._read_pha(bkg_file)
            dataset.bkg_counts = _column(bkg_columns, "COUNTS", bkg_file)
        else:
            bkg_exposure, bkg_backscal = 1., 1.
            dataset.bkg_counts = np.zeros_like(dataset.src_counts)
        spectrum = dataset.src_counts
    else:
        dataset.src_rate = _column(src_columns, "RATE", src_file)
        dataset.src_rate_error = _column(src_columns, "STAT_ERR", src_file)
        dataset.src_rate_sys_error = (_column(src_columns, "SYS_ERR", src_file) if "SYS_ERR" in src_columns
                                      else np.zeros_like(dataset.src_rate))
        bkg_exposure, bkg_backscal = 1., 1.
        spectrum = dataset.src_rate

    if spectrum.size != n_channels:
        raise ShapeError(f"The spectrum has {spectrum.size} channels but the response has {n_channels}.")

    dataset.rmf_file, dataset.arf_file, dataset.src_file, dataset.bkg_file = rmf_file, arf_file, src_file, bkg_file
    dataset.rmf, dataset.energy, dataset.channels, dataset.arf = rmf, energy, channels, arf
    dataset.src_exposure, dataset.src_backscal = src_exposure, src_backscal
    dataset.bkg_exposure, dataset.bkg_backscal = bkg_exposure, bkg_backscal

    if not correct_dataset(dataset, verbose=verbose, strict=strict):
        return _soft_fail(dataset, "input data could not be built.", verbose=verbose, strict=strict,
                          flag="imported")

    return _complete(dataset, "imported")


def import_other(dataset, energy, flux, flux_error, bandwidth=1., verbose=True, strict=False):
    """
    Import data already in physical units (e.g., optical photometry).

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            A created "Other" dataset.

    energy : 1d array
            Energy of each data point [keV].

    flux : 1d array
            Photon flux density [ph cm^-2 s^-1 keV^-1], or photon flux
            [ph cm^-2 s^-1] if a `bandwidth` is given.

    flux_error : 1d array
            Uncertainty on `flux`.

    bandwidth : float or 1d array
            Width of the band of each data point [keV]. Only needed when `flux` is a
            photon flux rather than a flux density.
            Default: 1

    verbose : bool
            Log a warning when the import is refused.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the import is refused.
            Default: False

    Returns
    -------
    The ``imported`` flag.

    Examples
    --------
    >>> from hespex import create_dataset, import_other
    >>> ds = create_dataset("UVOT", "Other")
    >>> import_other(ds, [1., 2., 3., 4.], [0.1, 0.2, 0.3, 0.4], [0.01, 0.02, 0.03, 0.04])
    True
    """
    if not dataset.check("created", verbose=verbose, strict=strict):
        return False

    if Instrument.from_name(dataset.instrument) is not Instrument.OTHER:
        return _soft_fail(dataset, "`import_other` can only be used for 'Other' datasets.", verbose=verbose,
                          strict=strict, flag="imported")

    energy, flux, flux_error = (np.atleast_1d(np.asarray(a, dtype=float)) for a in (energy, flux, flux_error))
    if energy.ndim != 1 or not energy.shape == flux.shape == flux_error.shape:
        raise ShapeError(f"Energy {energy.shape}, flux {flux.shape} and flux error {flux_error.shape} "
                         "must be 1d arrays of the same length.")
    bandwidth = np.asarray(bandwidth, dtype=float)
    if bandwidth.ndim > 0 and bandwidth.shape != energy.shape:
        raise ShapeError(f"Bandwidth {bandwidth.shape} must be a scalar or match the energy {energy.shape}.")

    dataset.photon_energy, dataset.photon_flux, dataset.photon_flux_error = energy, flux, flux_error
    dataset.bandwidth = float(bandwidth) if bandwidth.ndim == 0 else bandwidth

    return _complete(dataset, "imported")


def ignore_channels(dataset, channels=(), verbose=True, strict=False):
    """
    Remove channels from the input data, channel table and response matrix.

    The mask is always built from the imported (unmasked) data, so calling this
    again replaces the previous selection and ``channels=()`` restores every
    channel. The kept channels are renumbered from 0.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            An imported multi-channel dataset.

    channels : iterable
            Channels to ignore, numbered from 0, e.g. ``[0, 1, 2, 3]`` or
            ``[range(0, 30), range(1000, 1024)]``. Channels that do not exist are
            skipped.
            Default: ()

    verbose : bool
            Log a warning when the stage is refused.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the stage is refused.
            Default: False

    Returns
    -------
    The ``channels_ignored`` flag.
    """
    if not dataset.check("imported", verbose=verbose, strict=strict, message=f"Dataset {dataset.name!r}: "
                         "data not imported yet."):
        return False

    if not dataset.is_multichannel:
        return _soft_fail(dataset, "data are not from a multi-channel instrument.", verbose=verbose,
                          strict=strict, flag="channels_ignored")

    mask = build_channel_mask(dataset.input_data.size, channels)
    dataset.mask = mask
    dataset.masked_data, dataset.masked_data_error = apply_mask(mask, dataset.input_data, dataset.input_data_error)
    if dataset.instrument.subtracts_background:
        dataset.masked_src_counts, dataset.masked_bkg_counts = apply_mask(mask, dataset.src_counts,
                                                                          dataset.bkg_counts_corrected)
    else:
        dataset.masked_src_counts = dataset.masked_bkg_counts = None
    dataset.masked_channels = renumber_channels(dataset.channels[mask])
    dataset.masked_matrix, = apply_mask(mask, dataset.rmf["MATRIX"], axis=1)

    logger.debug(f"Dataset {dataset.name!r}: kept {mask.sum()} of {mask.size} channels.")
    return _complete(dataset, "channels_ignored")


def rebin(dataset, min_sn=DEFAULT_MIN_SN, verbose=True, strict=False):
    """
    Group the masked channels to a minimum signal-to-noise and average the data over each group.

    The grouping comes from `~hespex.rebinning.find_rebin_schema`. Each group gets the
    mean of its data and the quadrature sum of its errors divided by the number of
    channels. Swift-XRT and SVOM-MXT counts are then divided by the source exposure,
    giving a rate; Swift-BAT data are already rates.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            A dataset that went through `ignore_channels`.

    min_sn : float
            Minimum signal-to-noise per group.
            Default: 5

    verbose : bool
            Log a warning when the stage is refused.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the stage is refused.
            Default: False

    Returns
    -------
    The ``rebinned`` flag.
    """
    if not dataset.check("channels_ignored", verbose=verbose, strict=strict,
                         message=f"Dataset {dataset.name!r}: channels not ignored yet."):
        _refuse(dataset, "rebinned")
        return False

    if dataset.masked_data.size == 0:
        raise ShapeError(f"Dataset {dataset.name!r}: every channel is ignored, nothing to rebin.")

    schema = find_rebin_schema(dataset.masked_data, dataset.masked_data_error, min_sn=min_sn)
    data = rebin_groups(dataset.masked_data, schema, combine_by="mean")
    error = rebin_groups(dataset.masked_data_error, schema, combine_by="quadrature") / group_widths(schema)

    if dataset.instrument.subtracts_background:
        data, error = data / dataset.src_exposure, error / dataset.src_exposure

    dataset.rebin_schema = schema
    dataset.rebinned_data, dataset.rebinned_data_error = data, error
    logger.debug(f"Dataset {dataset.name!r}: {dataset.masked_data.size} channels in {schema.size} groups "
                 f"(min S/N {min_sn}).")
    return _complete(dataset, "rebinned")


def rebin_ancillary(dataset, verbose=True, strict=False):
    """
    Rebin the channel energies and numbers with the dataset's rebin schema.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            A rebinned dataset.

    verbose : bool
            Log a warning when the stage is refused.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the stage is refused.
            Default: False

    Returns
    -------
    The ``ancillary_rebinned`` flag.
    """
    if not dataset.check("rebinned", verbose=verbose, strict=strict,
                         message=f"Dataset {dataset.name!r}: channels not rebinned yet."):
        _refuse(dataset, "ancillary_rebinned")
        return False

    dataset.rebinned_energy = rebin_groups(dataset.masked_channels["E"], dataset.rebin_schema)
    dataset.rebinned_channel = rebin_groups(dataset.masked_channels["CHANNEL"], dataset.rebin_schema)
    return _complete(dataset, "ancillary_rebinned")


def build_response_matrix(dataset, verbose=True, strict=False):
    """
    Rebin the masked response matrix onto the dataset's rebin schema.

    See `~hespex.response.rebin_response_matrix`. The result has shape
    (number of energy bins, number of groups).

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            A dataset that went through `ignore_channels` and `rebin`.

    verbose : bool
            Log a warning when the stage is refused.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the stage is refused.
            Default: False

    Returns
    -------
    The ``response_rebinned`` flag.
    """
    if not dataset.check("channels_ignored", "rebinned", verbose=verbose, strict=strict,
                         message=f"Dataset {dataset.name!r}: data not fully rebinned yet."):
        _refuse(dataset, "response_rebinned")
        return False

    effective_area = dataset.arf["SPECRESP"] if dataset.arf is not None else None
    dataset.response_matrix = rebin_response_matrix(dataset.masked_matrix, dataset.rebin_schema, dataset.instrument,
                                                    effective_area=effective_area)
    return _complete(dataset, "response_rebinned")
