"""
The per-dataset record threaded through the hespex pipeline.
"""

from dataclasses import dataclass, field, fields

import numpy as np
from astropy.table import Table

from hespex.exceptions import StateError
from hespex.instruments import Instrument
from hespex.logging import get_logger

logger = get_logger(__name__)

__all__ = ["Dataset", "create_dataset", "STAGE_FLAGS"]

# completion flags in pipeline order; re-running a stage resets the ones after it
STAGE_FLAGS = ("created", "imported", "channels_ignored", "rebinned", "ancillary_rebinned", "response_rebinned")


def _array():
    return field(default=None, repr=False)


@dataclass
class Dataset:
    """
    One spectrum (or one set of non-channel data points) bound to one instrument.

    The pipeline stages in `hespex.pipeline` fill the fields of a dataset in place.
    Each stage records a completion flag: `None` means the stage has not been run,
    `True` that it succeeded and `False` that it was attempted and refused. Later
    stages only proceed when the flags they depend on are `True`.

    Attributes
    ----------
    name : `str`
            Arbitrary name of the dataset.

    instrument : `~hespex.instruments.Instrument` or str
            The instrument the data were taken with. Names are converted with
            `~hespex.instruments.Instrument.from_name` when the dataset is made.

    created, imported, channels_ignored, rebinned, ancillary_rebinned, response_rebinned : bool or None
            Completion flags of each stage.

    rmf : `~astropy.table.Table`
            Response rows: ENERG_LO, ENERG_HI and the dense MATRIX row.

    energy : `~astropy.table.Table`
            Response row energies: E (bin centre), dE (bin width), E_MIN, E_MAX [keV].

    channels : `~astropy.table.Table`
            Channel metadata: CHANNEL, E_MIN, E_MAX and E (bin centre) [keV].

    arf : `~astropy.table.Table`
            Effective area: ENERG_LO, ENERG_HI, SPECRESP [cm^2].

    input_data, input_data_error : 1d arrays
            Background corrected counts (Swift-XRT, SVOM-MXT) or rate (Swift-BAT) per
            channel and its uncertainty.

    photon_energy, photon_flux, photon_flux_error, bandwidth :
            Data of an "Other" dataset: energy [keV], photon flux density
            [ph cm^-2 s^-1 keV^-1] (or photon flux with its `bandwidth`) and uncertainty.

    mask : 1d bool array
            Channels kept by `~hespex.pipeline.ignore_channels`.

    rebin_schema : 1d int array
            Group end indices over the masked channels.

    response_matrix : 2d array
            Rebinned response, shape (n_energy, len(rebin_schema)).
    """
    name: str
    instrument: Instrument = None

    created: bool = None
    imported: bool = None
    channels_ignored: bool = None
    rebinned: bool = None
    ancillary_rebinned: bool = None
    response_rebinned: bool = None

    # multi-channel import
    rmf_file: str = None
    arf_file: str = None
    src_file: str = None
    bkg_file: str = None
    rmf: Table = _array()
    energy: Table = _array()
    channels: Table = _array()
    arf: Table = _array()
    src_counts: np.ndarray = _array()
    bkg_counts: np.ndarray = _array()
    bkg_counts_corrected: np.ndarray = _array()
    src_rate: np.ndarray = _array()
    src_rate_error: np.ndarray = _array()
    src_rate_sys_error: np.ndarray = _array()
    src_exposure: float = None
    src_backscal: float = None
    bkg_exposure: float = None
    bkg_backscal: float = None
    backscal_ratio: float = None
    exposure_ratio: float = None
    input_data: np.ndarray = _array()
    input_data_error: np.ndarray = _array()

    # "Other" import
    photon_energy: np.ndarray = _array()
    photon_flux: np.ndarray = _array()
    photon_flux_error: np.ndarray = _array()
    bandwidth: float = None

    # channel masking
    mask: np.ndarray = _array()
    masked_data: np.ndarray = _array()
    masked_data_error: np.ndarray = _array()
    masked_src_counts: np.ndarray = _array()
    masked_bkg_counts: np.ndarray = _array()
    masked_channels: Table = _array()
    masked_matrix: np.ndarray = _array()

    # rebinning
    rebin_schema: np.ndarray = _array()
    rebinned_data: np.ndarray = _array()
    rebinned_data_error: np.ndarray = _array()
    rebinned_energy: np.ndarray = _array()
    rebinned_channel: np.ndarray = _array()
    response_matrix: np.ndarray = _array()

    def __post_init__(self):
        if self.instrument is not None:
            self.instrument = Instrument.from_name(self.instrument)

    @property
    def is_multichannel(self):
        """`True` when the dataset holds detector channel data."""
        return isinstance(self.instrument, Instrument) and self.instrument.is_multichannel

    @property
    def flags(self):
        """The completion flags as a dict, in pipeline order."""
        return {flag: getattr(self, flag) for flag in STAGE_FLAGS}

    def reset_after(self, flag):
        """
        Forget the outcome of every stage after `flag`.

        Called when a stage is re-run so that later stages have to be run again
        against the new results.
        """
        for later in STAGE_FLAGS[STAGE_FLAGS.index(flag) + 1:]:
            setattr(self, later, None)

    def check(self, *required, verbose=True, strict=False, message=None):
        """
        Check that every flag in `required` is `True`.

        Parameters
        ----------
        *required : str
                Names of completion flags.

        verbose : bool
                Log a warning if a flag is not set.
                Default: True

        strict : bool
                Raise `~hespex.exceptions.StateError` if a flag is not set.
                Default: False

        message : str or None
                Diagnostic to use instead of the default one.
                Default: None

        Returns
        -------
        `True` if all flags are set, `False` otherwise.
        """
        missing = [flag for flag in required if not getattr(self, flag)]
        if not missing:
            return True

        message = message or f"Dataset {self.name!r}: {', '.join(missing)} not done yet."
        if strict:
            raise StateError(message)
        if verbose:
            logger.warning(message)
        return False

    def summary(self):
        """
        A table of which fields are filled.

        Returns
        -------
        `~astropy.table.Table` with one row per field and its shape (or value for scalars).
        """
        names, descriptions = [], []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            names.append(f.name)
            shape = getattr(value, "shape", None)
            descriptions.append(str(shape) if shape is not None else
                                f"{len(value)} rows" if isinstance(value, Table) else str(value))
        return Table([names, descriptions], names=["field", "value"])


def create_dataset(name, instrument, verbose=True):
    """
    Create a new, empty dataset.

    Parameters
    ----------
    name : str
            Arbitrary name of the dataset.

    instrument : str or `~hespex.instruments.Instrument`
            One of the supported instruments (see `~hespex.instruments.get_known_instruments`),
            case insensitive, e.g. "Swift-XRT" or "Other".

    verbose : bool
            Log the creation at debug level.
            Default: True

    Returns
    -------
    `Dataset` with ``created=True``.

    Raises
    ------
    `~hespex.exceptions.UnsupportedInstrumentError`
            If the instrument is not supported.

    Examples
    --------
    >>> from hespex import create_dataset
    >>> ds = create_dataset("XRTTest", "Swift-XRT")
    >>> ds.instrument.value, ds.created
    ('Swift-XRT', True)
    """
    instrument = Instrument.from_name(instrument)
    if verbose:
        logger.debug(f"Created dataset {name!r} for {instrument.value}.")
    return Dataset(name=name, instrument=instrument, created=True)
