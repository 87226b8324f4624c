"""
The instruments hespex knows how to handle.
"""

from enum import Enum

from hespex.exceptions import UnsupportedInstrumentError

__all__ = ["Instrument", "get_known_instruments"]


class Instrument(Enum):
    """
    Instruments supported by hespex.

    The value of each member is the name used in the instrument's own products.
    ``OTHER`` covers data already in physical units (photon flux density against
    energy) that have no channel or response information.

    Examples
    --------
    >>> from hespex.instruments import Instrument
    >>> Instrument.from_name("swift-xrt")
    <Instrument.XRT: 'Swift-XRT'>
    >>> Instrument.from_name("BAT").is_multichannel
    True
    """

    XRT = "Swift-XRT"
    BAT = "Swift-BAT"
    MXT = "SVOM-MXT"
    OTHER = "Other"

    @classmethod
    def from_name(cls, name):
        """
        Look up an instrument by its full name or member name, ignoring case.

        Parameters
        ----------
        name : `str` or `Instrument`
            E.g. ``"Swift-XRT"``, ``"xrt"`` or ``Instrument.XRT``.

        Returns
        -------
        `Instrument`

        Raises
        ------
        `~hespex.exceptions.UnsupportedInstrumentError`
            If ``name`` is not a known instrument.
        """
        if isinstance(name, cls):
            return name
        if isinstance(name, str):
            key = name.strip().upper()
            for member in cls:
                if key in (member.value.upper(), member.name):
                    return member
        raise UnsupportedInstrumentError(f"Unknown instrument: {name!r}. "
                                         f"Known instruments are {get_known_instruments()}.")

    @property
    def is_multichannel(self):
        """`True` for instruments that record counts in detector channels."""
        return self is not Instrument.OTHER

    @property
    def subtracts_background(self):
        """`True` when the source spectrum is in counts and a background file is subtracted."""
        return self in (Instrument.XRT, Instrument.MXT)

    @property
    def uses_effective_area(self):
        """`True` when the response rows are scaled by an ARF before rebinning."""
        return self in (Instrument.XRT, Instrument.MXT)


def get_known_instruments():
    """
    Return the names of the instruments currently supported.

    Returns
    -------
    `list` of `str`
    """
    return [member.value for member in Instrument]
