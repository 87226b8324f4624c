"""
Exceptions raised by hespex.

Stage operations on a `~hespex.dataset.Dataset` do not raise on a failed
precondition unless called with ``strict=True``; they log a warning and record
the outcome in the dataset's completion flags instead. The pure functions
(rebinning, masking, background subtraction) always raise.
"""

__all__ = ["HespexError", "StateError", "UnsupportedInstrumentError", "ShapeError", "RangeError"]


class HespexError(Exception):
    """Base class for all hespex errors."""


class StateError(HespexError, RuntimeError):
    """A pipeline stage was attempted before the stage it depends on completed."""


class UnsupportedInstrumentError(HespexError, ValueError):
    """The instrument is not one of `~hespex.instruments.Instrument`."""


class ShapeError(HespexError, ValueError):
    """Sequences that must be aligned have different lengths, or a rebin schema is malformed."""


class RangeError(ShapeError):
    """A rebin schema does not end at the length of the sequence it groups."""
