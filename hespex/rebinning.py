"""
Signal-to-noise grouping of channels and reduction of arrays onto that grouping.

A rebin schema is an integer array of 1-based, inclusive group end indices. Group
``k`` covers channels ``schema[k-1]+1`` to ``schema[k]`` (with ``schema[-1]`` equal
to the number of channels), so ``[1, 3, 4]`` groups four channels as
``{1}, {2, 3}, {4}``.
"""

import numpy as np

from hespex.exceptions import RangeError, ShapeError

__all__ = ["DEFAULT_MIN_SN", "find_rebin_schema", "validate_schema", "group_widths", "rebin_groups"]

DEFAULT_MIN_SN = 5

_COMBINE_OPTIONS = ("mean", "sum", "quadrature")


def find_rebin_schema(values, uncertainties, min_sn=DEFAULT_MIN_SN):
    """
    Compute the grouping that gives every group a signal-to-noise of at least `min_sn`.

    Channels are scanned from the left. A group starting at channel ``i`` is extended
    one channel at a time and closed at the first channel ``l`` where

    .. math::
        |\\sum_{i}^{l} x| / \\sqrt{\\sum_{i}^{l} \\sigma^{2}} \\geq minSN

    or at the last channel, whichever comes first. The last group can therefore be
    below the threshold. A group with zero combined uncertainty is always closed.

    Parameters
    ----------
    values : 1d array
            The per-channel signal (e.g., background subtracted counts).

    uncertainties : 1d array
            The per-channel uncertainty on `values`.

    min_sn : float
            Minimum signal-to-noise of a group. Zero (or less) puts every channel
            in its own group.
            Default: 5

    Returns
    -------
    1d integer array of the 1-based inclusive end index of each group.

    Examples
    --------
    >>> from hespex.rebinning import find_rebin_schema
    >>> find_rebin_schema([1., 2., 3., 4.], [0.1, 0.5, 0.6, 0.05])
    array([1, 3, 4])
    """
    values = np.asarray(values, dtype=float)
    uncertainties = np.asarray(uncertainties, dtype=float)
    if values.shape != uncertainties.shape or values.ndim != 1:
        raise ShapeError(f"Values {values.shape} and uncertainties {uncertainties.shape} "
                         "must be 1d arrays of the same length.")

    schema = []
    signal, variance = 0., 0.
    for end, (x, ex) in enumerate(zip(values, uncertainties), start=1):
        signal += x
        variance += ex**2
        noise = np.sqrt(variance)
        # zero noise closes the group whatever the signal, so the scan always moves on
        if noise == 0 or abs(signal) / noise >= min_sn or end == values.size:
            schema.append(end)
            signal, variance = 0., 0.

    return np.array(schema, dtype=int)


def validate_schema(schema, length):
    """
    Check `schema` is a valid partition of `length` channels.

    Parameters
    ----------
    schema : 1d array of int
            Group end indices (1-based, inclusive).

    length : int
            Number of channels the schema must cover.

    Returns
    -------
    The schema as a 1d integer array.

    Raises
    ------
    `~hespex.exceptions.ShapeError`
            If the schema is empty, not strictly increasing or starts below 1.
    `~hespex.exceptions.RangeError`
            If the last group does not end at `length`.
    """
    schema = np.asarray(schema)
    if schema.ndim != 1 or schema.size == 0:
        raise ShapeError("A rebin schema must be a non-empty 1d sequence of group end indices.")
    if not np.all(schema == np.round(schema)):
        raise ShapeError(f"Rebin schema entries must be integers, got {schema}.")
    schema = schema.astype(int)
    if schema[0] < 1 or np.any(np.diff(schema) <= 0):
        raise ShapeError(f"Rebin schema must be strictly increasing from 1 or more, got {schema}.")
    if schema[-1] != length:
        raise RangeError(f"Rebin schema ends at {schema[-1]} but there are {length} channels to group.")
    return schema


def group_widths(schema):
    """
    Number of channels in each group of `schema`.

    Parameters
    ----------
    schema : 1d array of int
            Group end indices (1-based, inclusive).

    Returns
    -------
    1d integer array, same length as `schema`.
    """
    schema = np.asarray(schema, dtype=int)
    return np.diff(schema, prepend=0)


def rebin_groups(values, schema, combine_by="mean", axis=-1):
    """
    Reduce `values` onto the groups of `schema`.

    The default combines each group by its unweighted arithmetic mean, also for
    count-like quantities. Callers wanting a rate per original exposure divide the
    mean afterwards.

    Parameters
    ----------
    values : array
            Data aligned with the channels along `axis`.

    schema : 1d array of int
            Group end indices (1-based, inclusive); ``schema[-1]`` must equal the
            length of `values` along `axis`.

    combine_by : string
            How the channels of a group are combined. "mean" averages the data, "sum"
            adds the data, and "quadrature" sums the data in quadrature.
            Default: "mean"

    axis : int
            The channel axis of `values`. Every other axis is reduced independently,
            e.g. each row of a response matrix with ``axis=-1``.
            Default: -1

    Returns
    -------
    Array with the `axis` dimension of length ``len(schema)``.

    Examples
    --------
    >>> from hespex.rebinning import rebin_groups
    >>> rebin_groups([1., 2., 3., 4.], [1, 3, 4])
    array([1. , 2.5, 4. ])
    """
    if combine_by not in _COMBINE_OPTIONS:
        raise ValueError(f"combine_by must be one of {_COMBINE_OPTIONS}, not {combine_by!r}.")

    values = np.asarray(values, dtype=float)
    if values.ndim == 0:
        raise ShapeError("Cannot rebin a scalar.")
    schema = validate_schema(schema, values.shape[axis])
    starts = np.concatenate(([0], schema[:-1]))

    if combine_by == "quadrature":
        return np.sqrt(np.add.reduceat(values**2, starts, axis=axis))

    sums = np.add.reduceat(values, starts, axis=axis)
    if combine_by == "sum":
        return sums

    # put the group widths along the reduced axis so they broadcast over the others
    shape = [1] * values.ndim
    shape[axis] = schema.size
    return sums / group_widths(schema).reshape(shape)
