"""
Channel masks: which detector channels are kept for the analysis.
"""

from numbers import Integral

import numpy as np

from hespex.exceptions import ShapeError

__all__ = ["build_channel_mask", "apply_mask", "renumber_channels"]


def _ignored_indices(item):
    """Flatten one entry of an ignore list (an int, a `range` or any iterable of ints)."""
    if isinstance(item, Integral):
        return np.array([item], dtype=int)
    try:
        return np.asarray(list(item), dtype=int).ravel()
    except (TypeError, ValueError):
        raise ShapeError(f"Channels to ignore must be integers or ranges of integers, got {item!r}.") from None


def build_channel_mask(n_channels, ignore=()):
    """
    Build a keep-mask for `n_channels` detector channels.

    Parameters
    ----------
    n_channels : int
            The number of channels.

    ignore : iterable
            Channels to ignore, numbered from 0. Entries can be single channels,
            `range` objects or any other iterable of channel numbers, e.g.
            ``[0, 1, 2, 3]`` or ``[range(0, 5), range(1000, 1024)]``. Channels
            outside ``0..n_channels-1`` are skipped without complaint.
            Default: ()

    Returns
    -------
    Boolean 1d array of length `n_channels`, `True` where the channel is kept.

    Examples
    --------
    >>> from hespex.masking import build_channel_mask
    >>> build_channel_mask(6, [0, range(4, 10)])
    array([False,  True,  True,  True, False, False])
    """
    mask = np.ones(int(n_channels), dtype=bool)
    for item in ignore:
        indices = _ignored_indices(item)
        mask[indices[(indices >= 0) & (indices < mask.size)]] = False
    return mask


def apply_mask(mask, *sequences, axis=0):
    """
    Drop the entries of each sequence where `mask` is `False`.

    Relative order is preserved.

    Parameters
    ----------
    mask : 1d bool array
            The keep-mask, e.g. from `build_channel_mask`.

    *sequences : arrays
            Arrays aligned with `mask` along `axis`.

    axis : int
            The channel axis of the sequences. Use ``axis=1`` for a response matrix
            with energy rows and channel columns.
            Default: 0

    Returns
    -------
    `tuple` of the masked arrays, one per sequence.

    Raises
    ------
    `~hespex.exceptions.ShapeError`
            If a sequence is not aligned with `mask`.
    """
    mask = np.asarray(mask, dtype=bool)
    masked = []
    for seq in sequences:
        seq = np.asarray(seq)
        if seq.ndim == 0 or seq.shape[axis] != mask.size:
            raise ShapeError(f"Sequence of shape {seq.shape} is not aligned with a mask of {mask.size} channels "
                             f"along axis {axis}.")
        masked.append(np.compress(mask, seq, axis=axis))
    return tuple(masked)


def renumber_channels(channel_table):
    """
    Number the channels of a (masked) channel table ``0..len-1`` in place.

    Channel numbers after masking are positional; the original detector channel
    number is not kept.

    Parameters
    ----------
    channel_table : `~astropy.table.Table`
            Table with a ``CHANNEL`` column.

    Returns
    -------
    The same table.
    """
    channel_table["CHANNEL"] = np.arange(len(channel_table))
    return channel_table
