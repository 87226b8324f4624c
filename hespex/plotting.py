"""
Quick-look plots of a dataset before and after rebinning.

The figures are created with `matplotlib.figure.Figure` directly, so nothing is
registered with pyplot; show or save them with ``fig.savefig(...)`` or by
attaching them to a canvas.
"""

import numpy as np
from matplotlib.figure import Figure

from hespex.instruments import Instrument
from hespex.logging import get_logger

logger = get_logger(__name__)

__all__ = ["plot_raw", "plot_rebinned"]


def _new_axes(title, xlabel, ylabel, figsize):
    fig = Figure(figsize=figsize)
    ax = fig.add_subplot()
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    return fig, ax


def _errorbar(ax, x, y, yerr, **kwargs):
    ax.errorbar(np.asarray(x), np.asarray(y), yerr=np.asarray(yerr), ls="", marker="o", ms=3, alpha=0.4,
                c="tab:orange", **kwargs)


def plot_raw(dataset, xlabel="Channels", ylabel="Counts ch$^{-1}$", title=None, figsize=(9, 6), verbose=True):
    """
    Plot the imported data of a dataset.

    Multi-channel data are plotted against channel number, "Other" data as photon
    flux against energy.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            The dataset to plot.

    xlabel, ylabel : str
            Axis labels.
            Default: "Channels", "Counts ch$^{-1}$"

    title : str or None
            Plot title. Defaults to the dataset name.
            Default: None

    figsize : tuple
            Figure size in inches.
            Default: (9, 6)

    verbose : bool
            Log a warning if the data are not imported yet (an empty figure is returned).
            Default: True

    Returns
    -------
    `~matplotlib.figure.Figure`
    """
    fig, ax = _new_axes(dataset.name if title is None else title, xlabel, ylabel, figsize)

    if not dataset.imported:
        if verbose:
            logger.warning(f"Dataset {dataset.name!r}: data not imported yet.")
    elif Instrument.from_name(dataset.instrument) is Instrument.OTHER:
        _errorbar(ax, dataset.photon_energy, dataset.photon_flux, dataset.photon_flux_error)
    else:
        _errorbar(ax, dataset.channels["CHANNEL"], dataset.input_data, dataset.input_data_error)

    return fig


def plot_rebinned(dataset, xlabel="Channels", ylabel="Counts ch$^{-1}$ s$^{-1}$", title=None, figsize=(9, 6),
                  verbose=True):
    """
    Plot the rebinned data of a dataset against the mean channel of each group.

    "Other" datasets have no rebinning and are plotted as imported.

    Parameters
    ----------
    dataset : `~hespex.dataset.Dataset`
            The dataset to plot.

    xlabel, ylabel : str
            Axis labels.
            Default: "Channels", "Counts ch$^{-1}$ s$^{-1}$"

    title : str or None
            Plot title. Defaults to the dataset name.
            Default: None

    figsize : tuple
            Figure size in inches.
            Default: (9, 6)

    verbose : bool
            Log a warning if the data or channels are not rebinned yet (an empty
            figure is returned).
            Default: True

    Returns
    -------
    `~matplotlib.figure.Figure`
    """
    fig, ax = _new_axes(dataset.name if title is None else title, xlabel, ylabel, figsize)

    if Instrument.from_name(dataset.instrument) is Instrument.OTHER:
        if dataset.imported:
            _errorbar(ax, dataset.photon_energy, dataset.photon_flux, dataset.photon_flux_error)
        elif verbose:
            logger.warning(f"Dataset {dataset.name!r}: data not imported yet.")
    elif dataset.rebinned and dataset.ancillary_rebinned:
        _errorbar(ax, dataset.rebinned_channel, dataset.rebinned_data, dataset.rebinned_data_error)
    elif verbose:
        logger.warning(f"Dataset {dataset.name!r}: data not fully rebinned yet.")

    return fig
