"""
Combine several datasets into one flux-density sequence and evaluate models on it.
"""

import numpy as np

from hespex.exceptions import StateError
from hespex.instruments import Instrument
from hespex.logging import get_logger

logger = get_logger(__name__)

__all__ = ["aggregate", "evaluate_model", "forward_fold"]


def _ready(dataset, verbose=True):
    """`True` if `dataset` has data to contribute to an aggregate."""
    if Instrument.from_name(dataset.instrument) is Instrument.OTHER:
        ready = bool(dataset.imported)
    else:
        ready = bool(dataset.rebinned and dataset.ancillary_rebinned)
    if not ready and verbose:
        logger.warning(f"Dataset {dataset.name!r} is not ready (imported and rebinned), skipping it.")
    return ready


def _contribution(dataset):
    if dataset.instrument is Instrument.OTHER:
        return (dataset.photon_energy, dataset.photon_flux / dataset.bandwidth,
                dataset.photon_flux_error / dataset.bandwidth)
    return dataset.rebinned_energy, dataset.rebinned_data, dataset.rebinned_data_error


def _concatenate(arrays):
    return np.concatenate(arrays) if arrays else np.array([], dtype=float)


def aggregate(datasets, verbose=True):
    """
    Concatenate the energies, flux densities and uncertainties of several datasets.

    "Other" datasets contribute their photon flux (and error) divided by their
    bandwidth; multi-channel datasets contribute their rebinned data at the rebinned
    channel energies. The datasets are kept in the order given, nothing is sorted.

    Parameters
    ----------
    datasets : iterable of `~hespex.dataset.Dataset`
            The datasets to combine. Datasets that are not imported (or, for
            multi-channel instruments, not rebinned) are skipped.

    verbose : bool
            Log a warning for every dataset skipped.
            Default: True

    Returns
    -------
    The concatenated energies, flux densities and uncertainties (three 1d arrays).
    """
    energies, fluxes, errors = [], [], []
    for dataset in datasets:
        if not _ready(dataset, verbose=verbose):
            continue
        e, f, ef = _contribution(dataset)
        energies.append(np.asarray(e, dtype=float))
        fluxes.append(np.asarray(f, dtype=float))
        errors.append(np.asarray(ef, dtype=float))
    return _concatenate(energies), _concatenate(fluxes), _concatenate(errors)


def evaluate_model(params, datasets, model_fn, verbose=True):
    """
    Evaluate a model at the energies of every ready dataset.

    Parameters
    ----------
    params : sequence
            Model parameters, passed to `model_fn` unchanged.

    datasets : iterable of `~hespex.dataset.Dataset`
            The same datasets given to `aggregate`.

    model_fn : callable
            ``model_fn(params, energy)`` returning one value per energy.

    verbose : bool
            Log a warning for every dataset skipped.
            Default: True

    Returns
    -------
    1d array aligned with the output of `aggregate` for the same datasets.

    Examples
    --------
    >>> from hespex import create_dataset, import_other, evaluate_model
    >>> ds = create_dataset("UVOT", "Other")
    >>> _ = import_other(ds, [1., 2., 3., 4.], [0.1, 0.2, 0.3, 0.4], [0.01, 0.02, 0.03, 0.04])
    >>> evaluate_model([1, 2], [ds], lambda p, e: (p[0] + p[1]) * e)
    array([ 3.,  6.,  9., 12.])
    """
    values = []
    for dataset in datasets:
        if not _ready(dataset, verbose=verbose):
            continue
        energy, _, _ = _contribution(dataset)
        values.append(np.asarray(model_fn(params, np.asarray(energy, dtype=float)), dtype=float))
    return _concatenate(values)


def forward_fold(params, dataset, model_fn, verbose=True, strict=False):
    """
    Fold a photon model through a dataset's rebinned response matrix.

    .. math::
        C_{g} = \\sum_{i} f(E_{i}) \\Delta E_{i} R_{i,g}

    Parameters
    ----------
    params : sequence
            Model parameters, passed to `model_fn` unchanged.

    dataset : `~hespex.dataset.Dataset`
            A multi-channel dataset with its response matrix built.

    model_fn : callable
            ``model_fn(params, energy)`` returning the photon flux density
            [ph cm^-2 s^-1 keV^-1] at the centre of each response energy bin.

    verbose : bool
            Log a warning when the response matrix is missing.
            Default: True

    strict : bool
            Raise `~hespex.exceptions.StateError` when the response matrix is missing.
            Default: False

    Returns
    -------
    The predicted data of each group (1d array), or None if there is no rebinned
    response matrix.
    """
    if not dataset.response_rebinned:
        message = f"Dataset {dataset.name!r}: response matrix not built yet."
        if strict:
            raise StateError(message)
        if verbose:
            logger.warning(message)
        return None

    energy, width = np.asarray(dataset.energy["E"]), np.asarray(dataset.energy["dE"])
    photons = np.asarray(model_fn(params, energy), dtype=float) * width
    return photons @ dataset.response_matrix
