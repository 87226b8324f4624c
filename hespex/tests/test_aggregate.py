import numpy as np
import pytest
from astropy.table import Table
from numpy.testing import assert_allclose

from hespex import (
    aggregate,
    build_response_matrix,
    create_dataset,
    evaluate_model,
    forward_fold,
    ignore_channels,
    import_multichannel,
    import_other,
    rebin,
    rebin_ancillary,
)
from hespex.data.simulated_data import simulate_ogip_products
from hespex.exceptions import StateError


def _sum_times_energy(params, energy):
    return (params[0] + params[1]) * energy


@pytest.fixture
def other():
    ds = create_dataset("UVOT", "Other")
    import_other(ds, [1., 2., 3., 4.], [0.1, 0.2, 0.3, 0.4], [0.01, 0.02, 0.03, 0.04])
    return ds


@pytest.fixture
def bat(tmp_path):
    ds = create_dataset("BATTest", "Swift-BAT")
    import_multichannel(ds, **simulate_ogip_products(tmp_path, "Swift-BAT", size=32))
    ignore_channels(ds, [0])
    rebin(ds, min_sn=20)
    rebin_ancillary(ds)
    build_response_matrix(ds)
    return ds


def test_evaluate_model_other(other):
    assert_allclose(evaluate_model([1, 2], [other], _sum_times_energy), [3., 6., 9., 12.])


def test_aggregate_other(other):
    energy, flux, error = aggregate([other])
    assert_allclose(energy, [1., 2., 3., 4.])
    assert_allclose(flux, [0.1, 0.2, 0.3, 0.4])
    assert_allclose(error, [0.01, 0.02, 0.03, 0.04])


def test_aggregate_divides_by_bandwidth():
    ds = create_dataset("Optical", "Other")
    import_other(ds, [1., 2.], [1., 3.], [0.5, 0.5], bandwidth=0.5)
    _, flux, error = aggregate([ds])

    assert_allclose(flux, [2., 6.])
    assert_allclose(error, [1., 1.])


def test_aggregate_keeps_caller_order(other, bat):
    energy, flux, error = aggregate([bat, other])
    n = bat.rebin_schema.size

    assert energy.size == flux.size == error.size == n + 4
    assert_allclose(energy[:n], bat.rebinned_energy)
    assert_allclose(flux[:n], bat.rebinned_data)
    assert_allclose(energy[n:], [1., 2., 3., 4.])

    energy, _, _ = aggregate([other, bat])
    assert_allclose(energy[:4], [1., 2., 3., 4.])

    model = evaluate_model([1, 2], [other, bat], _sum_times_energy)
    assert_allclose(model, 3 * energy)


def test_aggregate_skips_datasets_not_ready(caplog, other, tmp_path):
    not_rebinned = create_dataset("XRT", "Swift-XRT")
    import_multichannel(not_rebinned, **simulate_ogip_products(tmp_path, "Swift-XRT", size=16))
    not_imported = create_dataset("Optical", "Other")

    energy, flux, error = aggregate([not_rebinned, other, not_imported])
    assert_allclose(energy, [1., 2., 3., 4.])
    assert "'XRT' is not ready" in caplog.text
    assert "'Optical' is not ready" in caplog.text

    assert evaluate_model([1, 2], [not_imported, other], _sum_times_energy, verbose=False).size == 4


def test_aggregate_nothing():
    energy, flux, error = aggregate([])
    assert energy.size == flux.size == error.size == 0


def test_forward_fold():
    ds = create_dataset("Test", "Swift-BAT")
    ds.energy = Table([[1., 2.], [1., 0.5]], names=["E", "dE"])
    ds.response_matrix = np.array([[1., 0.], [0., 2.]])
    ds.response_rebinned = True

    # photons per bin are [2*1*1, 2*2*0.5]
    assert_allclose(forward_fold([2], ds, lambda p, e: p[0] * e), [2., 4.])


def test_forward_fold_shape(bat):
    folded = forward_fold([1.], bat, lambda p, e: p[0] * e**-2)
    assert folded.shape == (bat.rebin_schema.size,)
    assert np.all(folded > 0)


def test_forward_fold_without_response(caplog, other):
    assert forward_fold([1], other, _sum_times_energy) is None
    assert "response matrix not built" in caplog.text
    with pytest.raises(StateError):
        forward_fold([1], other, _sum_times_energy, strict=True)
