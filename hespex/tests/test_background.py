import numpy as np
import pytest
from numpy.testing import assert_allclose

from hespex.background import correct_dataset, subtract_background
from hespex.dataset import Dataset, create_dataset
from hespex.exceptions import ShapeError, StateError, UnsupportedInstrumentError


def test_subtract_background_without_background():
    src = np.array([4., 9., 16.])
    net, net_error, corrected = subtract_background(src)

    assert_allclose(net, src)
    assert_allclose(net_error, np.sqrt(src))
    assert_allclose(corrected, 0)

    # an explicit zero background with unit scalings is the same thing
    net, net_error, _ = subtract_background(src, np.zeros(3), 1., 1., 1., 1.)
    assert_allclose(net, src)
    assert_allclose(net_error, np.sqrt(src))


def test_subtract_background_scaling():
    net, net_error, corrected = subtract_background([10., 20.], [4., 8.], src_exposure=100., bkg_exposure=200.,
                                                    src_backscal=1., bkg_backscal=4.)

    assert_allclose(corrected, [0.5, 1.])
    assert_allclose(net, [9.5, 19.])
    assert_allclose(net_error, np.sqrt([10.5, 21.]))


def test_subtract_background_mismatched():
    with pytest.raises(ShapeError):
        subtract_background([1., 2.], [1., 2., 3.])


def test_correct_dataset_xrt():
    ds = create_dataset("xrt", "Swift-XRT")
    ds.src_counts, ds.bkg_counts = np.array([10., 20.]), np.array([4., 8.])
    ds.src_exposure, ds.bkg_exposure, ds.src_backscal, ds.bkg_backscal = 100., 200., 1., 4.

    assert correct_dataset(ds)
    assert ds.backscal_ratio == 0.25
    assert ds.exposure_ratio == 0.5
    assert_allclose(ds.bkg_counts_corrected, [0.5, 1.])
    assert_allclose(ds.input_data, [9.5, 19.])
    assert_allclose(ds.input_data_error, np.sqrt([10.5, 21.]))


def test_correct_dataset_bat_uses_rate():
    ds = create_dataset("bat", "Swift-BAT")
    ds.src_rate, ds.src_rate_error, ds.src_rate_sys_error = np.array([1., 2.]), np.array([.1, .2]), np.array([0, 0])

    assert correct_dataset(ds)
    assert_allclose(ds.input_data, [1., 2.])
    assert_allclose(ds.input_data_error, [.1, .2])
    assert ds.bkg_counts_corrected is None


def test_correct_dataset_soft_failures(caplog):
    ds = Dataset(name="never created")
    assert not correct_dataset(ds)
    assert "not created" in caplog.text
    with pytest.raises(StateError):
        correct_dataset(ds, strict=True)

    other = create_dataset("uvot", "Other")
    assert not correct_dataset(other, verbose=False)


def test_correct_dataset_unknown_instrument():
    ds = create_dataset("bad", "Swift-XRT")
    # replaced after construction, so never converted to an Instrument
    ds.instrument = "Chandra"
    with pytest.raises(UnsupportedInstrumentError):
        correct_dataset(ds)
