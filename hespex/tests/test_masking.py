import numpy as np
import pytest
from astropy.table import Table
from numpy.testing import assert_array_equal

from hespex.exceptions import ShapeError
from hespex.masking import apply_mask, build_channel_mask, renumber_channels


def test_build_channel_mask():
    assert_array_equal(build_channel_mask(6, [0, range(4, 10)]), [False, True, True, True, False, False])
    assert_array_equal(build_channel_mask(4, [[1, 2]]), [True, False, False, True])


def test_build_channel_mask_clips_out_of_range():
    assert build_channel_mask(3, [-1, 3, 100, range(-5, 0)]).all()


def test_build_channel_mask_empty_ignore_keeps_everything():
    assert build_channel_mask(5).all()
    assert build_channel_mask(5, []).sum() == 5


def test_build_channel_mask_bad_entries():
    with pytest.raises(ShapeError):
        build_channel_mask(5, ["a"])
    with pytest.raises(ShapeError):
        build_channel_mask(5, [1.5])


def test_apply_mask():
    mask = np.array([True, False, True, True])
    data, error = apply_mask(mask, [1., 2., 3., 4.], [.1, .2, .3, .4])

    assert_array_equal(data, [1., 3., 4.])
    assert_array_equal(error, [.1, .3, .4])
    assert len(data) == mask.sum()


def test_apply_mask_matrix_columns():
    mask = np.array([True, False, True])
    matrix, = apply_mask(mask, np.arange(6).reshape(2, 3), axis=1)
    assert_array_equal(matrix, [[0, 2], [3, 5]])


def test_apply_mask_misaligned():
    with pytest.raises(ShapeError):
        apply_mask([True, False], [1., 2., 3.])
    with pytest.raises(ShapeError):
        apply_mask([True, False], 1.)


def test_renumber_channels():
    channels = Table([[3, 5, 9], [1., 2., 3.]], names=["CHANNEL", "E"])
    assert_array_equal(renumber_channels(channels)["CHANNEL"], [0, 1, 2])
    assert_array_equal(channels["E"], [1., 2., 3.])
