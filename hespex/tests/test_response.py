import numpy as np
import pytest
from numpy.testing import assert_allclose

from hespex.exceptions import ShapeError
from hespex.response import make_srm, rebin_response_matrix


def test_make_srm():
    rmf = np.array([[1., 0.], [0.5, 0.5]])
    assert_allclose(make_srm(rmf, [2., 4.]), [[2., 0.], [2., 2.]])


def test_make_srm_shape_mismatch():
    with pytest.raises(ShapeError):
        make_srm(np.eye(3), [1., 2.])


def test_rebin_response_matrix_bat():
    matrix = np.arange(12.).reshape(3, 4)
    rebinned = rebin_response_matrix(matrix, [2, 4], "Swift-BAT", effective_area=[10., 10., 10.])

    # no effective area for Swift-BAT
    assert rebinned.shape == (3, 2)
    assert_allclose(rebinned, [[0.5, 2.5], [4.5, 6.5], [8.5, 10.5]])


@pytest.mark.parametrize("instrument", ["Swift-XRT", "SVOM-MXT"])
def test_rebin_response_matrix_with_effective_area(instrument):
    matrix = np.array([[1., 1., 0.], [0., 2., 4.]])
    rebinned = rebin_response_matrix(matrix, [1, 3], instrument, effective_area=[10., 0.5])

    assert_allclose(rebinned, [[10., 5.], [0., 1.5]])


def test_rebin_response_matrix_errors():
    with pytest.raises(ShapeError):
        rebin_response_matrix(np.eye(2), [2], "Swift-XRT")
    with pytest.raises(ShapeError):
        rebin_response_matrix(np.eye(2), [2], "Other")
