from unittest.mock import MagicMock, patch

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from hespex.data.simulated_data import simulate_square_response_matrix, write_pha, write_rmf
from hespex.io import _expand_rmf_matrix, _read_arf, _read_pha, _read_rmf


def _mock_hdu(data, header=None):
    hdu = MagicMock()
    hdu.columns.names = [name.upper() for name in data]
    hdu.data = data
    hdu.header = header or {}
    return hdu


@patch('astropy.io.fits.open')
def test_read_pha(mock_open):
    hdul = MagicMock()
    hdul[1].columns.names = ['CHANNEL', 'COUNTS']
    hdul[1].data = {'CHANNEL': np.array([0, 1, 2]), 'COUNTS': np.array([10, 20, 30])}
    hdul[1].header = {'EXPOSURE': 100.0, 'BACKSCAL': 0.5}
    mock_open.return_value.__enter__.return_value = hdul
    columns, exposure, backscal = _read_pha('test.pha')

    assert_array_equal(columns['COUNTS'], [10, 20, 30])
    assert exposure == 100.0
    assert backscal == 0.5


@patch('astropy.io.fits.open')
def test_read_pha_missing_keywords(mock_open):
    hdul = MagicMock()
    hdul[1].columns.names = ['RATE']
    hdul[1].data = {'RATE': np.array([1., 2.])}
    hdul[1].header = {}
    mock_open.return_value.__enter__.return_value = hdul
    _, exposure, backscal = _read_pha('test.pha')

    assert exposure == 1.
    assert backscal == 1.


@patch('astropy.io.fits.open')
def test_read_arf(mock_open):
    energ_lo = np.array([1., 2.])
    energ_hi = np.array([2., 3.])
    specresp = np.array([100., 200.])
    hdul = MagicMock()
    hdul[1].data = {'energ_lo': energ_lo, 'energ_hi': energ_hi, 'specresp': specresp}
    mock_open.return_value.__enter__.return_value = hdul
    res = _read_arf('test.arf')
    for t, r in zip((energ_lo, energ_hi, specresp), res):
        assert_array_equal(t, r)


@pytest.mark.parametrize("ebounds_first", [True, False])
@patch('astropy.io.fits.open')
def test_read_rmf_finds_extensions(mock_open, ebounds_first):
    ebounds = _mock_hdu({'channel': np.array([0, 1]), 'e_min': np.array([1., 2.]), 'e_max': np.array([2., 3.])})
    matrix = _mock_hdu({'energ_lo': np.array([1., 2.]), 'energ_hi': np.array([2., 3.]), 'matrix': np.eye(2)})
    extensions = [ebounds, matrix] if ebounds_first else [matrix, ebounds]
    mock_open.return_value.__enter__.return_value = [MagicMock()] + extensions

    energ_lo, energ_hi, rmf, channels, e_min, e_max = _read_rmf('test.rmf')
    assert_array_equal(energ_lo, [1., 2.])
    assert_array_equal(rmf, np.eye(2))
    assert_array_equal(channels, [0, 1])
    assert_array_equal(e_max, [2., 3.])


def test_expand_rmf_matrix():
    dense = _expand_rmf_matrix([np.array([1., 2., 3., 4., 5.])], [2], [np.array([0, 5])], [np.array([2, 3])],
                               n_channels=10)
    assert_array_equal(dense, [[1., 2., 0., 0., 0., 3., 4., 5., 0., 0.]])


def test_expand_rmf_matrix_channel_offset():
    dense = _expand_rmf_matrix([[7.], [8., 9.]], [1, 1], [1, 2], [1, 2], n_channels=3, first_channel=1)
    assert_array_equal(dense, [[7., 0., 0.], [0., 8., 9.]])


@pytest.mark.parametrize("ebounds_first", [True, False])
@pytest.mark.parametrize("compressed", [True, False])
def test_read_rmf_file(tmp_path, ebounds_first, compressed):
    edges = np.linspace(1., 9., 9)
    matrix = simulate_square_response_matrix(8)
    path = write_rmf(tmp_path / "test.rmf", edges[:-1], edges[1:], matrix, edges[:-1], edges[1:], first_channel=1,
                     ebounds_first=ebounds_first, compressed=compressed)

    energ_lo, energ_hi, rmf, channels, e_min, e_max = _read_rmf(path)
    assert_allclose(energ_lo, edges[:-1])
    assert_allclose(energ_hi, edges[1:])
    assert_allclose(rmf, matrix, rtol=1e-6, atol=1e-7)
    assert_array_equal(channels, np.arange(1, 9))
    assert_allclose(e_min, edges[:-1])


def test_read_pha_file(tmp_path):
    path = write_pha(tmp_path / "src.pi", {"CHANNEL": np.arange(3, dtype=np.int32),
                                           "COUNTS": np.array([5, 6, 7], dtype=np.int32)}, exposure=250.)
    columns, exposure, backscal = _read_pha(path)

    assert sorted(columns) == ["CHANNEL", "COUNTS"]
    assert_array_equal(columns["COUNTS"], [5, 6, 7])
    assert exposure == 250.
    assert backscal == 1.
