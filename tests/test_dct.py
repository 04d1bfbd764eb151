import numpy as np
import pytest

from sensevid import dct as d


def _sample_block():
    rng = np.random.default_rng(7)
    return rng.integers(-128, 128, size=(8, 8)).astype(np.float64)


def test_classic_round_trip():
    block = _sample_block()
    restored = d.idct(d.dct(block, "CLA", 8), "CLA", 8)
    assert np.allclose(restored, block)


def test_classic_constant_block_has_only_dc():
    block = np.full((8, 8), 3.0)
    coeffs = d.dct(block, "CLA", 8)
    assert coeffs[0, 0] == pytest.approx(24.0)
    assert np.allclose(coeffs.ravel()[1:], 0.0)


def test_llm_round_trip_is_close():
    block = _sample_block()
    restored = d.llm_2d_idct(d.llm_2d_dct(block))
    assert np.allclose(restored, block, atol=0.05)


def test_llm_1d_round_trip():
    row = np.arange(8, dtype=np.float64) * 5 - 17
    assert np.allclose(d.llm_1d_idct(d.llm_1d_dct(row)) / 8, row, atol=0.01)


def test_bin_constant_round_trip():
    block = np.full((8, 8), 10)
    forward = d.bin_2d_dct(block)
    assert forward[0, 0] == 640
    assert np.count_nonzero(forward) == 1
    assert np.array_equal(d.bin_2d_idct(forward), block)


def test_bin_zero_block_stays_zero():
    zeros = np.zeros((8, 8))
    assert not np.any(d.bin_2d_dct(zeros))
    assert not np.any(d.bin_1d_idct(np.zeros(8)))


def _triangle(zone):
    i, j = np.indices((8, 8))
    return (i + j) < zone


@pytest.mark.parametrize("zone", [1, 3, 5, 8])
def test_triangular_llm_keeps_only_triangle(zone):
    block = _sample_block()
    coeffs = d.dct(block, "tLLM", zone)
    expected = np.where(_triangle(zone), d.llm_2d_dct(block), 0.0)
    assert np.allclose(coeffs, expected)


@pytest.mark.parametrize("zone", [1, 3, 5, 8])
def test_triangular_bin_keeps_only_triangle(zone):
    block = _sample_block()
    coeffs = d.dct(block, "tBIN", zone)
    expected = np.where(_triangle(zone), d.bin_2d_dct(block), 0)
    assert np.array_equal(coeffs, expected)


@pytest.mark.parametrize("zone", [1, 4, 8])
def test_square_masks(zone):
    block = _sample_block()
    full = d.llm_2d_dct(block)
    coeffs = d.dct(block, "sLLM", zone)
    assert np.allclose(coeffs[:zone, :zone], full[:zone, :zone])
    assert not np.any(coeffs[zone:, :]) and not np.any(coeffs[:, zone:])
    bin_coeffs = d.square_bin_dct(block, zone)
    assert np.array_equal(bin_coeffs[:zone, :zone], d.bin_2d_dct(block)[:zone, :zone])


def test_idct_dispatches_on_suffix():
    block = _sample_block()
    coeffs = d.dct(block, "sLLM", 8)
    assert np.allclose(d.idct(coeffs, "tLLM", 8), d.llm_2d_idct(coeffs))


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        d.dct(np.zeros((8, 8)), "XYZ", 8)
    with pytest.raises(ValueError):
        d.idct(np.zeros((8, 8)), "XYZ", 8)