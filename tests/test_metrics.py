import numpy as np
import pytest

from sensevid.metrics import (
    load_image,
    mean_square,
    ms_to_psnr,
    mse,
    psnr,
    save_image,
    ssim,
)


def _gradient(rows=16, cols=16):
    r, c = np.indices((rows, cols))
    return (40 + 5 * r + 3 * c).astype(np.uint8)


def test_mean_square_zero_block():
    assert mean_square(np.zeros((8, 8), dtype=np.int16)) == 0.0


def test_mean_square_sign_symmetric():
    rng = np.random.default_rng(1)
    block = rng.integers(-100, 100, size=(8, 8)).astype(np.int16)
    assert mean_square(block) == mean_square(-block)


def test_mean_square_saturates():
    a = np.full((8, 8), 200, dtype=np.int16)
    b = np.full((8, 8), 300, dtype=np.int16)
    assert mean_square(a) == mean_square(b)


def test_mse_identical_is_zero():
    img = _gradient()
    assert mse(img, img) == 0.0


def test_mse_symmetric_and_unit_offset():
    img = _gradient()
    shifted = img + 1
    assert mse(img, shifted) == mse(shifted, img)
    assert mse(img, shifted) == 1.0


def test_mse_shape_mismatch():
    with pytest.raises(ValueError):
        mse(np.zeros((8, 8)), np.zeros((8, 16)))


def test_psnr_cap_for_identical():
    img = _gradient()
    assert psnr(img, img) == 600
    assert ms_to_psnr(0.0) == 600


def test_ms_to_psnr_at_peak():
    assert ms_to_psnr(255 * 255) == pytest.approx(0.0)


def test_psnr_decreases_with_error():
    img = _gradient()
    assert psnr(img, img + 1) > psnr(img, img + 2)


def test_ssim_identity():
    img = _gradient()
    assert ssim(img, img) == pytest.approx(1.0)


def test_ssim_symmetric_and_lower_for_different():
    img = _gradient()
    other = np.zeros_like(img)
    assert ssim(img, other) == pytest.approx(ssim(other, img))
    assert ssim(img, other) < 1.0


def test_image_round_trip(tmp_path):
    rng = np.random.default_rng(0)
    img = rng.integers(0, 256, size=(8, 16)).astype(np.uint8)
    path = tmp_path / "frame1.png"
    save_image(path, img)
    loaded = load_image(path)
    assert np.array_equal(loaded, img)


def test_load_missing_image(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_image(tmp_path / "missing.png")