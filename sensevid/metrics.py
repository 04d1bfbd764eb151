"""Image quality measures and grayscale image input/output."""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
from PIL import Image

_C1 = 6.5025
_C2 = 58.5225
_INT16_MAX = 32767
_UINT16_MAX = 65535
_PSNR_CAP = 600.0
_PEAK2 = 255 * 255
_KERNEL_SIZE = 11
_SIGMA = 1.5


def mean_square(block) -> float:
    """Mean of the squared values, each square saturated to the 16-bit signed range."""
    values = np.asarray(block, dtype=np.int64)
    squares = np.minimum(values * values, _INT16_MAX)
    return float(squares.sum()) / values.size


def mse(first, second) -> float:
    """Mean squared error between two images of the same shape."""
    a = np.asarray(first, dtype=np.int64)
    b = np.asarray(second, dtype=np.int64)
    if a.shape != b.shape:
        raise ValueError(f"shape mismatch: {a.shape} vs {b.shape}")
    diff = np.abs(a - b)
    squares = np.minimum(diff * diff, _UINT16_MAX)
    return float(squares.sum()) / a.size


def ms_to_psnr(value: float) -> float:
    """PSNR in dB for a mean squared error; 600 for (near) zero error."""
    if value >= 1e-10:
        return 10.0 * math.log10(_PEAK2 / value)
    return _PSNR_CAP


def psnr(first, second) -> float:
    """Peak signal-to-noise ratio between two 8-bit images."""
    return ms_to_psnr(mse(first, second))


def _gaussian_kernel() -> np.ndarray:
    offsets = np.arange(_KERNEL_SIZE) - (_KERNEL_SIZE - 1) / 2
    kernel = np.exp(-(offsets**2) / (2 * _SIGMA**2))
    return kernel / kernel.sum()


_KERNEL = _gaussian_kernel()


def _blur(image: np.ndarray) -> np.ndarray:
    pad = _KERNEL_SIZE // 2
    padded = np.pad(image, pad, mode="reflect")
    rows, cols = image.shape
    vertical = sum(w * padded[t : t + rows, :] for t, w in enumerate(_KERNEL))
    return sum(w * vertical[:, t : t + cols] for t, w in enumerate(_KERNEL))


def ssim(first, second) -> float:
    """Mean structural similarity with an 11x11 Gaussian window (sigma 1.5)."""
    i1 = np.asarray(first, dtype=np.float64)
    i2 = np.asarray(second, dtype=np.float64)
    if i1.shape != i2.shape:
        raise ValueError(f"shape mismatch: {i1.shape} vs {i2.shape}")
    mu1 = _blur(i1)
    mu2 = _blur(i2)
    mu1_2 = mu1 * mu1
    mu2_2 = mu2 * mu2
    mu1_mu2 = mu1 * mu2
    sigma1_2 = _blur(i1 * i1) - mu1_2
    sigma2_2 = _blur(i2 * i2) - mu2_2
    sigma12 = _blur(i1 * i2) - mu1_mu2
    numerator = (2 * mu1_mu2 + _C1) * (2 * sigma12 + _C2)
    denominator = (mu1_2 + mu2_2 + _C1) * (sigma1_2 + sigma2_2 + _C2)
    return float(np.mean(numerator / denominator))


def load_image(path) -> np.ndarray:
    """Read an image from disk as an 8-bit grayscale array."""
    try:
        with Image.open(path) as img:
            return np.array(img.convert("L"), dtype=np.uint8)
    except (OSError, ValueError) as exc:
        raise FileNotFoundError(f"could not open or find the image {path}") from exc


def save_image(path, image) -> None:
    """Write an array as an 8-bit grayscale image."""
    arr = np.asarray(image)
    if arr.dtype != np.uint8:
        arr = np.clip(np.rint(arr), 0, 255).astype(np.uint8)
    Image.fromarray(arr).save(Path(path))