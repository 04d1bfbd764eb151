"""Two-dimensional DCTs for 8x8 blocks: classic, LLM and binDCT variants."""

from __future__ import annotations

import math

import numpy as np

BLOCK = 8

_R = (1.414214, 1.387040, 1.306563, 1.175876, 1.000000, 0.785695, 0.541196, 0.275899)
_INV_SQRT2 = 0.707107


def _s16(value: int) -> int:
    """Wrap an integer to a signed 16-bit value."""
    return ((int(value) + 0x8000) & 0xFFFF) - 0x8000


def _to_int16(block) -> np.ndarray:
    arr = np.rint(np.asarray(block, dtype=np.float64))
    return np.clip(arr, -32768, 32767).astype(np.int16)


def _dct_matrix(n: int = BLOCK) -> np.ndarray:
    k = np.arange(n).reshape(-1, 1)
    x = np.arange(n).reshape(1, -1)
    matrix = np.cos(math.pi * (2 * x + 1) * k / (2 * n))
    matrix[0, :] *= math.sqrt(1.0 / n)
    matrix[1:, :] *= math.sqrt(2.0 / n)
    return matrix


_CLA = _dct_matrix()


def llm_1d_dct(row) -> np.ndarray:
    """Unnormalised 8-point Loeffler-Ligtenberg-Moschytz forward DCT."""
    b = [float(v) for v in np.asarray(row, dtype=np.float64).ravel()[:BLOCK]]
    r = _R
    out = [0.0] * BLOCK
    t0, t7 = b[0] + b[7], b[0] - b[7]
    t1, t6 = b[1] + b[6], b[1] - b[6]
    t2, t5 = b[2] + b[5], b[2] - b[5]
    t3, t4 = b[3] + b[4], b[3] - b[4]

    c0, c3 = t0 + t3, t0 - t3
    c1, c2 = t1 + t2, t1 - t2

    out[0] = c0 + c1
    out[4] = c0 - c1
    out[2] = c2 * r[6] + c3 * r[2]
    out[6] = c3 * r[6] - c2 * r[2]

    c3 = t4 * r[3] + t7 * r[5]
    c0 = t7 * r[3] - t4 * r[5]
    c2 = t5 * r[1] + t6 * r[7]
    c1 = t6 * r[1] - t5 * r[7]

    out[5] = c3 - c1
    out[3] = c0 - c2
    c0 = (c0 + c2) * _INV_SQRT2
    c3 = (c3 + c1) * _INV_SQRT2
    out[1] = c0 + c3
    out[7] = c0 - c3
    return np.array(out, dtype=np.float64)


def llm_1d_idct(row) -> np.ndarray:
    """Unnormalised 8-point LLM inverse DCT."""
    d = [float(v) for v in np.asarray(row, dtype=np.float64).ravel()[:BLOCK]]
    r = _R
    z0 = d[1] + d[7]
    z1 = d[3] + d[5]
    z2 = d[3] + d[7]
    z3 = d[1] + d[5]
    z4 = (z0 + z1) * r[3]

    z0 = z0 * (-r[3] + r[7])
    z1 = z1 * (-r[3] - r[1])
    z2 = z2 * (-r[3] - r[5]) + z4
    z3 = z3 * (-r[3] + r[5]) + z4

    b3 = d[7] * (-r[1] + r[3] + r[5] - r[7]) + z0 + z2
    b2 = d[5] * (r[1] + r[3] - r[5] + r[7]) + z1 + z3
    b1 = d[3] * (r[1] + r[3] + r[5] - r[7]) + z1 + z2
    b0 = d[1] * (r[1] + r[3] - r[5] - r[7]) + z0 + z3

    z4 = (d[2] + d[6]) * r[6]
    z0 = d[0] + d[4]
    z1 = d[0] - d[4]
    z2 = z4 - d[6] * (r[2] + r[6])
    z3 = z4 + d[2] * (r[2] - r[6])
    a0, a3 = z0 + z3, z0 - z3
    a1, a2 = z1 + z2, z1 - z2

    return np.array(
        [a0 + b0, a1 + b1, a2 + b2, a3 + b3, a3 - b3, a2 - b2, a1 - b1, a0 - b0],
        dtype=np.float64,
    )


def bin_1d_dct(row) -> np.ndarray:
    """8-point binDCT (shift-and-add) forward transform on 16-bit integers."""
    b = [int(v) for v in _to_int16(row).ravel()[:BLOCK]]
    s = _s16
    t0 = s(b[0] + b[7])
    t1 = s(b[0] - b[7])
    t2 = s(b[1] + b[6])
    t3 = s(b[1] - b[6])
    t4 = s(b[2] + b[5])
    t5 = s(b[2] - b[5])
    t6 = s(b[3] + b[4])
    t7 = s(b[3] - b[4])

    tmp = s((t5 << 2) - t5)
    t8 = s(t3 + (tmp >> 3))
    tmp = s((t8 << 2) + t8)
    t9 = s((tmp >> 3) - t5)

    t10 = s(t0 + t6)
    t11 = s(t0 - t6)
    t12 = s(t7 + t9)
    t13 = s(t7 - t9)
    t14 = s(t1 - t8)
    t15 = s(t1 + t8)
    t16 = s(t2 + t4)
    t17 = s(t2 - t4)

    tmp = s(t15 >> 3)
    t18 = s(t12 - tmp)
    t19 = s(t10 + t16)
    tmp = s(t19 >> 1)
    t20 = s(tmp - t16)
    tmp = s((t11 << 2) - t11)
    t21 = s(t17 - (tmp >> 3))
    tmp = s((t21 << 2) - t21)
    t22 = s(t11 + (tmp >> 3))
    tmp = s((t14 << 3) - t14)
    t23 = s(t13 + (tmp >> 3))
    tmp = s(t23 >> 1)
    t24 = s(t14 - tmp)

    out = [s(t0 + t6 + t16), s(t1 + t8), t22, t24, t20, t23, t21, t18]
    return np.array(out, dtype=np.int16)


def bin_1d_idct(row) -> np.ndarray:
    """8-point binDCT inverse transform on 16-bit integers."""
    d = [int(v) for v in _to_int16(row).ravel()[:BLOCK]]
    s = _s16
    t0 = s((d[0] >> 1) - d[4])
    t1 = s(d[0] - t0)
    tmp = s((d[6] << 2) - d[6])
    t2 = s(d[2] - (tmp >> 3))
    tmp = s((t2 << 2) - t2)
    t3 = s(d[6] + (tmp >> 3))
    tmp = s(d[5] >> 1)
    t4 = s(d[3] + tmp)
    tmp = s((t4 << 3) - t4)
    t5 = s(d[5] - (tmp >> 3))
    tmp = s(d[1] >> 3)
    t6 = s(d[7] + tmp)
    t7 = s(t0 + t3)
    t8 = s(t0 - t3)
    t9 = s(t1 + t2)
    t10 = s(t1 - t2)
    t11 = s(t5 + t6)
    t12 = s(t6 - t5)
    t13 = s(d[1] - t4)
    t14 = s(d[1] + t4)
    tmp = s((t13 << 2) + t13)
    t15 = s((tmp >> 3) - t12)
    tmp = s((t15 << 2) - t15)
    t16 = s(t13 - (tmp >> 3))

    out = [
        s(t9 + t14),
        s(t7 + t16),
        s(t8 + t15),
        s(t10 + t11),
        s(t10 - t11),
        s(t8 - t15),
        s(t7 - t16),
        s(t9 - t14),
    ]
    return np.array(out, dtype=np.int16)


def _separable(block: np.ndarray, transform, dtype) -> np.ndarray:
    rows = np.array([transform(r) for r in block], dtype=dtype)
    cols = np.array([transform(c) for c in rows.T], dtype=dtype)
    return cols.T.copy()


def llm_2d_dct(block) -> np.ndarray:
    """Row-column LLM forward DCT of an 8x8 block."""
    return _separable(np.asarray(block, dtype=np.float64), llm_1d_dct, np.float64)


def llm_2d_idct(block) -> np.ndarray:
    """Row-column LLM inverse DCT of an 8x8 block, scaled back by 64."""
    return _separable(np.asarray(block, dtype=np.float64), llm_1d_idct, np.float64) / 64


def bin_2d_dct(block) -> np.ndarray:
    """Row-column binDCT forward transform of an 8x8 block."""
    return _separable(_to_int16(block), bin_1d_dct, np.int16)


def bin_2d_idct(block) -> np.ndarray:
    """Row-column binDCT inverse transform of an 8x8 block, scaled back by 16."""
    raw = _separable(_to_int16(block), bin_1d_idct, np.int16)
    return _to_int16(raw.astype(np.float64) / 16)


def _triangle_mask(zone_size: int) -> np.ndarray:
    i, j = np.indices((BLOCK, BLOCK))
    return (i < zone_size) & (j < zone_size - i)


def _square_mask(zone_size: int) -> np.ndarray:
    i, j = np.indices((BLOCK, BLOCK))
    return (i < zone_size) & (j < zone_size)


def triangular_llm_dct(block, zone_size: int) -> np.ndarray:
    """LLM DCT keeping only the coefficients with row + column below zone_size."""
    full = llm_2d_dct(block)
    return np.where(_triangle_mask(zone_size), full, 0.0)


def triangular_bin_dct(block, zone_size: int) -> np.ndarray:
    """binDCT keeping only the coefficients with row + column below zone_size."""
    full = bin_2d_dct(block)
    return np.where(_triangle_mask(zone_size), full, 0).astype(np.int16)


def square_llm_dct(block, zone_size: int) -> np.ndarray:
    """LLM DCT keeping the top-left zone_size x zone_size coefficients."""
    full = llm_2d_dct(block)
    return np.where(_square_mask(zone_size), full, 0.0)


def square_bin_dct(block, zone_size: int) -> np.ndarray:
    """binDCT keeping the top-left zone_size x zone_size coefficients."""
    full = bin_2d_dct(block)
    return np.where(_square_mask(zone_size), full, 0).astype(np.int16)


def dct(block, kind: str, zone_size: int) -> np.ndarray:
    """Forward DCT of an 8x8 block using the named variant."""
    if kind == "CLA":
        b = np.asarray(block, dtype=np.float64)
        return _CLA @ b @ _CLA.T
    transforms = {
        "tLLM": triangular_llm_dct,
        "tBIN": triangular_bin_dct,
        "sLLM": square_llm_dct,
        "sBIN": square_bin_dct,
    }
    try:
        transform = transforms[kind]
    except KeyError:
        raise ValueError(f"unknown DCT kind {kind!r}") from None
    return transform(block, zone_size)


def idct(coefficients, kind: str, zone_size: int) -> np.ndarray:
    """Inverse DCT of an 8x8 coefficient block for the named variant."""
    if kind == "CLA":
        c = np.asarray(coefficients, dtype=np.float64)
        return _CLA.T @ c @ _CLA
    if kind[1:] == "LLM":
        return llm_2d_idct(coefficients)
    if kind[1:] == "BIN":
        return bin_2d_idct(coefficients)
    raise ValueError(f"unknown DCT kind {kind!r}")