"""Entropy coders for quantised coefficient layers: Exp-Golomb, RLE+EG, Huffman."""

from __future__ import annotations

import numpy as np


class EntropyError(ValueError):
    """Raised when a layer cannot be entropy coded."""


DC_HUFFMAN = (
    "00", "010", "011", "100", "101", "110", "1110",
    "11110", "111110", "1111110", "11111110", "111111110",
)

_P = "111111111"

# Rows are zero-run lengths, columns amplitude sizes.
AC_HUFFMAN = (
    ("00", "01", "100", "1011", "11010", "1111000", "11111000", "1111110110",
     _P + "0000010", _P + "0000011"),
    ("1100", "11011", "1111001", "111110110", "11111110110", _P + "0000100",
     _P + "0000101", _P + "0000110", _P + "0000111", "11111111100001000"),
    ("11100", "11111001", "1111110111", "111111110100", _P + "0001001",
     _P + "0001010", _P + "0001011", _P + "0001100", _P + "0001101", _P + "0001110"),
    ("111010", "111110111", "111111110101", _P + "0001111", _P + "0010000",
     _P + "0010001", _P + "0010010", _P + "0010011", _P + "0010100", _P + "0010101"),
    ("111011", "1111111000", _P + "0010110", _P + "0010111", _P + "0011000",
     _P + "0011001", _P + "0011010", _P + "0011011", _P + "0011100", _P + "0011101"),
    ("1111010", "11111110111", _P + "0011110", _P + "0011111", _P + "0100000",
     _P + "0100001", _P + "0100010", _P + "0100011", _P + "0100100", _P + "0100101"),
    ("1111011", "111111110110", _P + "0100110", _P + "0100111", _P + "0101000",
     _P + "0101001", _P + "0101010", _P + "0101011", _P + "0101100", _P + "0101101"),
    ("11111010", "111111110111", _P + "0101110", _P + "0101111", _P + "0110000",
     _P + "0110001", _P + "0110010", _P + "0110011", _P + "0110100", _P + "0110101"),
    ("111111000", "111111111000000", _P + "0110110", _P + "0110111", _P + "0111000",
     _P + "0111001", _P + "0111010", _P + "0111011", _P + "0111100", _P + "0111101"),
    ("111111001", _P + "0111110", _P + "0111111", _P + "1000000", _P + "1000000",
     _P + "1000010", _P + "1000011", _P + "1000100", _P + "1000101", _P + "1000110"),
    ("111111010", _P + "1000111", _P + "1001000", _P + "1001001", _P + "1001010",
     _P + "1001011", _P + "1001100", _P + "1001101", _P + "1001110", _P + "1001111"),
    ("1111111001", _P + "1010000", _P + "1010001", _P + "1010010", _P + "1010011",
     _P + "1010100", _P + "1010101", _P + "1010110", _P + "1010111", _P + "1011000"),
    ("1111111010", _P + "1011001", _P + "1011010", _P + "1011011", _P + "1011100",
     _P + "1011101", _P + "1011110", _P + "1011111", _P + "1100000", _P + "1100001"),
    ("11111111000", _P + "1100010", _P + "1100011", _P + "1100100", _P + "1100101",
     _P + "1100110", _P + "1100111", _P + "1101000", _P + "1101001", _P + "1101010"),
    (_P + "1101011", _P + "1101100", _P + "1101101", _P + "1101110", _P + "1101111",
     _P + "1110000", _P + "1110001", _P + "1110010", _P + "1110011", _P + "1110100"),
    (_P + "1110101", _P + "1110110", _P + "1110111", _P + "1111000", _P + "1111001",
     _P + "1111010", _P + "1111011", _P + "1111100", _P + "1111101", _P + "1111110"),
)

_AC_FLAT = tuple(code for row in AC_HUFFMAN for code in row)
_AC_COLUMNS = len(AC_HUFFMAN[0])
MAX_AMPLITUDE_SIZE = 10


def _values(values) -> list[int]:
    return [int(v) for v in np.asarray(values).ravel()]


def _ac_code(run: int, size: int) -> str:
    # A size of 10 runs over into the first column of the next row.
    index = run * _AC_COLUMNS + size
    if index >= len(_AC_FLAT):
        raise EntropyError(f"no Huffman code for run {run}, size {size}")
    return _AC_FLAT[index]


def dec2bin(value: int, bits: int) -> str:
    """The low `bits` bits of |value| as a binary string."""
    if bits <= 0:
        return ""
    return format(abs(int(value)) & ((1 << bits) - 1), f"0{bits}b")


def amplitude_size(value: int) -> int:
    """Number of bits needed to represent |value|; 0 for 0."""
    return abs(int(value)).bit_length()


def bias_encode(value: int) -> int:
    """Map a negative amplitude onto its one's-complement code; keep others."""
    value = int(value)
    if value < 0:
        return value + (1 << amplitude_size(value)) - 1
    return value


def group_id(n: int) -> int:
    """floor(log2(n + 1)) for positive n, as used by the Exp-Golomb coder."""
    g = 2
    while n > (1 << g) - 2:
        g += 1
    return g - 1


def exp_golomb(value: int) -> str:
    """Signed Exp-Golomb code of one value."""
    value = int(value)
    mapped = 2 * value if value >= 0 else -2 * value - 1
    if mapped == 0:
        return "0"
    g = group_id(mapped)
    index = mapped - ((1 << g) - 1)
    return "1" * g + "0" + dec2bin(index, g)


def truncate_trailing_zeros(values) -> list[int]:
    """Values up to and including the last non-zero one."""
    items = _values(values)
    while items and items[-1] == 0:
        items.pop()
    return items


def encode_eg(values) -> str:
    """Exp-Golomb code every value, drop trailing zeros and append EOB."""
    codes = [exp_golomb(v) for v in _values(values)]
    while codes and codes[-1] == "0":
        codes.pop()
    return "".join(codes) + "00"


def encode_rle(values) -> list[int]:
    """Run-length encode zeros as (0, count) pairs, ending with (0, 0)."""
    items = _values(values)
    if not any(items):
        return [0, 0]
    rle: list[int] = []
    run = 0
    last = len(items) - 1
    for j, v in enumerate(items):
        if v != 0 or j == last:
            rle.append(v)
        else:
            run += 1
            if v != items[j + 1]:
                rle.extend((0, run))
                run = 0
    while rle and rle[-1] == 0:
        rle.pop()
    rle.extend((0, 0))
    return rle


def encode_rle_eg(values) -> str:
    """Exp-Golomb code the run-length encoding of the values."""
    return "".join(exp_golomb(v) for v in encode_rle(values))


def _amplitude_code(run: int, value: int) -> str:
    size = amplitude_size(value)
    if size > MAX_AMPLITUDE_SIZE:
        raise EntropyError(f"amplitude size {size} exceeds {MAX_AMPLITUDE_SIZE}")
    return _ac_code(run, size) + dec2bin(bias_encode(value), size)


def encode_huffman(values) -> str:
    """JPEG-style AC Huffman coding of (run, size) symbols plus amplitudes."""
    items = _values(values)
    out: list[str] = []
    run = 0
    i = 0
    while i < len(items):
        value = items[i]
        if value != 0:
            out.append(_amplitude_code(run, value))
        elif i < len(items) - 1:
            run += 1
            nxt = items[i + 1]
            if nxt != 0:
                while run >= 15:
                    out.append(AC_HUFFMAN[15][0])
                    run -= 15
                out.append(_amplitude_code(run, nxt))
                run = 0
                i += 1
        i += 1
    out.append(AC_HUFFMAN[0][0])
    return "".join(out)


def _dc_code(dc: int) -> str:
    size = amplitude_size(dc)
    if size >= len(DC_HUFFMAN):
        raise EntropyError(f"DC amplitude size {size} has no Huffman code")
    return DC_HUFFMAN[size] + dec2bin(bias_encode(dc), size)


def entropy_code(layer, layer_nb: int, coder: str) -> str:
    """Bit string for one layer; layer 0 carries the DC coefficient first."""
    items = _values(layer)
    if coder == "EG":
        return encode_eg(items)
    if coder == "RLE_EG":
        if layer_nb == 0:
            dc = items[0]
            size = amplitude_size(dc)
            head = dec2bin(size, 4) + dec2bin(bias_encode(dc), size)
            return head + encode_rle_eg(items[1:])
        return encode_rle_eg(items)
    if coder == "HUFFMAN":
        if layer_nb == 0:
            return _dc_code(items[0]) + encode_huffman(truncate_trailing_zeros(items[1:]))
        return encode_huffman(truncate_trailing_zeros(items))
    raise EntropyError(f"unrecognised entropy coder {coder!r}")


def block_entropy_size(coder: str, linear_block, block_nb: int, prev_block_nb: int) -> int:
    """Bits needed for a differentially numbered, entropy-coded S-frame block."""
    delta = block_nb - prev_block_nb
    size = amplitude_size(delta)
    header = dec2bin(size, 4) + dec2bin(bias_encode(delta), size)
    return len(header + entropy_code(linear_block, 5, coder))


def entropy_cycles(values, coder: str) -> int:
    """Estimated processor cycles spent by the coder on the values."""
    if coder != "EG":
        return 0
    cycles = 0
    for v in _values(values):
        mapped = 2 * v if v >= 0 else -2 * v - 1
        cycles += 1 if mapped == 0 else group_id(mapped) * 3 + 7
    return cycles