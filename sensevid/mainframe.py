"""Main (intra) frame encoding: quantisation, layering, packetisation, energy."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

import numpy as np

from .dct import dct, idct
from .entropy import entropy_code, entropy_cycles
from .metrics import psnr, save_image, ssim
from .params import (
    CAPTURE_E_PER_BLOCK,
    CLA_ADD_NB,
    CLA_MUL_NB,
    CYCLES_PER_ADD,
    CYCLES_PER_FADD,
    CYCLES_PER_FMUL,
    CYCLES_PER_MUL,
    CYCLES_PER_SHIFT,
    POWER,
    PROC_CLOCK,
    CodecParams,
    SimParams,
    VideoParams,
)
from .trace import (
    FrameRecord,
    PacketRecord,
    SequenceCounter,
    write_frame_record,
    write_packet_record,
)

BLOCK = 8

_BASE_QUANTISATION = np.array(
    [
        [16, 11, 10, 16, 24, 40, 51, 61],
        [12, 12, 14, 19, 26, 58, 60, 55],
        [14, 13, 16, 24, 40, 57, 69, 56],
        [14, 17, 22, 29, 51, 87, 80, 62],
        [18, 22, 37, 56, 68, 109, 103, 77],
        [24, 35, 55, 64, 81, 104, 113, 92],
        [49, 64, 78, 87, 103, 121, 120, 101],
        [72, 92, 95, 98, 112, 100, 103, 99],
    ],
    dtype=np.int64,
)

_LAYER_START = (0, 3, 6, 10, 15, 21, 28, 36, 43, 49, 54, 58, 61)

# Operation counts of the 1-D transforms per zone size, and their running sums.
_LLM_ADD = (0, 6, 20, 23, 24, 35, 26, 28, 29)
_ACC_LLM_ADD = (0, 6, 26, 49, 73, 98, 124, 152, 181)
_LLM_MUL = (0, 0, 6, 8, 9, 9, 10, 11, 11)
_ACC_LLM_MUL = (0, 0, 6, 14, 23, 32, 42, 53, 64)
_BIN_ADD = (0, 7, 13, 19, 27, 28, 28, 28, 30)
_ACC_BIN_ADD = (0, 7, 20, 39, 66, 94, 122, 150, 180)
_BIN_SHIFT = (0, 0, 2, 6, 11, 12, 12, 12, 13)
_ACC_BIN_SHIFT = (0, 0, 2, 8, 19, 31, 43, 55, 68)


@dataclass
class LayerInfo:
    """One priority layer of a block: its raw coefficients and coded bits."""

    layer_nb: int
    layer_data: str = ""
    raw_data: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int16))
    entropy_cycles: int = 0

    @property
    def layer_size(self) -> int:
        return len(self.layer_data)


def _saturate_int16(values) -> np.ndarray:
    return np.clip(np.rint(values), -32768, 32767).astype(np.int16)


def _block_origins(shape):
    rows, cols = shape
    if rows % BLOCK or cols % BLOCK:
        raise ValueError("frame dimensions must be multiples of 8")
    for i in range(0, rows, BLOCK):
        for j in range(0, cols, BLOCK):
            yield i, j


def quantisation_matrix(quality: int) -> np.ndarray:
    """JPEG luminance quantisation table scaled for a quality coefficient."""
    quality = int(quality)
    if quality <= 0:
        raise ValueError("quality coefficient must be positive")
    scale = 5000 // quality if quality < 50 else 200 - 2 * quality
    table = np.trunc((scale * _BASE_QUANTISATION + 50) / 100).astype(np.int64)
    table[table == 0] = 1
    return table.astype(np.float64)


def quantise_frame(codec: CodecParams, frame) -> np.ndarray:
    """Blockwise DCT and quantisation of an 8-bit frame into 16-bit coefficients."""
    pixels = np.asarray(frame)
    table = quantisation_matrix(codec.quality_coef)
    out = np.zeros(pixels.shape, dtype=np.int16)
    for i, j in _block_origins(pixels.shape):
        block = pixels[i : i + BLOCK, j : j + BLOCK].astype(np.float64) - 128
        coefficients = np.asarray(dct(block, codec.dct, codec.zone_size), dtype=np.float64)
        out[i : i + BLOCK, j : j + BLOCK] = _saturate_int16(coefficients / table)
    return out


def reference_frame(codec: CodecParams, quantised) -> np.ndarray:
    """Reconstruct the 8-bit frame the decoder sees from quantised coefficients."""
    coefficients = np.asarray(quantised)
    table = quantisation_matrix(codec.quality_coef)
    out = np.zeros(coefficients.shape, dtype=np.uint8)
    for i, j in _block_origins(coefficients.shape):
        dequantised = coefficients[i : i + BLOCK, j : j + BLOCK].astype(np.float64) * table
        pixels = np.asarray(idct(dequantised, codec.dct, codec.zone_size), dtype=np.float64)
        shifted = _saturate_int16(pixels).astype(np.int32) + 128
        out[i : i + BLOCK, j : j + BLOCK] = np.clip(shifted, 0, 255).astype(np.uint8)
    return out


def zigzag_scan(block) -> np.ndarray:
    """Coefficients of a block in JPEG zigzag order."""
    arr = np.asarray(block)
    rows, cols = arr.shape

    def order(cell):
        r, c = cell
        diagonal = r + c
        return diagonal, r if diagonal % 2 else -r

    cells = sorted(((r, c) for r in range(rows) for c in range(cols)), key=order)
    return np.array([arr[r, c] for r, c in cells], dtype=np.int16)


def make_layers(codec: CodecParams, record: FrameRecord, zigzag) -> list[LayerInfo]:
    """Split a zigzag-ordered block into coded priority layers.

    The size of every layer is added to the frame record.
    """
    values = np.asarray(zigzag).ravel()
    starts = list(_LAYER_START)
    levels = codec.levels_nb
    zone = codec.zone_size
    kind = codec.dct

    if kind == "CLA":
        end = len(values)
    elif kind in ("sLLM", "sBIN"):
        end = len(values)
        max_levels = 2 * (zone - 1)
        levels = min(levels, max_levels)
        step = zone - 1
        for i in range(zone, max_levels):
            value = starts[i - 1] + step
            if i < len(starts):
                starts[i] = value
            else:
                starts.append(value)
            step -= 1
    elif kind in ("tLLM", "tBIN"):
        levels = min(levels, zone - 1)
        end = starts[zone - 1]
    else:
        raise ValueError(f"unknown DCT kind {kind!r}")

    if len(record.layers_size) < levels:
        record.layers_size.extend([0] * (levels - len(record.layers_size)))

    layers: list[LayerInfo] = []
    level_start = 0
    for nb in range(levels):
        if nb < levels - 1:
            if nb + 1 >= len(starts):
                raise ValueError(f"too many priority levels: {codec.levels_nb}")
            raw = values[starts[nb] : starts[nb + 1]]
        else:
            raw = values[level_start:end]
        level_start += len(raw)
        data = entropy_code(raw, nb, codec.entropy_coding)
        if data == "00":
            data = ""
        layer = LayerInfo(
            layer_nb=nb,
            layer_data=data,
            raw_data=raw.astype(np.int16),
            entropy_cycles=entropy_cycles(raw, codec.entropy_coding),
        )
        record.layers_size[nb] += layer.layer_size
        layers.append(layer)
    return layers


def block_compressed_size(layers) -> int:
    """Total coded bits of a block's layers, kept in 16 bits."""
    return sum(layer.layer_size for layer in layers) & 0xFFFF


def encoding_energy_main(codec: CodecParams, blocks_nb: int) -> float:
    """Estimated DCT and quantisation energy (mJ) for an M frame."""
    kind = codec.dct
    z = codec.zone_size
    if kind == "CLA":
        dct_cycles = CLA_ADD_NB * CYCLES_PER_FADD + CLA_MUL_NB * CYCLES_PER_FMUL
        quant_cycles = 64 * CYCLES_PER_FMUL
    else:
        shape, family = kind[:1], kind[1:]
        if shape == "t":
            quant_cycles = z * (z + 1) // 2
            add_llm = _LLM_ADD[z] * z + _ACC_LLM_ADD[z]
            mul_llm = _LLM_MUL[z] * z + _ACC_LLM_MUL[z]
            add_bin = _BIN_ADD[z] * z + _ACC_BIN_ADD[z]
            shift_bin = _BIN_SHIFT[z] * z + _ACC_BIN_SHIFT[z]
        elif shape == "s":
            quant_cycles = z * z
            add_llm = _LLM_ADD[z] * (z + 8)
            mul_llm = _LLM_MUL[z] * (z + 8)
            add_bin = _BIN_ADD[z] * (z + 8)
            shift_bin = _BIN_SHIFT[z] * (z + 8)
        else:
            raise ValueError(f"unknown DCT kind {kind!r}")
        if family == "LLM":
            quant_cycles *= CYCLES_PER_FMUL
            dct_cycles = CYCLES_PER_FADD * add_llm + CYCLES_PER_FMUL * mul_llm
        elif family == "BIN":
            quant_cycles *= CYCLES_PER_MUL
            dct_cycles = CYCLES_PER_ADD * add_bin + CYCLES_PER_SHIFT * shift_bin
        else:
            raise ValueError(f"unknown DCT kind {kind!r}")
    energy = ((quant_cycles + dct_cycles) * blocks_nb // 1000) * POWER / PROC_CLOCK
    return energy / 1000.0


@dataclass
class MainFramePacketizer:
    """Groups the layers of successive blocks of an M frame into packets, one stream per layer."""

    video: VideoParams
    sim: SimParams
    frame_nb: int
    counter: SequenceCounter
    sent: list[PacketRecord] = field(default_factory=list, init=False)
    _records: dict[int, PacketRecord] = field(default_factory=dict, init=False, repr=False)

    def _send(self, record: PacketRecord, block_nb: int) -> None:
        record.seq_nb = self.counter.next()
        record.blocks.append(block_nb)
        write_packet_record(record, self.sim.trace_path)
        self.sent.append(replace(record, blocks=list(record.blocks)))
        record.blocks = [block_nb + 1]

    def add_block(self, block_nb: int, layers) -> None:
        """Add one block's layers, writing every packet that fills up."""
        capacity = self.sim.pkt_payload_size * 8
        last_block = self.video.blocks_per_frame - 1
        for k, layer in enumerate(layers):
            size = layer.layer_size
            if size > capacity:
                raise ValueError(f"M very small payload size: a layer needs {size} bits")
            record = self._records.get(k)
            if block_nb == 0 or record is None:
                record = PacketRecord(
                    send_time=(self.frame_nb - 1) / self.video.fps,
                    frame_nb=self.frame_nb,
                    frame_type="M",
                    layer_nb=k,
                    blocks=[block_nb],
                )
                self._records[k] = record
            if record.packet_size + size < capacity:
                record.packet_size += size
                record.layer_nb = k
                if block_nb == last_block and record.packet_size > 0:
                    self._send(record, block_nb)
            elif record.packet_size > 0:
                self._send(record, block_nb)
                record.packet_size = 0


def encode_main_frame(
    codec: CodecParams,
    video: VideoParams,
    sim: SimParams,
    frame,
    frame_nb: int,
    record: FrameRecord,
    counter: SequenceCounter,
) -> np.ndarray:
    """Encode and packetise an M frame, trace it and store its reference image."""
    pixels = np.asarray(frame, dtype=np.uint8)
    quantised = quantise_frame(codec, pixels)
    reference = reference_frame(codec, quantised)

    packetizer = MainFramePacketizer(video, sim, frame_nb, counter)
    side = codec.zone_size if codec.dct.startswith("s") else BLOCK
    rows, cols = pixels.shape
    compressed = 0
    cycles = 0
    for i, j in _block_origins(pixels.shape):
        zigzag = zigzag_scan(quantised[i : i + side, j : j + side])
        layers = make_layers(codec, record, zigzag)
        cycles += sum(layer.entropy_cycles for layer in layers)
        compressed += block_compressed_size(layers)
        packetizer.add_block(i * cols // 64 + j // BLOCK, layers)

    pixel_count = rows * cols
    blocks_nb = pixel_count // 64
    record.psnr = psnr(reference, pixels)
    record.ssim = ssim(reference, pixels)
    record.frame_size = compressed
    record.bpp = compressed / pixel_count
    record.bit_rate = compressed * video.fps / 1000
    record.capture_energy = CAPTURE_E_PER_BLOCK * blocks_nb / 1000
    record.encoding_energy = (
        encoding_energy_main(codec, blocks_nb) + cycles * POWER / PROC_CLOCK / 1e6
    )
    write_frame_record(record, sim.trace_path)
    save_image(Path(sim.reference_frames_dir, f"frame{record.frame_nb}.png"), reference)
    return reference