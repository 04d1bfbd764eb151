"""Second (difference) frame encoding against the last main frame."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path

import numpy as np

from .entropy import block_entropy_size, entropy_cycles
from .metrics import load_image, mean_square, psnr, save_image, ssim
from .params import (
    CAPTURE_E_PER_BLOCK,
    CYCLES_PER_ADD,
    CYCLES_PER_MUL,
    MAX_S_LAYERS,
    POWER,
    PROC_CLOCK,
    CodecParams,
    SimParams,
)
from .trace import FrameRecord, PacketRecord, SequenceCounter, write_frame_record, write_packet_record

BLOCK = 8
_MS_LEVELS = (650, 205, 51, 13)


@dataclass
class SecondFrameResult:
    """Outcome of reducing and packetising a difference frame."""

    frame: np.ndarray
    compressed_size: int = 0
    energy: float = 0.0
    packets: list[PacketRecord] = field(default_factory=list)


def block_priority(ms: float) -> int:
    """Priority level (0 highest) of a block from its mean square."""
    for level, bound in enumerate(_MS_LEVELS):
        if ms >= bound:
            return level
    return len(_MS_LEVELS)


def reduce_and_packetize(
    codec: CodecParams,
    sim: SimParams,
    fps: float,
    diff_frame,
    frame_nb: int,
    main_frame_nb: int,
    counter: SequenceCounter,
) -> SecondFrameResult:
    """Threshold the difference frame blockwise and pack the kept blocks by priority."""
    diff = np.asarray(diff_frame, dtype=np.int16)
    rows, cols = diff.shape
    if rows % BLOCK or cols % BLOCK:
        raise ValueError("frame dimensions must be multiples of 8")
    capacity = sim.pkt_payload_size * 8
    result = SecondFrameResult(frame=np.zeros(diff.shape, dtype=np.int16))
    records = [
        PacketRecord(
            send_time=(frame_nb - 1) / fps,
            frame_nb=frame_nb,
            frame_type=f"S{main_frame_nb}",
            layer_nb=k,
        )
        for k in range(MAX_S_LAYERS)
    ]

    def send(record: PacketRecord) -> None:
        record.seq_nb = counter.next()
        write_packet_record(record, sim.trace_path)
        result.packets.append(replace(record, blocks=list(record.blocks)))
        result.compressed_size += record.packet_size

    cycles = rows * cols * (CYCLES_PER_ADD + CYCLES_PER_MUL)
    for i in range(0, rows, BLOCK):
        for j in range(0, cols, BLOCK):
            block_nb = i * cols // 64 + j // BLOCK
            block = diff[i : i + BLOCK, j : j + BLOCK]
            ms = mean_square(block)
            if ms <= 0:
                continue
            priority = block_priority(ms)
            cycles += 192
            kept = np.where(block > codec.threshold, block, 0).astype(np.int16)
            if not kept.any() or priority > codec.max_level_s:
                continue
            result.frame[i : i + BLOCK, j : j + BLOCK] = kept
            linear = kept.ravel()
            record = records[priority]
            prev = record.blocks[-1] if record.blocks else 0
            size = block_entropy_size(codec.entropy_coding, linear, block_nb, prev)
            cycles += entropy_cycles(linear, codec.entropy_coding)
            if size > capacity:
                raise ValueError(
                    f"S very small payload size: block {block_nb} requires {size // 8 + 1} bytes"
                )
            if record.packet_size + size < capacity:
                record.packet_size += size
                record.layer_nb = priority
                record.blocks.append(block_nb)
            else:
                send(record)
                record.blocks = [block_nb]
                record.packet_size = block_entropy_size(codec.entropy_coding, linear, block_nb, 0)
                cycles += entropy_cycles(linear, codec.entropy_coding)

    result.energy = cycles * POWER / PROC_CLOCK / 1000 / 1000
    for record in records:
        if record.packet_size > 0:
            send(record)
    return result


def encode_second_frame(
    codec: CodecParams,
    sim: SimParams,
    fps: float,
    frame,
    frame_nb: int,
    main_frame_nb: int,
    record: FrameRecord,
    counter: SequenceCounter,
) -> np.ndarray:
    """Encode an S frame, trace it and store its reference image."""
    current = np.asarray(frame, dtype=np.uint8)
    ref_main = load_image(Path(sim.reference_frames_dir, f"frame{main_frame_nb}.png"))
    main = load_image(Path(sim.captured_frames_dir, f"frame{main_frame_nb}.png"))
    diff = current.astype(np.int16) - main.astype(np.int16)
    result = reduce_and_packetize(codec, sim, fps, diff, frame_nb, main_frame_nb, counter)
    record.frame_size = result.compressed_size
    record.encoding_energy = result.energy

    reconstructed = np.clip(ref_main.astype(np.int32) + result.frame, 0, 255).astype(np.uint8)
    save_image(Path(sim.reference_frames_dir, f"frame{frame_nb}.png"), reconstructed)

    rows, cols = current.shape
    record.bpp = record.frame_size / (rows * cols)
    record.bit_rate = record.frame_size * fps / 1000
    record.psnr = psnr(current, reconstructed)
    record.ssim = ssim(current, reconstructed)
    record.capture_energy = CAPTURE_E_PER_BLOCK * (rows * cols // 64) / 1000
    write_frame_record(record, sim.trace_path)
    return reconstructed