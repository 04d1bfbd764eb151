"""Trace records, trace files and parsing of trace and parameter files."""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from .params import (
    CAP_FRAME_IND,
    INPUT_PARAM_KEYWORDS,
    LEVELS_IND,
    RESOL_IND,
    THRESH_IND,
)

FRAME_TRACE = "st-frame"
PACKET_TRACE = "st-packet"
RECEIVED_FRAME_TRACE = "rt-frame"

FRAME_TRACE_HEADER = (
    "#Rank Type Size(Bytes)\trefPSNR\trefSSIM\tbpp\tlayers Size (bits)"
    "\tcaptureEnergy(mJ)\tencodingEnergy(mJ)\tbit rate (kbps)"
)
PACKET_TRACE_HEADER = "#time seqNb pktSize frameNb frameType layerNb \t blocksList"

_INT = re.compile(r"\s*([+-]?\d+)")


class TraceError(Exception):
    """Raised when a trace or parameter file cannot be read or written."""


@dataclass
class FrameRecord:
    """Encoding statistics of one frame; frame_size is in bits."""

    frame_nb: int = 0
    frame_type: str = ""
    frame_size: int = 0
    psnr: float = 0.0
    ssim: float = 0.0
    bpp: float = 0.0
    bit_rate: float = 0.0
    layers_size: list[int] = field(default_factory=list)
    capture_energy: float = 0.0
    encoding_energy: float = 0.0


@dataclass
class PacketRecord:
    """One sent packet; packet_size is in bits."""

    send_time: float = 0.0
    seq_nb: int = 0
    packet_size: int = 0
    frame_nb: int = 0
    frame_type: str = ""
    layer_nb: int = 0
    blocks: list[int] = field(default_factory=list)


@dataclass
class DecodedFrame:
    """A frame rebuilt at the receiver."""

    frame: np.ndarray | None = None
    frame_type: str = "N"
    psnr: float = 0.0
    ssim: float = 0.0


@dataclass
class SequenceCounter:
    """Packet sequence numbers, starting at 1."""

    value: int = 0

    def next(self) -> int:
        self.value += 1
        return self.value


def _stoi(text: str) -> int:
    match = _INT.match(text)
    if match is None:
        raise TraceError(f"not an integer: {text!r}")
    return int(match.group(1))


def _atoi(text: str) -> int:
    match = _INT.match(text)
    return int(match.group(1)) if match else 0


def _tokens(line: str, sep: str = "\t") -> list[str]:
    return [t for t in line.split(sep) if t]


def _num(value: float) -> str:
    return f"{value:g}"


def make_dir(path) -> None:
    """Create a directory; an existing one is fine."""
    try:
        os.mkdir(path, 0o775)
    except FileExistsError:
        pass
    except OSError as exc:
        raise TraceError(f"error while creating directory {path}") from exc


def clear_directory(path) -> None:
    """Remove the files and empty sub-directories held in a directory."""
    try:
        entries = list(os.scandir(path))
    except OSError as exc:
        raise TraceError(f"cannot read directory {path}") from exc
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                os.rmdir(entry.path)
            else:
                os.unlink(entry.path)
        except OSError:
            pass


def create_trace_files(trace_path) -> None:
    """Create the frame and packet trace files with their header lines."""
    Path(trace_path, FRAME_TRACE).write_text(FRAME_TRACE_HEADER + "\n")
    Path(trace_path, PACKET_TRACE).write_text(PACKET_TRACE_HEADER + "\n")


def write_frame_record(record: FrameRecord, trace_path) -> None:
    """Append one frame record to the frame trace."""
    if record.frame_type == "M":
        layers = "".join(f"{size} " for size in record.layers_size)
    else:
        layers = "- " * len(record.layers_size)
    fields = (
        str(record.frame_nb),
        record.frame_type,
        str(math.ceil(record.frame_size / 8.0)),
        f"{record.psnr:.3f}",
        f"{record.ssim:.3f}",
        f"{record.bpp:.3f}",
        layers,
        f"{record.capture_energy:.3f}",
        f"{record.encoding_energy:.3f}",
        f"{record.bit_rate:.3f}",
    )
    with Path(trace_path, FRAME_TRACE).open("a") as out:
        out.write("\t".join(fields) + "\n")


def format_block_list(record: PacketRecord) -> str:
    """Block numbers of a packet: ranges for S packets, a plain list otherwise."""
    blocks = record.blocks
    if record.frame_type != "S":
        return "".join(f"{b} " for b in blocks)
    parts: list[str] = []
    in_run = False
    last = len(blocks) - 1
    for ind, block in enumerate(blocks):
        if ind == 0:
            parts.append(str(block))
        elif block == blocks[ind - 1] + 1:
            if ind == last:
                parts.append(f"-{block}")
            else:
                in_run = True
        elif in_run:
            parts.append(f"-{blocks[ind - 1]} {block}")
            in_run = False
        else:
            parts.append(f" {block}")
    return "".join(parts)


def write_packet_record(record: PacketRecord, trace_path) -> None:
    """Append one packet record to the packet trace."""
    fields = (
        _num(record.send_time),
        str(record.seq_nb),
        _num(math.ceil(record.packet_size / 8.0)),
        str(record.frame_nb),
        record.frame_type,
        str(record.layer_nb),
        format_block_list(record),
    )
    with Path(trace_path, PACKET_TRACE).open("a") as out:
        out.write("\t".join(fields) + "\n")


def write_decoded_frame_record(frame_nb: int, record: DecodedFrame, trace_path) -> None:
    """Append one decoded frame's quality to the received-frame trace."""
    path = Path(trace_path, RECEIVED_FRAME_TRACE)
    try:
        with path.open("a") as out:
            out.write(f"{frame_nb}\t{record.frame_type}\t{record.psnr:.3f}\t{record.ssim:.3f}\n")
    except OSError as exc:
        raise TraceError(f"problem opening file {path}") from exc


def _data_lines(path: Path):
    try:
        with path.open() as src:
            for raw in src:
                line = raw.rstrip("\r\n")
                if line and line[0] not in "# ":
                    yield line
    except OSError as exc:
        raise TraceError(f"error when accessing {path}") from exc


def empty_layers(frame_nb: int, trace_path) -> list[int]:
    """Ranks of the layers of an M frame whose compressed size was zero."""
    empty: list[int] = []
    rank = 0
    for line in _data_lines(Path(trace_path, FRAME_TRACE)):
        tokens = _tokens(line)
        if _stoi(tokens[0]) != frame_nb:
            continue
        if len(tokens) < 7:
            raise TraceError(f"malformed frame trace line: {line!r}")
        for size in _tokens(tokens[6], " "):
            if _stoi(size) == 0:
                empty.append(rank)
            rank += 1
    return empty


def block_origin(block_nb: int, frame_width: int) -> tuple[int, int]:
    """Pixel row and column of the top-left corner of a block."""
    if frame_width <= 0 or frame_width % 8 != 0:
        raise ValueError("frame width must be a positive multiple of 8")
    per_row = frame_width // 8
    return 8 * (block_nb // per_row), 8 * (block_nb % per_row)


def read_input_parameters(path) -> dict[str, int]:
    """Decoding parameters found in an inputParameters file."""
    found: dict[str, int] = {}
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as exc:
        raise TraceError(f"error when accessing {path}") from exc
    for line in text.splitlines():
        tokens = _tokens(line)
        for key, value in zip(tokens[0::2], tokens[1::2]):
            if key == INPUT_PARAM_KEYWORDS[LEVELS_IND]:
                found["levels_nb"] = _atoi(value)
            elif key == INPUT_PARAM_KEYWORDS[THRESH_IND]:
                found["threshold"] = _atoi(value)
            elif key == INPUT_PARAM_KEYWORDS[CAP_FRAME_IND]:
                found["frames_nb"] = _atoi(value)
            elif key == INPUT_PARAM_KEYWORDS[RESOL_IND]:
                width, _, height = value.rpartition("x")
                found["frame_width"] = _stoi(width)
                found["frame_height"] = _stoi(height)
    return found


def parse_received_line(line: str) -> tuple[int, str, int, list[int]]:
    """Frame number, frame type, layer and block numbers of a received packet."""
    tokens = _tokens(line.rstrip("\r\n"))
    if len(tokens) < 7:
        raise TraceError(f"malformed received packet line: {line!r}")
    frame_nb = _stoi(tokens[3])
    frame_type = tokens[4]
    layer_nb = _stoi(tokens[5])
    blocks: list[int] = []
    for item in _tokens(tokens[6], " "):
        begin, dash, end = item.partition("-")
        if dash:
            blocks.extend(range(_stoi(begin), _stoi(end) + 1))
        else:
            blocks.append(_stoi(item))
    return frame_nb, frame_type, layer_nb, blocks