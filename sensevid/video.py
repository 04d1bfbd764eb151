"""Frame capture, video encoding and reconstruction of the received video."""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
from PIL import Image

from .mainframe import encode_main_frame, quantise_frame, reference_frame
from .metrics import load_image, mse, psnr, save_image, ssim
from .params import CodecParams, ParameterError, SimParams, VideoParams
from .secondframe import encode_second_frame
from .trace import (
    DecodedFrame,
    FrameRecord,
    SequenceCounter,
    TraceError,
    block_origin,
    clear_directory,
    empty_layers,
    parse_received_line,
    write_decoded_frame_record,
)

BLOCK = 8
_BLUR_ROWS = 36
_BLUR_COLS = 8


def _to_gray(frame: np.ndarray) -> np.ndarray:
    arr = np.asarray(frame)
    if arr.ndim == 2:
        return arr.astype(np.uint8)
    rgb = arr[..., :3].astype(np.float64)
    gray = rgb[..., 0] * 0.299 + rgb[..., 1] * 0.587 + rgb[..., 2] * 0.114
    return np.clip(np.rint(gray), 0, 255).astype(np.uint8)


def capture_frames(video: VideoParams, captured_dir) -> int:
    """Sample the video at the target rate into grayscale PNG frames."""
    import imageio.v2 as iio

    if video.fps <= 0:
        raise ParameterError("target frame rate must be positive")
    step = math.floor(video.orig_fps / video.fps)
    if step <= 0:
        raise ParameterError("target frame rate exceeds the original one")
    try:
        reader = iio.get_reader(video.video_file)
    except Exception as exc:
        raise ParameterError(f"problem opening {video.video_file}") from exc
    clear_directory(captured_dir)
    count = 0
    try:
        for index, frame in enumerate(reader):
            if index % step:
                continue
            gray = _to_gray(frame)
            if (video.frame_width, video.frame_height) != (
                video.orig_frame_width,
                video.orig_frame_height,
            ):
                image = Image.fromarray(gray).resize(
                    (video.frame_width, video.frame_height), Image.BILINEAR
                )
                gray = np.array(image, dtype=np.uint8)
            count += 1
            save_image(Path(captured_dir, f"frame{count}.png"), gray)
    finally:
        reader.close()
    return count


def encode_video(codec: CodecParams, video: VideoParams, sim: SimParams) -> list[FrameRecord]:
    """Encode every captured frame as an M or S frame and trace the results."""
    if codec.codec != "SMPEG":
        raise ParameterError("only SMPEG is implemented")
    counter = SequenceCounter()
    records: list[FrameRecord] = []
    main_frame_nb = 1
    main_frame = None
    for nb in range(1, video.frames_nb + 1):
        current = load_image(Path(sim.captured_frames_dir, f"frame{nb}.png"))
        record = FrameRecord(frame_nb=nb, layers_size=[0] * codec.levels_nb)
        distance = math.sqrt(mse(current, main_frame)) if main_frame is not None else 0.0
        if main_frame is None or distance > codec.gop_coef:
            main_frame_nb = nb
            main_frame = current.copy()
            record.frame_type = "M"
            encode_main_frame(codec, video, sim, current, nb, record, counter)
        else:
            record.frame_type = "S"
            encode_second_frame(codec, sim, video.fps, current.copy(), nb, main_frame_nb, record, counter)
        records.append(record)
    return records


def last_received_frame(index: int) -> int:
    """Index of the frame to show in place of a missing one, or -1."""
    return index - 1 if index > 0 else -1


def fill_layer(block: np.ndarray, layer_nb: int, layers_nb: int) -> None:
    """Mark in a block mask the coefficients belonging to a layer."""
    if layer_nb == 0:
        block[0, 0] = 1
    if layer_nb == 12:
        block[7, 7] = 1
    if layer_nb <= 6:
        x, y = 0, layer_nb + 1
        while y >= 0:
            block[x, y] = 1
            x += 1
            y -= 1
    else:
        x, y = 7, layer_nb - 6
        while y <= 7:
            block[x, y] = 1
            x -= 1
            y += 1
    if layer_nb == layers_nb - 1:
        i, j = np.indices(block.shape)
        block[i + j >= layers_nb] = 1


def fill_in_main_frame(frame: np.ndarray, blocks, layer_nb: int, layers_nb: int) -> None:
    """Mark a layer received in every block from blocks[0] to blocks[1]."""
    if len(blocks) < 2:
        raise ValueError("an M packet names a first and a last block")
    width = frame.shape[1]
    for nb in range(blocks[0], blocks[1] + 1):
        r, c = block_origin(nb, width)
        fill_layer(frame[r : r + BLOCK, c : c + BLOCK], layer_nb, layers_nb)


def decode_second_frame(frame: np.ndarray, blocks) -> None:
    """Mark every listed block of an S frame as received."""
    if len(blocks) < 1:
        raise ValueError("an S packet names at least one block")
    width = frame.shape[1]
    for nb in blocks:
        r, c = block_origin(nb, width)
        frame[r : r + BLOCK, c : c + BLOCK] = 1


def _blur_block(frame: np.ndarray, i: int, j: int) -> None:
    top, left = _BLUR_ROWS // 2, _BLUR_COLS // 2
    padded = np.pad(
        frame.astype(np.float64),
        ((top, _BLUR_ROWS - top - 1), (left, _BLUR_COLS - left - 1)),
        mode="reflect",
    )
    out = np.empty((BLOCK, BLOCK), dtype=np.float64)
    for r in range(BLOCK):
        for c in range(BLOCK):
            out[r, c] = padded[i + r : i + r + _BLUR_ROWS, j + c : j + c + _BLUR_COLS].mean()
    frame[i : i + BLOCK, j : j + BLOCK] = np.clip(np.rint(out), 0, 255).astype(np.uint8)


def _zero_blocks(frame: np.ndarray):
    rows, cols = frame.shape
    for i in range(0, rows, BLOCK):
        for j in range(0, cols, BLOCK):
            if not frame[i : i + BLOCK, j : j + BLOCK].any():
                yield i, j


def build_received_video(codec: CodecParams, video: VideoParams, sim: SimParams) -> list[DecodedFrame]:
    """Rebuild the video from a received-packet trace and trace its quality."""
    if video.frames_nb <= 0:
        raise TraceError("no frame received")
    shape = (video.frame_height, video.frame_width)
    decoded = [DecodedFrame(frame=np.zeros(shape, dtype=np.uint8)) for _ in range(video.frames_nb)]
    all_blocks = [0, video.frame_width * video.frame_height // 64 - 1]

    try:
        with open(sim.rt_file) as src:
            lines = [line.rstrip("\r\n") for line in src]
    except OSError as exc:
        raise TraceError(f"error when accessing {sim.rt_file}") from exc

    for line in lines:
        if not line or line[0] in "# ":
            continue
        frame_nb, frame_type, layer_nb, blocks = parse_received_line(line)
        if not 1 <= frame_nb <= len(decoded):
            raise TraceError(f"frame {frame_nb} out of range")
        target = decoded[frame_nb - 1]
        if frame_type == "M":
            if target.frame_type == "N":
                for layer in empty_layers(frame_nb, sim.trace_path):
                    fill_in_main_frame(target.frame, all_blocks, layer, codec.levels_nb)
            fill_in_main_frame(target.frame, blocks, layer_nb, codec.levels_nb)
        if frame_type.startswith("S"):
            decode_second_frame(target.frame, blocks)
        target.frame_type = frame_type

    for ind, item in enumerate(decoded):
        reference = load_image(Path(sim.reference_frames_dir, f"frame{ind + 1}.png"))
        if item.frame_type == "N":
            last = last_received_frame(ind)
            if last >= 0:
                item.frame = decoded[last].frame
        if item.frame_type == "M":
            captured = load_image(Path(sim.captured_frames_dir, f"frame{ind + 1}.png"))
            quantised = quantise_frame(codec, captured)
            masked = item.frame.astype(np.int16) * quantised
            item.frame = reference_frame(codec, masked)
            for i, j in list(_zero_blocks(item.frame)):
                _blur_block(item.frame, i, j)
        if item.frame_type.startswith("S"):
            item.frame = np.clip(item.frame.astype(np.int32) * reference, 0, 255).astype(np.uint8)
            main_nb = int(item.frame_type[1:])
            if decoded[main_nb - 1].frame_type == "N":
                item.frame_type = "N"
                last = last_received_frame(ind)
                if last >= 0:
                    item.frame = decoded[last].frame
                continue
            item.frame_type = "S"
            main = load_image(Path(sim.decoded_frames_dir, f"frame{main_nb}.png"))
            for i, j in list(_zero_blocks(item.frame)):
                item.frame[i : i + BLOCK, j : j + BLOCK] = main[i : i + BLOCK, j : j + BLOCK]

        original = load_image(Path(sim.captured_frames_dir, f"frame{ind + 1}.png"))
        item.psnr = psnr(item.frame, original)
        item.ssim = ssim(item.frame, original)
        write_decoded_frame_record(ind + 1, item, sim.trace_path)
        save_image(Path(sim.decoded_frames_dir, f"frame{ind + 1}.png"), item.frame)
    return decoded