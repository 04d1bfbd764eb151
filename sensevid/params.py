"""Codec, video and simulation parameters and the input-parameters file."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path

MAX_S_LAYERS = 5
MAX_M_LAYERS = 13

# Energy model of the sensor node.
POWER = 23  # mW
PROC_CLOCK = 7.3728  # MHz
CAPTURE_E_PER_BLOCK = 2.65  # uJ
CYCLES_PER_DIV = 300
CYCLES_PER_ADD = 1
CYCLES_PER_FADD = 20
CYCLES_PER_SHIFT = 1
CYCLES_PER_MUL = 2
CYCLES_PER_FMUL = 100
CLA_ADD_NB = 464
CLA_MUL_NB = 192

INPUT_PARAM_KEYWORDS = (
    "CODEC",
    "GOP coef.",
    "Quality coef.",
    "M levels nb",
    "DCT",
    "Zone size",
    "Threshold",
    "Max. considered S level",
    "Entropy coding",
    "Original resolution",
    "Target resolution",
    "Original FPS",
    "Target FPS",
    "Captured Frames",
    "Simulation Id",
    "Packet payload size",
    "Output directory",
)
LEVELS_IND = 3
THRESH_IND = 6
RESOL_IND = 10
CAP_FRAME_IND = 13

INPUT_PARAMETERS_FILE = "inputParameters"


class ParameterError(ValueError):
    """Raised for invalid or unobtainable parameters."""


def _num(value: float) -> str:
    """Render a floating-point value the way a default C++ stream does."""
    return f"{value:g}"


@dataclass
class CodecParams:
    """Encoder settings."""

    codec: str = "SMPEG"
    threshold: int = 1
    gop_coef: float = 0.0
    quality_coef: int = 10
    levels_nb: int = 1
    dct: str = "tBIN"
    zone_size: int = 8
    entropy_coding: str = "EG"
    max_level_s: int = 0


@dataclass
class VideoParams:
    """Properties of the source video and of the captured frames."""

    video_file: str = ""
    video_name: str = ""
    frames_nb: int = 0
    orig_frames_nb: int = 0
    frame_height: int = 0
    orig_frame_height: int = 0
    frame_width: int = 0
    orig_frame_width: int = 0
    fps: float = 0.0
    orig_fps: float = 0.0

    @property
    def blocks_per_frame(self) -> int:
        return self.frame_height * self.frame_width // 64

    def read_source_properties(self) -> None:
        """Read size, frame rate and frame count from the video file."""
        import imageio.v2 as iio

        try:
            reader = iio.get_reader(self.video_file)
        except Exception as exc:
            raise ParameterError(f"problem opening video file {self.video_file}") from exc
        try:
            meta = reader.get_meta_data()
            size = meta.get("size")
            if size:
                width, height = int(size[0]), int(size[1])
            else:
                height, width = reader.get_data(0).shape[:2]
            self.orig_frame_width = int(width)
            self.orig_frame_height = int(height)
            self.orig_fps = float(meta.get("fps", 0.0) or 0.0)
            self.orig_frames_nb = _count_frames(reader)
        except ParameterError:
            raise
        except Exception as exc:
            raise ParameterError(f"problem reading video file {self.video_file}") from exc
        finally:
            reader.close()


def _count_frames(reader) -> int:
    counter = getattr(reader, "count_frames", None)
    if callable(counter):
        try:
            return int(counter())
        except Exception:
            pass
    length = reader.get_length()
    if isinstance(length, (int, float)) and math.isfinite(length):
        return int(length)
    return sum(1 for _ in reader)


@dataclass
class SimParams:
    """Network simulation settings and output locations."""

    sim_id: str = "sim"
    pkt_payload_size: int = 96
    rt_file: str = ""
    output_dir: str = "./"
    trace_path: str = ""
    captured_frames_dir: str = ""
    reference_frames_dir: str = ""
    decoded_frames_dir: str = ""

    def configure_paths(self, video_name: str) -> None:
        """Derive the trace path and frame directories from the video name."""
        self.trace_path = f"{self.output_dir}/{video_name}-{self.sim_id}"
        self.captured_frames_dir = f"{self.trace_path}/capturedFrames"
        self.reference_frames_dir = f"{self.trace_path}/referenceFrames"
        self.decoded_frames_dir = f"{self.trace_path}/decodedFrames"


def video_name_from_path(path: str) -> str:
    """The file name of the video without directory and extension."""
    start = path.rfind("/") + 1
    dot = path.rfind(".")
    if dot < start:
        return path[start:]
    return path[start:dot]


def write_input_parameters(codec: CodecParams, video: VideoParams, sim: SimParams) -> Path:
    """Write the inputParameters file into the trace directory."""
    values = (
        codec.codec,
        _num(codec.gop_coef),
        str(codec.quality_coef),
        str(codec.levels_nb),
        codec.dct,
        str(codec.zone_size),
        str(codec.threshold),
        str(codec.max_level_s),
        codec.entropy_coding,
        f"{video.orig_frame_width}x{video.orig_frame_height}",
        f"{video.frame_width}x{video.frame_height}",
        _num(video.orig_fps),
        _num(video.fps),
        str(video.frames_nb),
        sim.sim_id,
        str(sim.pkt_payload_size),
        sim.output_dir,
    )
    path = Path(sim.trace_path, INPUT_PARAMETERS_FILE)
    with path.open("w") as out:
        for keyword, value in zip(INPUT_PARAM_KEYWORDS, values):
            out.write(f"{keyword}\t{value}\n")
    return path