"""Command line entry point: encode a video or rebuild a received one."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .params import (
    MAX_S_LAYERS,
    CodecParams,
    ParameterError,
    SimParams,
    VideoParams,
    video_name_from_path,
    write_input_parameters,
)
from .trace import (
    RECEIVED_FRAME_TRACE,
    TraceError,
    clear_directory,
    create_trace_files,
    make_dir,
    read_input_parameters,
)
from .video import build_received_video, capture_frames, encode_video

DCT_KINDS = ("CLA", "sBIN", "sLLM", "tBIN", "tLLM")


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for the sensevid command."""
    p = argparse.ArgumentParser(prog="sensevid", add_help=False)
    p.add_argument("-c", "--codec")
    p.add_argument("-t", "--thresh", type=int)
    p.add_argument("-g", "--gopCoef", dest="gop_coef", type=float)
    p.add_argument("-q", "--qualityCoef", dest="quality_coef", type=int)
    p.add_argument("-l", "--levelsNb", dest="levels_nb", type=int)
    p.add_argument("-d", "--dct")
    p.add_argument("-z", "--zoneSize", dest="zone_size", type=int)
    p.add_argument("-e", "--entropy")
    p.add_argument("-m", "--maxLevelS", dest="max_level_s", type=int)
    p.add_argument("-h", "--height", type=int)
    p.add_argument("-w", "--width", type=int)
    p.add_argument("-f", "--fps", type=float)
    p.add_argument("-s", "--sim")
    p.add_argument("-p", "--pps", type=int)
    p.add_argument("-r", "--rt")
    p.add_argument("-o", "--output")
    p.add_argument("video", nargs="?")
    return p


def _codec_params(args) -> CodecParams:
    codec = CodecParams()
    if args.codec is not None:
        if args.codec != "SMPEG":
            raise ParameterError(f"codec not implemented: {args.codec}")
        codec.codec = args.codec
    if args.thresh is not None:
        if args.thresh > 255:
            raise ParameterError("threshold has to be in 0..255 integer range")
        codec.threshold = args.thresh
    if args.gop_coef is not None:
        if args.gop_coef > 255:
            raise ParameterError("GOP coefficient has to be in 0..255 real range")
        codec.gop_coef = args.gop_coef
    if args.quality_coef is not None:
        if not 0 <= args.quality_coef <= 100:
            raise ParameterError("QF must be in 1..100 integer range")
        codec.quality_coef = args.quality_coef
    if args.levels_nb is not None:
        codec.levels_nb = args.levels_nb
    if args.dct is not None:
        if args.dct not in DCT_KINDS:
            raise ParameterError(f"not recognised DCT {args.dct}")
        codec.dct = args.dct
    if args.zone_size is not None:
        codec.zone_size = args.zone_size
    if args.entropy is not None:
        codec.entropy_coding = args.entropy
    if args.max_level_s is not None:
        if args.max_level_s > MAX_S_LAYERS:
            raise ParameterError(f"max S level must be < {MAX_S_LAYERS}")
        codec.max_level_s = args.max_level_s
    return codec


def _run(args) -> int:
    codec = _codec_params(args)
    video = VideoParams()
    sim = SimParams()
    if args.height is not None:
        if args.height % 8:
            raise ParameterError("frame height must be non zero and a multiple of 8")
        video.frame_height = args.height
    if args.width is not None:
        if args.width % 8:
            raise ParameterError("frame width must be non zero and a multiple of 8")
        video.frame_width = args.width
    if args.fps is not None:
        video.fps = args.fps
    if args.sim is not None:
        sim.sim_id = args.sim
    if args.pps is not None:
        sim.pkt_payload_size = args.pps
    if args.output is not None:
        sim.output_dir = args.output
    if args.rt is not None:
        sim.rt_file = args.rt

    if not args.video:
        raise ParameterError("no video file provided")
    video.video_file = args.video
    video.video_name = video_name_from_path(video.video_file)
    video.read_source_properties()
    video.frame_height = video.frame_height or video.orig_frame_height
    video.frame_width = video.frame_width or video.orig_frame_width
    video.fps = video.fps or video.orig_fps

    sim.configure_paths(video.video_name)
    if args.rt is None:
        make_dir(sim.output_dir)
        make_dir(sim.trace_path)
        make_dir(sim.captured_frames_dir)
        clear_directory(sim.captured_frames_dir)
        make_dir(sim.reference_frames_dir)
        clear_directory(sim.reference_frames_dir)
        create_trace_files(sim.trace_path)
        video.frames_nb = capture_frames(video, sim.captured_frames_dir)
        write_input_parameters(codec, video, sim)
        encode_video(codec, video, sim)
    else:
        make_dir(sim.decoded_frames_dir)
        clear_directory(sim.decoded_frames_dir)
        Path(sim.trace_path, RECEIVED_FRAME_TRACE).write_text("#Rank\tframeType\tPSNR\tSSIM\n")
        found = read_input_parameters(Path(sim.trace_path, "inputParameters"))
        codec.levels_nb = found.get("levels_nb", codec.levels_nb)
        codec.threshold = found.get("threshold", codec.threshold)
        video.frames_nb = found.get("frames_nb", video.frames_nb)
        video.frame_width = found.get("frame_width", video.frame_width)
        video.frame_height = found.get("frame_height", video.frame_height)
        build_received_video(codec, video, sim)
    return 0


def main(argv=None) -> int:
    """Run the command; returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        return _run(args)
    except (ParameterError, TraceError, FileNotFoundError, ValueError) as exc:
        print(f"sensevid: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())