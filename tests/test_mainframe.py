from pathlib import Path

import numpy as np
import pytest

from sensevid.mainframe import (
    LayerInfo,
    MainFramePacketizer,
    block_compressed_size,
    encode_main_frame,
    encoding_energy_main,
    make_layers,
    quantisation_matrix,
    quantise_frame,
    reference_frame,
    zigzag_scan,
)
from sensevid.metrics import load_image, psnr
from sensevid.params import CodecParams, SimParams, VideoParams
from sensevid.trace import (
    FrameRecord,
    SequenceCounter,
    create_trace_files,
    make_dir,
)


def _gradient(rows=16, cols=16):
    r, c = np.indices((rows, cols))
    return (60 + 4 * r + 2 * c).astype(np.uint8)


def test_quantisation_matrix_quality_50_is_base_table():
    table = quantisation_matrix(50)
    assert table[0].tolist() == [16, 11, 10, 16, 24, 40, 51, 61]
    assert table[7, 7] == 99


def test_quantisation_matrix_quality_100_is_ones():
    assert quantisation_matrix(100).tolist() == [[1] * 8 for _ in range(8)]


def test_quantisation_matrix_decreases_with_quality():
    low = quantisation_matrix(20)
    high = quantisation_matrix(80)
    assert np.array_equal(np.minimum(low, high), high)
    assert low[0, 0] > high[0, 0]


def test_quantisation_matrix_rejects_zero():
    with pytest.raises(ValueError):
        quantisation_matrix(0)


def test_zigzag_8x8_order():
    block = np.arange(64).reshape(8, 8)
    scanned = zigzag_scan(block)
    assert scanned[:8].tolist() == [0, 1, 8, 16, 9, 2, 3, 10]
    assert scanned[-1] == 63
    assert sorted(scanned.tolist()) == list(range(64))


def test_zigzag_2x2():
    assert zigzag_scan(np.arange(4).reshape(2, 2)).tolist() == [0, 1, 2, 3]


@pytest.mark.parametrize("kind", ["CLA", "tLLM", "tBIN", "sLLM", "sBIN"])
def test_uniform_frame_round_trip(kind):
    codec = CodecParams(dct=kind, quality_coef=50)
    frame = np.full((16, 16), 128, dtype=np.uint8)
    quantised = quantise_frame(codec, frame)
    assert not quantised.any()
    assert np.array_equal(reference_frame(codec, quantised), frame)


def test_gradient_reconstruction_quality():
    codec = CodecParams(dct="CLA", quality_coef=90)
    frame = _gradient()
    ref = reference_frame(codec, quantise_frame(codec, frame))
    assert ref.shape == frame.shape
    assert psnr(ref, frame) > 25


def test_quantise_rejects_bad_size():
    with pytest.raises(ValueError):
        quantise_frame(CodecParams(dct="CLA"), np.zeros((10, 16), dtype=np.uint8))


def test_make_layers_cla_covers_block():
    codec = CodecParams(dct="CLA", levels_nb=13, entropy_coding="EG")
    record = FrameRecord(layers_size=[0] * 13)
    zigzag = np.arange(64, dtype=np.int16)
    layers = make_layers(codec, record, zigzag)
    assert len(layers) == 13
    assert np.concatenate([layer.raw_data for layer in layers]).tolist() == list(range(64))
    assert record.layers_size == [layer.layer_size for layer in layers]
    assert [layer.layer_nb for layer in layers] == list(range(13))


def test_make_layers_triangular_clamps_levels():
    codec = CodecParams(dct="tLLM", zone_size=8, levels_nb=13)
    record = FrameRecord(layers_size=[0] * 13)
    layers = make_layers(codec, record, np.arange(64, dtype=np.int16))
    assert len(layers) == codec.zone_size - 1
    assert sum(len(layer.raw_data) for layer in layers) == 36


def test_make_layers_square_zone():
    codec = CodecParams(dct="sBIN", zone_size=4, levels_nb=13)
    record = FrameRecord(layers_size=[0] * 13)
    zigzag = zigzag_scan(np.arange(16).reshape(4, 4))
    layers = make_layers(codec, record, zigzag)
    assert len(layers) == 2 * (codec.zone_size - 1)
    assert np.concatenate([layer.raw_data for layer in layers]).tolist() == zigzag.tolist()


def test_make_layers_zero_block_has_empty_layers():
    codec = CodecParams(dct="CLA", levels_nb=2, entropy_coding="EG")
    record = FrameRecord(layers_size=[0, 0])
    layers = make_layers(codec, record, np.zeros(64, dtype=np.int16))
    assert [layer.layer_data for layer in layers] == ["", ""]
    assert record.layers_size == [0, 0]


def test_block_compressed_size_sums_layers():
    layers = [LayerInfo(0, "101"), LayerInfo(1, "11"), LayerInfo(2, "")]
    assert block_compressed_size(layers) == sum(len(layer.layer_data) for layer in layers)


def test_energy_scales_with_blocks():
    codec = CodecParams(dct="CLA")
    assert encoding_energy_main(codec, 0) == 0.0
    assert encoding_energy_main(codec, 2000) == pytest.approx(2 * encoding_energy_main(codec, 1000))


def test_bin_cheaper_than_llm():
    llm = encoding_energy_main(CodecParams(dct="tLLM", zone_size=8), 1200)
    binary = encoding_energy_main(CodecParams(dct="tBIN", zone_size=8), 1200)
    assert binary < llm


def test_energy_unknown_kind():
    with pytest.raises(ValueError):
        encoding_energy_main(CodecParams(dct="xLLM"), 100)


def _packet_setup(tmp_path, payload):
    create_trace_files(tmp_path)
    video = VideoParams(frame_width=16, frame_height=16, fps=25.0)
    sim = SimParams(pkt_payload_size=payload, trace_path=str(tmp_path))
    return video, sim


def test_packetizer_flushes_full_packets(tmp_path):
    video, sim = _packet_setup(tmp_path, payload=2)
    counter = SequenceCounter()
    packetizer = MainFramePacketizer(video, sim, 1, counter)
    for block_nb in range(video.blocks_per_frame):
        packetizer.add_block(block_nb, [LayerInfo(0, "1" * 10)])
    assert [p.blocks for p in packetizer.sent] == [[0, 1], [2, 3]]
    assert [p.seq_nb for p in packetizer.sent] == [1, 2]
    assert all(p.frame_type == "M" and p.send_time == 0 for p in packetizer.sent)
    lines = (tmp_path / "st-packet").read_text().splitlines()
    assert len(lines) == 1 + len(packetizer.sent)


def test_packetizer_rejects_oversized_layer(tmp_path):
    video, sim = _packet_setup(tmp_path, payload=1)
    packetizer = MainFramePacketizer(video, sim, 1, SequenceCounter())
    with pytest.raises(ValueError):
        packetizer.add_block(0, [LayerInfo(0, "1" * 9)])


def test_encode_main_frame(tmp_path):
    sim = SimParams(output_dir=str(tmp_path), pkt_payload_size=96)
    sim.configure_paths("clip")
    make_dir(sim.trace_path)
    make_dir(sim.reference_frames_dir)
    create_trace_files(sim.trace_path)
    video = VideoParams(frame_width=16, frame_height=16, fps=25.0)
    codec = CodecParams(dct="CLA", quality_coef=50, levels_nb=2, entropy_coding="EG")
    record = FrameRecord(frame_nb=1, frame_type="M", layers_size=[0, 0])
    counter = SequenceCounter()
    frame = _gradient()

    ref = encode_main_frame(codec, video, sim, frame, 1, record, counter)

    stored = load_image(Path(sim.reference_frames_dir, "frame1.png"))
    assert np.array_equal(stored, ref)
    assert record.frame_size == sum(record.layers_size)
    assert record.bpp == pytest.approx(record.frame_size / frame.size)
    assert record.psnr == pytest.approx(psnr(ref, frame))
    frame_lines = Path(sim.trace_path, "st-frame").read_text().splitlines()
    assert len(frame_lines) == 2
    packet_lines = Path(sim.trace_path, "st-packet").read_text().splitlines()
    assert len(packet_lines) - 1 == counter.value