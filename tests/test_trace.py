import pytest

from sensevid.params import CodecParams, SimParams, VideoParams, write_input_parameters
from sensevid.trace import (
    FRAME_TRACE_HEADER,
    PACKET_TRACE_HEADER,
    DecodedFrame,
    FrameRecord,
    PacketRecord,
    SequenceCounter,
    TraceError,
    block_origin,
    clear_directory,
    create_trace_files,
    empty_layers,
    format_block_list,
    make_dir,
    parse_received_line,
    read_input_parameters,
    write_decoded_frame_record,
    write_frame_record,
    write_packet_record,
)


def _last_line(path):
    return path.read_text().splitlines()[-1]


def test_sequence_counter_counts_from_one():
    counter = SequenceCounter()
    assert [counter.next() for _ in range(3)] == list(range(1, 4))


def test_make_dir_and_clear(tmp_path):
    target = tmp_path / "frames"
    make_dir(target)
    make_dir(target)
    (target / "a.png").write_bytes(b"x")
    (target / "b.png").write_bytes(b"y")
    clear_directory(target)
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_make_dir_without_parent_fails(tmp_path):
    with pytest.raises(TraceError):
        make_dir(tmp_path / "missing" / "child")


def test_clear_missing_directory_fails(tmp_path):
    with pytest.raises(TraceError):
        clear_directory(tmp_path / "missing")


def test_create_trace_files(tmp_path):
    create_trace_files(tmp_path)
    assert (tmp_path / "st-frame").read_text().splitlines() == [FRAME_TRACE_HEADER]
    assert (tmp_path / "st-packet").read_text().splitlines() == [PACKET_TRACE_HEADER]


def test_frame_record_round_trips_empty_layers(tmp_path):
    create_trace_files(tmp_path)
    write_frame_record(FrameRecord(frame_nb=1, frame_type="M", layers_size=[9, 9]), tmp_path)
    write_frame_record(
        FrameRecord(frame_nb=2, frame_type="M", frame_size=40, psnr=31.25678,
                    layers_size=[5, 0, 3, 0]),
        tmp_path,
    )
    assert empty_layers(2, tmp_path) == [1, 3]
    assert empty_layers(1, tmp_path) == []
    fields = _last_line(tmp_path / "st-frame").split("\t")
    assert fields[0] == "2"
    assert fields[1] == "M"
    assert fields[2] == str(40 // 8)
    assert fields[3] == "31.257"


def test_second_frame_record_hides_layer_sizes(tmp_path):
    create_trace_files(tmp_path)
    write_frame_record(FrameRecord(frame_nb=3, frame_type="S", layers_size=[4, 6]), tmp_path)
    fields = _last_line(tmp_path / "st-frame").split("\t")
    assert fields[6] == "- - "


def test_empty_layers_missing_file(tmp_path):
    with pytest.raises(TraceError):
        empty_layers(1, tmp_path)


def test_format_block_list_ranges_for_s():
    record = PacketRecord(frame_type="S", blocks=[1, 2, 3, 7, 9, 10])
    assert format_block_list(record) == "1-3 7 9-10"


def test_format_block_list_plain_for_m():
    record = PacketRecord(frame_type="M", blocks=[0, 5])
    assert format_block_list(record).split() == ["0", "5"]
    assert format_block_list(record).endswith(" ")


@pytest.mark.parametrize(
    "frame_type, blocks",
    [("S", [1, 2, 3, 7, 9, 10]), ("S", [4]), ("M", [0, 12]), ("S2", [3, 4, 8])],
)
def test_packet_record_round_trip(tmp_path, frame_type, blocks):
    create_trace_files(tmp_path)
    record = PacketRecord(send_time=0.5, seq_nb=4, packet_size=100, frame_nb=6,
                          frame_type=frame_type, layer_nb=2, blocks=blocks)
    write_packet_record(record, tmp_path)
    line = _last_line(tmp_path / "st-packet")
    assert parse_received_line(line) == (6, frame_type, 2, blocks)
    assert line.split("\t")[0] == "0.5"


def test_parse_received_line_too_short():
    with pytest.raises(TraceError):
        parse_received_line("0.1\t1\t2\t3")


def test_decoded_frame_record(tmp_path):
    write_decoded_frame_record(5, DecodedFrame(frame_type="S", psnr=40.0, ssim=0.5), tmp_path)
    fields = _last_line(tmp_path / "rt-frame").split("\t")
    assert fields[:2] == ["5", "S"]
    assert float(fields[2]) == pytest.approx(40.0)
    assert float(fields[3]) == pytest.approx(0.5)


def test_block_origin_inverts_block_number():
    width = 48
    for block_nb in range(30):
        row, col = block_origin(block_nb, width)
        assert row % 8 == 0 and col % 8 == 0 and col < width
        assert (row // 8) * (width // 8) + col // 8 == block_nb


@pytest.mark.parametrize("width", [0, 12, -8])
def test_block_origin_rejects_bad_width(width):
    with pytest.raises(ValueError):
        block_origin(1, width)


def test_read_input_parameters_round_trip(tmp_path):
    codec = CodecParams(levels_nb=6, threshold=4)
    video = VideoParams(frame_width=176, frame_height=144, frames_nb=12)
    sim = SimParams(trace_path=str(tmp_path))
    path = write_input_parameters(codec, video, sim)
    assert read_input_parameters(path) == {
        "levels_nb": 6,
        "threshold": 4,
        "frames_nb": 12,
        "frame_width": 176,
        "frame_height": 144,
    }


def test_read_input_parameters_missing_file(tmp_path):
    with pytest.raises(TraceError):
        read_input_parameters(tmp_path / "inputParameters")