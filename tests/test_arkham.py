import io
import sys
import time

from mrjsystem.arkham import format_log_line, main, run
from mrjsystem.frames import FrameType, build_frame, parse_frame


def test_format_log_line_uses_ctime_and_data():
    frame = parse_frame(build_frame(FrameType.LOG, b"worker down", timestamp=1_700_000_000))
    assert format_log_line(frame) == f"[{time.ctime(1_700_000_000)}] worker down"


def test_format_log_line_stops_at_nul():
    frame = parse_frame(build_frame(FrameType.LOG, b"abc\0def", timestamp=0))
    assert format_log_line(frame).endswith("] abc")


def test_run_logs_valid_frames_and_skips_invalid(tmp_path):
    log_path = tmp_path / "logs.txt"
    bad = bytearray(build_frame(FrameType.LOG, b"broken", timestamp=5))
    bad[4] ^= 0x01
    stream = io.BytesIO(
        build_frame(FrameType.LOG, b"first", timestamp=5)
        + bytes(bad)
        + build_frame(FrameType.LOG, b"second", timestamp=5)
    )
    count = run(stream, str(log_path))
    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert count == 2
    assert [line.split("] ", 1)[1] for line in lines] == ["first", "second"]


def test_run_appends_to_existing_log(tmp_path):
    log_path = tmp_path / "logs.txt"
    log_path.write_text("old\n", encoding="utf-8")
    run(io.BytesIO(build_frame(FrameType.LOG, b"new", timestamp=5)), str(log_path))
    lines = log_path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "old"
    assert lines[1].endswith("] new")


def test_run_ignores_truncated_tail(tmp_path):
    log_path = tmp_path / "logs.txt"
    stream = io.BytesIO(build_frame(FrameType.LOG, b"ok", timestamp=5) + b"\x01\x02")
    assert run(stream, str(log_path)) == 1


def test_main_reads_stdin(tmp_path, monkeypatch):
    log_path = tmp_path / "out.txt"
    data = build_frame(FrameType.LOG, b"from stdin", timestamp=5)
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))
    assert main(["--log", str(log_path)]) == 0
    assert log_path.read_text(encoding="utf-8").strip().endswith("] from stdin")