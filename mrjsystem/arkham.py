"""Arkham: logs frames received on standard input to a text file."""

from __future__ import annotations

import argparse
import sys
from typing import BinaryIO

from mrjsystem.frames import FRAME_SIZE, Frame, FrameError, parse_frame

DEFAULT_LOG_PATH = "arkham/logs.txt"


def format_log_line(frame: Frame) -> str:
    """The log line for ``frame``: ``[<ctime>] <data>``, without a newline."""
    text = frame.text().split("\0", 1)[0]
    return f"[{frame.ctime()}] {text}"


def run(stream: BinaryIO, log_path: str = DEFAULT_LOG_PATH) -> int:
    """Append a line to ``log_path`` for each valid frame read from ``stream``.

    Invalid frames are skipped. Returns the number of lines written.
    """
    print("Iniciando Arkham...")
    written = 0
    for block in iter(lambda: stream.read(FRAME_SIZE), b""):
        try:
            frame = parse_frame(block)
        except FrameError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            continue
        try:
            with open(log_path, "a", encoding="utf-8") as log:
                log.write(format_log_line(frame) + "\n")
        except OSError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            continue
        written += 1
    print("Cerrando Arkham...")
    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="arkham", description="Log frames read from stdin.")
    parser.add_argument("--log", default=DEFAULT_LOG_PATH, help="log file to append to")
    args = parser.parse_args(argv)
    run(sys.stdin.buffer, args.log)
    return 0


if __name__ == "__main__":
    sys.exit(main())