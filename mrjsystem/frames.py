"""Fixed-size 256-byte frames exchanged between Gotham, Fleck, workers and Arkham.

Layout: type (1 byte), data length (2 bytes, big endian), data (247 bytes,
zero padded), checksum (2 bytes), timestamp (4 bytes, big endian). The
checksum is the 16-bit sum of every byte except the checksum itself.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass

FRAME_SIZE = 256
MAX_DATA_LENGTH = 247

_DATA_START = 3
_CHECKSUM_START = 250
_TIMESTAMP_START = 252

MAX_CONNECTIONS = 10
HEARTBEAT_MSG = "HEARTBEAT"
HEARTBEAT_INTERVAL = 5
OK_MSG = "OK"
CHECK_OK = "CHECK_OK"
CHECK_KO = "CHECK_KO"


class FrameError(ValueError):
    """A frame could not be built or failed validation."""


class FrameType(enum.IntEnum):
    CONNECT_FLECK_GOTHAM = 0x01
    CONNECT_WORKER_GOTHAM = 0x02
    START_DISTORT_FLECK_WORKER = 0x03
    START_DISTORT_WORKER_FLECK = 0x04
    FILE_DATA = 0x05
    END_DISTORT_FLECK_WORKER = 0x06
    DISCONNECTION = 0x07
    PRINCIPAL_WORKER = 0x08
    ERROR = 0x09
    DISTORT_FLECK_GOTHAM = 0x10
    RESUME_DISTORT_FLECK_GOTHAM = 0x11
    HEARTBEAT = 0x12
    RESUME_DISTORT_FLECK_WORKER = 0x13
    LOG = 0x20


@dataclass(frozen=True)
class Frame:
    """A validated frame: its type, payload and sender timestamp."""

    frame_type: int
    data: bytes
    timestamp: int

    @property
    def data_length(self) -> int:
        return len(self.data)

    def ctime(self) -> str:
        """The timestamp as local time in ``ctime`` form, without a newline."""
        return time.ctime(self.timestamp)

    def text(self) -> str:
        """The payload decoded as UTF-8, undecodable bytes replaced."""
        return self.data.decode("utf-8", errors="replace")


def compute_checksum(raw: bytes) -> int:
    """Sum of the header, data and timestamp bytes of a frame, modulo 2**16."""
    total = sum(raw[:_CHECKSUM_START]) + sum(raw[_TIMESTAMP_START:FRAME_SIZE])
    return total % 65536


def build_frame(frame_type: int, data: bytes | str = b"", timestamp: int | None = None) -> bytes:
    """Encode a frame of exactly FRAME_SIZE bytes.

    ``data`` may be text (encoded as UTF-8). ``timestamp`` defaults to now.
    Raises FrameError when the payload exceeds MAX_DATA_LENGTH bytes.
    """
    payload = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    if len(payload) > MAX_DATA_LENGTH:
        raise FrameError(
            f"data is {len(payload)} bytes, at most {MAX_DATA_LENGTH} are allowed"
        )
    if timestamp is None:
        timestamp = int(time.time())

    raw = bytearray(FRAME_SIZE)
    raw[0] = int(frame_type) & 0xFF
    raw[1:_DATA_START] = len(payload).to_bytes(2, "big")
    raw[_DATA_START:_DATA_START + len(payload)] = payload
    raw[_TIMESTAMP_START:FRAME_SIZE] = (timestamp & 0xFFFFFFFF).to_bytes(4, "big")
    raw[_CHECKSUM_START:_TIMESTAMP_START] = compute_checksum(raw).to_bytes(2, "big")
    return bytes(raw)


def parse_frame(raw: bytes) -> Frame:
    """Validate and decode a FRAME_SIZE-byte frame.

    Raises FrameError on a wrong size, a checksum mismatch or an invalid
    data length.
    """
    raw = bytes(raw)
    if len(raw) != FRAME_SIZE:
        raise FrameError(f"frame is {len(raw)} bytes, expected {FRAME_SIZE}")

    sent = int.from_bytes(raw[_CHECKSUM_START:_TIMESTAMP_START], "big")
    if compute_checksum(raw) != sent:
        raise FrameError("invalid checksum")

    length = int.from_bytes(raw[1:_DATA_START], "big")
    if length > MAX_DATA_LENGTH:
        raise FrameError(f"invalid data length {length}")

    type_byte = raw[0]
    try:
        frame_type: int = FrameType(type_byte)
    except ValueError:
        frame_type = type_byte

    return Frame(
        frame_type=frame_type,
        data=raw[_DATA_START:_DATA_START + length],
        timestamp=int.from_bytes(raw[_TIMESTAMP_START:FRAME_SIZE], "big"),
    )