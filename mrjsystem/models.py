"""Data held by Fleck: its configuration, assigned workers and distortion requests."""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass, field

from mrjsystem.textutil import USERS_ROOT, read_until, remove_ampersand

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(text: str) -> int:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class FleckConfig:
    """Fleck's user name, user directory and Gotham address."""

    username: str
    user_dir: str
    gotham_ip: str
    gotham_port: int


@dataclass
class WorkerInfo:
    """A worker assigned by Gotham and the progress of its distortion (0-100)."""

    ip: str
    port: int
    worker_type: str
    sock: socket.socket | None = field(default=None, repr=False)
    status: int = 0


@dataclass
class DistortRequest:
    """A user's request to distort one of their files."""

    username: str
    user_dir: str
    filename: str
    distortion_factor: str

    def file_path(self) -> str:
        """Path of the file to distort."""
        return f"{USERS_ROOT}{self.user_dir}/{self.filename}"

    def distorted_path(self) -> str:
        """Path where the distorted file is written."""
        return f"{USERS_ROOT}{self.user_dir}/{self.filename}_distorted"


def read_fleck_config(path: str) -> FleckConfig:
    """Read Fleck's configuration file: user name, directory, Gotham IP and port.

    Ampersands are removed from the user name. Raises OSError when the
    file cannot be read and ValueError when a line is missing.
    """
    with open(path, encoding="utf-8", newline="") as stream:
        fields = []
        for name in ("user name", "user directory", "Gotham IP", "Gotham port"):
            value = read_until(stream, "\n")
            if value is None:
                raise ValueError(f"configuration {path!r} is missing the {name}")
            fields.append(value)
    username, user_dir, gotham_ip, port = fields
    return FleckConfig(
        username=remove_ampersand(username),
        user_dir=user_dir,
        gotham_ip=gotham_ip,
        gotham_port=_atoi(port),
    )