"""Small text and file-name helpers shared by the Mr. J System programs."""

from __future__ import annotations

import os
from typing import TextIO

TEXT = "Text"
MEDIA = "Media"
IMAGE = "Image"
AUDIO = "Audio"

MEDIA_EXTENSIONS = (".png", ".jpg", ".jpeg", ".wav", ".mp3")
TEXT_EXTENSIONS = (".txt", ".md", ".log", ".csv")

_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")
_AUDIO_EXTENSIONS = (".mp3", ".wav")

USERS_ROOT = "users"


def read_until(stream: TextIO, end: str = "\n") -> str | None:
    """Read characters from a text stream up to ``end`` or end of file.

    The delimiter is consumed but not returned, and trailing carriage
    returns and newlines are stripped. Returns ``None`` when the stream is
    already at end of file.
    """
    chars: list[str] = []
    while True:
        ch = stream.read(1)
        if not ch:
            if not chars:
                return None
            break
        if ch == end:
            break
        chars.append(ch)
    return "".join(chars).rstrip("\r\n")


def remove_ampersand(text: str) -> str:
    """Return ``text`` with every ``&`` removed."""
    return text.replace("&", "")


def _extension(filename: str) -> str | None:
    dot = filename.rfind(".")
    return None if dot < 0 else filename[dot:]


def has_extension(filename: str, extension: str) -> bool:
    """True when the part of ``filename`` from its last dot equals ``extension``."""
    return _extension(filename) == extension


def list_files(user_dir: str, extension: str) -> list[str]:
    """Names of the files under ``users<user_dir>`` that carry ``extension``.

    Raises OSError when the directory cannot be read.
    """
    path = f"{USERS_ROOT}{user_dir}"
    return sorted(
        name for name in os.listdir(path) if has_extension(name, extension)
    )


def file_type(filename: str) -> str | None:
    """Classify a file name as ``"Media"``, ``"Text"`` or neither (``None``)."""
    extension = _extension(filename)
    if extension is None:
        return None
    if extension in MEDIA_EXTENSIONS:
        return MEDIA
    if extension in TEXT_EXTENSIONS:
        return TEXT
    return None


def which_media(filename: str) -> str | None:
    """Classify a media file name as ``"Image"`` or ``"Audio"``, case-insensitively."""
    dot = filename.rfind(".")
    if dot <= 0:
        return None
    extension = filename[dot:dot + 15].lower()
    if extension in _IMAGE_EXTENSIONS:
        return IMAGE
    if extension in _AUDIO_EXTENSIONS:
        return AUDIO
    return None


def strip_line_end(text: str) -> str:
    """Drop a final newline or carriage return, and a carriage return before it."""
    length = len(text)
    result = text
    if length > 0 and text[-1] in "\r\n":
        result = text[:-1]
    if length > 1 and text[-2] == "\r":
        result = text[:length - 2]
    return result