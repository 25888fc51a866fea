"""File size and MD5 helpers used when transferring files to workers."""

from __future__ import annotations

import hashlib
import os

_CHUNK_SIZE = 64 * 1024


def file_size(path: str | os.PathLike[str]) -> int:
    """Size of the file at ``path`` in bytes. Raises OSError on failure."""
    with open(path, "rb") as handle:
        return handle.seek(0, os.SEEK_END)


def md5sum(path: str | os.PathLike[str]) -> str:
    """Hexadecimal MD5 digest (32 characters) of the file at ``path``."""
    digest = hashlib.md5()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()