"""
Checksum engine — streaming SHA-256 digest of a file.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

from localpkgs.core.errors import ChecksumError

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: Path) -> str:
    """Return the hex SHA-256 digest of ``path``.

    The file is read in chunks, so artifacts of any size hash in
    constant memory.

    Raises:
        ChecksumError: If the file cannot be read.
    """
    h = hashlib.sha256()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                h.update(chunk)
    except OSError as e:
        raise ChecksumError(f"Cannot hash {path}: {e}") from e
    return h.hexdigest()
