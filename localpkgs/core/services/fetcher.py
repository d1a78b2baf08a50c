"""
Artifact fetcher — download an upstream artifact into the local cache.

The body is streamed to ``<dest>.part`` and renamed over ``dest`` only
after the transfer completes, so an interrupted download never leaves
a file at ``dest`` that looks complete. No retries: a failure is
passed through to the caller as a NetworkError.
"""

from __future__ import annotations

import logging
import os
import posixpath
import urllib.parse
from pathlib import Path

from localpkgs.core.errors import NetworkError
from localpkgs.core.services.http_client import DEFAULT_TIMEOUT, open_url

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024

# Multi-part extensions kept whole when naming cache files
_COMPOUND_SUFFIXES = (".tar.gz", ".tar.xz", ".tar.zst", ".tar.bz2")


def download(url: str, dest: Path, *, timeout: float = DEFAULT_TIMEOUT) -> Path:
    """Download ``url`` to ``dest``, creating parent directories.

    Returns:
        ``dest``, once it holds the complete body.

    Raises:
        NetworkError: On connection failure, timeout, non-2xx status,
            or when the partial file cannot be written.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    part = dest.with_name(dest.name + ".part")

    logger.info("Downloading %s → %s", url, dest)
    total = 0
    try:
        with open_url(url, timeout=timeout) as resp:
            with part.open("wb") as f:
                while chunk := resp.read(_CHUNK_SIZE):
                    try:
                        f.write(chunk)
                    except OSError as e:
                        raise NetworkError(f"Cannot write {part}: {e}", url=url) from e
                    total += len(chunk)
        os.replace(part, dest)
    except BaseException:
        part.unlink(missing_ok=True)
        raise

    logger.debug("Downloaded %d bytes from %s", total, url)
    return dest


def url_suffix(url: str) -> str:
    """File extension of the last path segment of ``url`` ('' if none).

    >>> url_suffix("https://example.com/pkg/tool-1.2.tar.gz?x=1")
    '.tar.gz'
    """
    name = posixpath.basename(urllib.parse.urlparse(url).path)
    lowered = name.lower()
    for compound in _COMPOUND_SUFFIXES:
        if lowered.endswith(compound):
            return name[-len(compound):]
    return posixpath.splitext(name)[1]
