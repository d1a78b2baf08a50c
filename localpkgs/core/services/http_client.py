"""
HTTP client — the single place where upstream URLs are opened.

Used by the artifact fetcher and by package version detectors. Every
request carries a bounded timeout and every failure surfaces as one of
the NetworkError subclasses:

    ConnectError      DNS / connection refused / reset
    RequestTimeout    no answer within the timeout
    HTTPStatusError   non-2xx response

A URL urllib cannot parse raises the NetworkError base class.
"""

from __future__ import annotations

import http.client
import json
import logging
import socket
import urllib.error
import urllib.request
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from localpkgs import __version__
from localpkgs.core.errors import (
    ConnectError,
    HTTPStatusError,
    NetworkError,
    RequestTimeout,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"localpkgs/{__version__}"


@contextmanager
def open_url(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    headers: dict[str, str] | None = None,
) -> Iterator[Any]:
    """Open ``url`` and yield the response object.

    Errors raised while the caller reads the body are translated too,
    so a stalled transfer also ends as RequestTimeout.

    Raises:
        NetworkError: One of its subclasses, on any failure.
    """
    try:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
        )
    except ValueError as e:
        raise NetworkError(f"Invalid URL {url!r}: {e}", url=url) from e
    logger.debug("GET %s (timeout=%ss)", url, timeout)

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", None)
            if status is not None and not 200 <= status < 300:
                raise HTTPStatusError(
                    f"HTTP {status} from {url}", status=status, url=url
                )
            yield resp
    except NetworkError:
        raise
    except urllib.error.HTTPError as e:
        raise HTTPStatusError(f"HTTP {e.code} from {url}", status=e.code, url=url) from e
    except urllib.error.URLError as e:
        if isinstance(e.reason, (TimeoutError, socket.timeout)):
            raise RequestTimeout(f"Timed out after {timeout}s: {url}", url=url) from e
        raise ConnectError(f"Cannot reach {url}: {e.reason}", url=url) from e
    except (TimeoutError, socket.timeout) as e:
        raise RequestTimeout(f"Timed out after {timeout}s: {url}", url=url) from e
    except (OSError, http.client.HTTPException) as e:
        raise ConnectError(f"Connection to {url} failed: {e}", url=url) from e


def get_text(url: str, *, timeout: float = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> str:
    """Fetch ``url`` and return the body decoded as text."""
    with open_url(url, timeout=timeout, headers=headers) as resp:
        body = resp.read()
        charset = resp.headers.get_content_charset() or "utf-8"
    return body.decode(charset, errors="replace")


def get_json(url: str, *, timeout: float = DEFAULT_TIMEOUT, headers: dict[str, str] | None = None) -> Any:
    """Fetch ``url`` and parse the body as JSON.

    Raises:
        NetworkError: On transport failure.
        ValueError: If the body is not valid JSON.
    """
    return json.loads(get_text(url, timeout=timeout, headers=headers))
