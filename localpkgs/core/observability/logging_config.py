"""
Logging configuration — called once by the CLI before any command runs.

Two sinks:

    console (stderr)   CLI flag > LOCALPKGS_LOG_LEVEL > WARNING
    update log (file)  LOCALPKGS_LOG_FILE_LEVEL > INFO, append-only

The update log is best-effort: when it cannot be opened the run goes
on with console output only. Modules log through
``logging.getLogger(__name__)`` and inherit both sinks.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# ── Formats ─────────────────────────────────────────────────────

_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_FORMAT = "[%(asctime)s] %(levelname)-5s %(name)s — %(message)s"
_FILE_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def setup_logging(
    level: str = "WARNING",
    log_file: Path | str | None = None,
    log_file_level: str | None = "INFO",
) -> None:
    """Replace the root logger's handlers with the console and file sinks.

    Args:
        level: Console level name.
        log_file: Update log path; None disables the file sink.
        log_file_level: File sink level name (INFO when unset or invalid).
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(_console_handler(console_level))
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level, default=logging.INFO)
        handler = _file_handler(Path(log_file), file_level)
        if handler is not None:
            root.addHandler(handler)
            root_level = min(root_level, file_level)

    root.setLevel(root_level)

    # A broken sink must never raise into the code that logged
    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT
    for threshold in sorted(_CONSOLE_FORMATS):
        if level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler | None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning("Cannot open log file %s: %s; logging to console only", path, e)
        return None
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Level name → numeric level, ``default`` for anything unrecognised."""
    if not level:
        return default
    numeric = getattr(logging, level.upper(), None)
    return numeric if isinstance(numeric, int) else default
