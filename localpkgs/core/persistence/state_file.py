"""
Version state persistence — atomic read/write of the built-versions map.

State is stored as a flat JSON object in state/versions.json:

    {"cursor-bin": "2.3.41", "google-chrome": "144.0.7559.109"}

A package name is present iff it has been built successfully at least
once. The file stays human-readable so it can be hand-edited to force a
rebuild. Writes are atomic (write to temp file, then rename) so a crash
mid-write never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from localpkgs.core.errors import StateError

logger = logging.getLogger(__name__)

VersionState = dict[str, str]

_STATE_ADAPTER = TypeAdapter(VersionState)


def load_versions(path: Path) -> VersionState:
    """Load the version state from a JSON file.

    A missing file is a first run and yields an empty mapping. A corrupt
    file is logged and treated as empty; the next successful build
    overwrites it.

    Raises:
        StateError: If the file exists but cannot be read.
    """
    if not path.is_file():
        logger.info("No state file at %s — starting fresh", path)
        return {}

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise StateError(f"Cannot read state file {path}: {e}") from e

    try:
        state = _STATE_ADAPTER.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Corrupt state file %s: %s — starting fresh", path, e)
        return {}

    logger.debug("Loaded state from %s (%d packages)", path, len(state))
    return state


def save_versions(state: VersionState, path: Path) -> None:
    """Save the full version state (atomic overwrite).

    Raises:
        StateError: If the file or its directory cannot be written.
    """
    content = json.dumps(dict(sorted(state.items())), indent=2, ensure_ascii=False) + "\n"

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent,
            prefix=".versions_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
            logger.debug("State saved to %s", path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    except OSError as e:
        logger.error("Failed to save state to %s: %s", path, e)
        raise StateError(f"Cannot write state file {path}: {e}") from e


class VersionStore:
    """Single-writer access to the version state file.

    ``commit`` performs the read-modify-write under a lock, so even a
    caller that builds packages from several threads cannot lose an
    update. Cross-process writers are not supported.
    """

    def __init__(self, path: Path):
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> VersionState:
        return load_versions(self._path)

    def save(self, state: VersionState) -> None:
        with self._lock:
            save_versions(state, self._path)

    def current(self, name: str) -> str | None:
        """Last successfully built version of ``name``, if any."""
        return self.load().get(name)

    def commit(self, name: str, version: str) -> None:
        """Record ``version`` as the last successful build of ``name``."""
        with self._lock:
            state = load_versions(self._path)
            state[name] = version
            save_versions(state, self._path)
        logger.info("State committed: %s = %s", name, version)
