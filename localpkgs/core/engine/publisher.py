"""
Repository publisher — regenerate the repository index from scratch.

The index is a cache derived from the artifacts on disk, so it is never
patched: the old database files are deleted and the indexing tool is
run over every artifact present. The indexer leaves ``<repo>.db`` and
``<repo>.files`` as symlinks to the compressed archives; they are
replaced by real copies (written beside the target, then renamed over
it) because file:// clients do not follow symlinks and must never see a
half-written pointer file.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from localpkgs.adapters.registry import AdapterRegistry
from localpkgs.core.errors import PublishError
from localpkgs.core.models.action import Action
from localpkgs.core.models.settings import Settings

logger = logging.getLogger(__name__)

_DB_EXT = ".db"
_FILES_EXT = ".files"
_ARCHIVE_EXT = ".tar.zst"


@dataclass
class PublishReport:
    """What a republish produced."""

    repo_dir: str
    artifacts: list[str] = field(default_factory=list)
    index_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "repo_dir": self.repo_dir,
            "artifacts": self.artifacts,
            "index_files": self.index_files,
        }


class RepositoryPublisher:
    """Rebuilds the repository database with the external indexing tool."""

    def __init__(self, settings: Settings, adapters: AdapterRegistry):
        self._settings = settings
        self._adapters = adapters

    def index_paths(self, repo_dir: Path) -> tuple[Path, Path]:
        """Compressed (db, files) archives the indexer writes."""
        name = self._settings.repo_name
        return (
            repo_dir / f"{name}{_DB_EXT}{_ARCHIVE_EXT}",
            repo_dir / f"{name}{_FILES_EXT}{_ARCHIVE_EXT}",
        )

    def republish(self, repo_dir: Path | None = None) -> PublishReport:
        """Delete and regenerate the index for ``repo_dir``.

        Raises:
            PublishError: If old index files cannot be removed, the
                indexing tool fails, or a pointer copy cannot be written.
        """
        repo_dir = repo_dir or self._settings.repo_path
        name = self._settings.repo_name
        report = PublishReport(repo_dir=str(repo_dir))

        try:
            repo_dir.mkdir(parents=True, exist_ok=True)
            for stale in self._index_files(repo_dir):
                stale.unlink()
                logger.debug("Removed index file %s", stale.name)
        except OSError as e:
            raise PublishError(f"Cannot clear old index in {repo_dir}: {e}") from e

        suffix = self._settings.artifact_suffix
        artifacts = sorted(p for p in repo_dir.iterdir() if p.name.endswith(suffix) and p.is_file())
        report.artifacts = [a.name for a in artifacts]

        db_archive, files_archive = self.index_paths(repo_dir)
        logger.info("Indexing %d artifact(s) into %s", len(artifacts), db_archive.name)
        receipt = self._adapters.execute_action(
            Action(
                id=f"index:{name}",
                args=[self._settings.index_command, str(db_archive), *map(str, artifacts)],
                cwd=str(repo_dir),
            )
        )
        if not receipt.ok:
            raise PublishError(
                f"{self._settings.index_command} failed (exit {receipt.return_code}): "
                f"{receipt.error or 'no output'}"
            )

        for archive, pointer in (
            (db_archive, repo_dir / f"{name}{_DB_EXT}"),
            (files_archive, repo_dir / f"{name}{_FILES_EXT}"),
        ):
            if not archive.is_file():
                raise PublishError(f"Indexing tool did not produce {archive.name}")
            _replace_with_copy(archive, pointer)
            report.index_files.extend([archive.name, pointer.name])

        logger.info("Repository %s republished (%d packages)", name, len(artifacts))
        return report

    def _index_files(self, repo_dir: Path) -> list[Path]:
        """Every file belonging to the index: archives, pointers, .old backups."""
        name = self._settings.repo_name
        prefixes = (f"{name}{_DB_EXT}", f"{name}{_FILES_EXT}")
        return [
            p for p in repo_dir.iterdir()
            if p.name.startswith(prefixes) and (p.is_file() or p.is_symlink())
        ]


def _replace_with_copy(source: Path, target: Path) -> None:
    """Atomically make ``target`` a regular-file copy of ``source``."""
    tmp = target.with_name(f".{target.name}.tmp")
    try:
        shutil.copy2(source, tmp)
        os.replace(tmp, target)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise PublishError(f"Cannot write {target.name}: {e}") from e
