"""
Settings — the resolved configuration for one invocation.

Loaded from localpkgs.yml by the config loader. Every path is relative
to ``root`` unless given absolute; the ``*_path`` properties resolve
them so callers never touch the process working directory.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class InstallSettings(BaseModel):
    """How the host package manager is driven after a repository update."""

    enabled: bool = True
    manager: str = "pamac"
    query_command: list[str] = Field(default_factory=lambda: ["pacman", "-Q"])


class Settings(BaseModel):
    """Root configuration model."""

    root: Path = Field(default_factory=Path.cwd)

    # ── Locations ────────────────────────────────────────────────
    state_file: Path = Path("state/versions.json")
    audit_file: Path = Path("state/audit.ndjson")
    log_file: Path | None = Path("logs/update.log")
    cache_dir: Path = Path("cache")
    repo_dir: Path = Path("repo")
    recipes_dir: Path = Path("recipes")

    # ── Repository ───────────────────────────────────────────────
    repo_name: str = "local-packages"
    artifact_suffix: str = ".pkg.tar.zst"
    manifest_name: str = "PKGBUILD"

    # ── External tools ───────────────────────────────────────────
    build_command: list[str] = Field(
        default_factory=lambda: ["makepkg", "-sf", "--noconfirm"]
    )
    build_timeout: float = Field(default=3600, gt=0)
    index_command: str = "repo-add"
    install: InstallSettings = Field(default_factory=InstallSettings)

    # ── Network / concurrency ────────────────────────────────────
    request_timeout: float = Field(default=30, gt=0)
    check_workers: int = Field(default=8, ge=1)

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.root / path

    @property
    def state_path(self) -> Path:
        return self._resolve(self.state_file)

    @property
    def audit_path(self) -> Path:
        return self._resolve(self.audit_file)

    @property
    def log_path(self) -> Path | None:
        return self._resolve(self.log_file) if self.log_file else None

    @property
    def downloads_path(self) -> Path:
        return self._resolve(self.cache_dir) / "downloads"

    @property
    def build_root(self) -> Path:
        return self._resolve(self.cache_dir) / "build"

    @property
    def repo_path(self) -> Path:
        return self._resolve(self.repo_dir)

    @property
    def recipes_path(self) -> Path:
        return self._resolve(self.recipes_dir)

    def recipe_dir(self, package: str) -> Path:
        """Directory holding a package's manifest template and files/."""
        return self.recipes_path / package
