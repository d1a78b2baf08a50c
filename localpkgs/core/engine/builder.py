"""
Package builder — one package's transition from "stale" to "published".

Stages run strictly in order:

    detect → compare → download → checksum → render → assemble
           → build → publish → commit

Every stage before ``commit`` is idempotent: downloads are keyed by
``{name}_{version}``, the build directory is wiped before reuse and old
artifacts are pruned before new ones are placed. The version state is
written only after the artifacts are in the repository, so a failed or
interrupted attempt leaves the package exactly where it was.

Every package-level failure, including an unexpected exception from
recipe or package code, becomes a failed BuildResult. Only StateError
escapes, because an unwritable state file affects every package.
"""

from __future__ import annotations

import logging
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from localpkgs.adapters.registry import AdapterRegistry
from localpkgs.core.errors import (
    BuildError,
    DetectionError,
    LocalPkgError,
    ManifestError,
    PublishError,
    StateError,
)
from localpkgs.core.models.action import Action
from localpkgs.core.models.package import VersionInfo
from localpkgs.core.models.settings import Settings
from localpkgs.core.persistence.state_file import VersionStore
from localpkgs.core.services import fetcher, templater
from localpkgs.core.services.checksum import sha256_file
from localpkgs.packages.base import Package

logger = logging.getLogger(__name__)

Downloader = Callable[..., Path]


class Stage(str, Enum):
    DETECT = "detect"
    COMPARE = "compare"
    DOWNLOAD = "download"
    CHECKSUM = "checksum"
    RENDER = "render"
    ASSEMBLE = "assemble"
    BUILD = "build"
    PUBLISH = "publish"
    COMMIT = "commit"


@dataclass
class BuildResult:
    """Outcome of one package build attempt."""

    package: str
    status: str = "failed"              # built, up_to_date, failed
    previous_version: str | None = None
    version: str | None = None
    stage: Stage | None = None          # last stage reached
    error: str | None = None
    error_type: str | None = None
    artifacts: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def built(self) -> bool:
        return self.status == "built"

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    def to_dict(self) -> dict:
        return {
            "package": self.package,
            "status": self.status,
            "previous_version": self.previous_version,
            "version": self.version,
            "stage": self.stage.value if self.stage else None,
            "error": self.error,
            "error_type": self.error_type,
            "artifacts": self.artifacts,
            "duration_ms": self.duration_ms,
        }


def artifact_package_name(filename: str, suffix: str) -> str | None:
    """Package name encoded in an artifact filename.

    Artifacts are named ``{name}-{version}-{release}-{arch}{suffix}``;
    the name itself may contain hyphens.

    >>> artifact_package_name("google-chrome-144.0-1-x86_64.pkg.tar.zst", ".pkg.tar.zst")
    'google-chrome'
    """
    if not filename.endswith(suffix):
        return None
    parts = filename[: -len(suffix)].rsplit("-", 3)
    if len(parts) != 4 or not all(parts):
        return None
    return parts[0]


class PackageBuilder:
    """Runs the build pipeline for one package at a time.

    Args:
        settings: Resolved configuration (paths, tool commands, timeouts).
        adapters: Registry used to invoke the external build tool.
        store: Version state store.
        download: Fetch function, ``download(url, dest, timeout=...)``.
    """

    def __init__(
        self,
        settings: Settings,
        adapters: AdapterRegistry,
        store: VersionStore,
        download: Downloader = fetcher.download,
    ):
        self._settings = settings
        self._adapters = adapters
        self._store = store
        self._download = download

    # ── Public ──────────────────────────────────────────────────

    def build(self, package: Package, info: VersionInfo | None = None) -> BuildResult:
        """Bring ``package`` up to date.

        Args:
            package: The package to build.
            info: Already-detected version (skips the detect stage).

        Raises:
            StateError: If the version state cannot be read or written.
        """
        result = BuildResult(package=package.name)
        start = time.monotonic()
        try:
            self._run(package, info, result)
        except StateError:
            raise
        except LocalPkgError as e:
            self._fail(result, e)
        except Exception as e:
            # A bug in recipe or package code fails only this package
            self._fail(result, e)
            logger.debug("%s: unexpected error", package.name, exc_info=True)
        finally:
            result.duration_ms = int((time.monotonic() - start) * 1000)
        return result

    def _fail(self, result: BuildResult, error: Exception) -> None:
        result.status = "failed"
        result.error = str(error)
        result.error_type = type(error).__name__
        stage = result.stage.value if result.stage else "?"
        logger.error("%s: %s failed at %s: %s", result.package, result.error_type, stage, error)

    # ── Pipeline ────────────────────────────────────────────────

    def _run(self, package: Package, info: VersionInfo | None, result: BuildResult) -> None:
        name = package.name

        result.stage = Stage.DETECT
        if info is None:
            info = detect_version(package, timeout=self._settings.request_timeout)
        result.version = info.version

        result.stage = Stage.COMPARE
        current = self._store.current(name)
        result.previous_version = current
        if current == info.version:
            logger.info("%s is up to date (%s)", name, info.version)
            result.status = "up_to_date"
            return

        logger.info("%s: new version available: %s → %s", name, current or "not built", info.version)

        result.stage = Stage.DOWNLOAD
        cached = self._settings.downloads_path / cache_filename(name, info)
        self._download(info.download_url, cached, timeout=self._settings.request_timeout)

        result.stage = Stage.CHECKSUM
        digest = sha256_file(cached)
        logger.info("%s: SHA256 %s", name, digest)

        result.stage = Stage.RENDER
        manifest = self._render_manifest(package, info, digest)

        result.stage = Stage.ASSEMBLE
        build_dir = self._assemble(package, info, manifest, cached)

        result.stage = Stage.BUILD
        artifacts = self._invoke_build_tool(name, build_dir)

        result.stage = Stage.PUBLISH
        result.artifacts = self._publish(name, artifacts)

        result.stage = Stage.COMMIT
        self._store.commit(name, info.version)
        result.status = "built"
        logger.info("Successfully built %s %s", name, info.version)

    def _render_manifest(self, package: Package, info: VersionInfo, digest: str) -> str:
        template_path = self._settings.recipe_dir(package.name) / f"{self._settings.manifest_name}.template"
        try:
            template = template_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestError(f"Cannot read manifest template {template_path}: {e}") from e

        variables = templater.merge_variables(
            {"VERSION": info.version, "SHA256": digest},
            package.template_vars(info),
        )
        manifest = templater.render(template, variables)
        leftover = templater.unresolved(manifest)
        if leftover:
            logger.warning("%s: unresolved placeholders in manifest: %s", package.name, ", ".join(leftover))
        return manifest

    def _assemble(self, package: Package, info: VersionInfo, manifest: str, cached: Path) -> Path:
        build_dir = self._settings.build_root / package.name
        try:
            if build_dir.exists():
                shutil.rmtree(build_dir)
            build_dir.mkdir(parents=True)

            (build_dir / self._settings.manifest_name).write_text(manifest, encoding="utf-8")

            files_dir = self._settings.recipe_dir(package.name) / "files"
            if files_dir.is_dir():
                for entry in sorted(files_dir.iterdir()):
                    if entry.is_dir():
                        shutil.copytree(entry, build_dir / entry.name)
                    else:
                        shutil.copy2(entry, build_dir / entry.name)

            source = build_dir / (package.source_filename(info) or cache_filename(package.name, info))
            source.unlink(missing_ok=True)
            try:
                source.symlink_to(cached.resolve())
            except OSError:
                shutil.copy2(cached, source)
        except OSError as e:
            raise BuildError(f"Cannot assemble build directory {build_dir}: {e}") from e

        logger.debug("%s: build directory ready at %s", package.name, build_dir)
        return build_dir

    def _invoke_build_tool(self, name: str, build_dir: Path) -> list[Path]:
        logger.info("Building %s...", name)
        receipt = self._adapters.execute_action(
            Action(
                id=f"build:{name}",
                args=list(self._settings.build_command),
                cwd=str(build_dir),
                timeout=self._settings.build_timeout,
                for_package=name,
            )
        )
        if not receipt.ok:
            raise BuildError(
                f"Build tool failed (exit {receipt.return_code}): {receipt.error or 'no output'}"
            )

        suffix = self._settings.artifact_suffix
        artifacts = sorted(p for p in build_dir.iterdir() if p.name.endswith(suffix) and p.is_file())
        if not artifacts:
            raise BuildError(f"Build tool produced no *{suffix} artifacts in {build_dir}")
        return artifacts

    def _publish(self, name: str, artifacts: list[Path]) -> list[str]:
        """Prune old artifacts of this package, then move the new ones in."""
        repo = self._settings.repo_path
        suffix = self._settings.artifact_suffix

        # Split packages publish several names; prune all of them
        owned = {name} | {artifact_package_name(a.name, suffix) for a in artifacts}
        owned.discard(None)

        try:
            repo.mkdir(parents=True, exist_ok=True)
            for existing in sorted(repo.iterdir()):
                if artifact_package_name(existing.name, suffix) in owned:
                    logger.info("%s: removing old artifact %s", name, existing.name)
                    existing.unlink()

            placed = []
            for artifact in artifacts:
                shutil.move(str(artifact), repo / artifact.name)
                placed.append(artifact.name)
        except OSError as e:
            raise PublishError(f"Cannot place artifacts in {repo}: {e}") from e

        return placed


def detect_version(package: Package, *, timeout: float) -> VersionInfo:
    """Run a package's detector, normalising every failure to DetectionError."""
    try:
        info = package.detect(timeout=timeout)
    except DetectionError as e:
        e.package = e.package or package.name
        raise
    except Exception as e:
        raise DetectionError(f"Version detection failed: {e}", package=package.name) from e
    if not isinstance(info, VersionInfo):
        raise DetectionError(f"Detector returned {type(info).__name__}, not VersionInfo", package=package.name)
    return info


def cache_filename(name: str, info: VersionInfo) -> str:
    """Download cache key: ``{name}_{version}`` plus the URL's extension."""
    version = info.version.replace("/", "_")
    return f"{name}_{version}{fetcher.url_suffix(info.download_url)}"
