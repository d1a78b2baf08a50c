"""
Shared test fixtures and configuration.

The external tools are replaced by a MockAdapter whose side effects
mimic them: ``makepkg`` drops an artifact named after the PKGBUILD's
pkgname/pkgver, ``repo-add`` writes the database archives and the
pointer symlinks. Downloads go through FakeDownloader.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from localpkgs.adapters.mock import MockAdapter
from localpkgs.adapters.registry import AdapterRegistry
from localpkgs.core.models.action import Action
from localpkgs.core.models.package import VersionInfo
from localpkgs.core.models.settings import InstallSettings, Settings
from localpkgs.core.use_cases.runtime import Runtime
from localpkgs.packages.base import Package
from localpkgs.packages.registry import PackageRegistry

SUFFIX = ".pkg.tar.zst"


class FakePackage(Package):
    """Package whose detector returns a fixed answer (or raises)."""

    def __init__(
        self,
        name: str = "foo",
        version: str = "1.2.3",
        url: str = "http://x/f.bin",
        error: Exception | None = None,
        extra_vars: dict[str, str] | None = None,
        filename: str | None = None,
    ):
        self.name = name
        self.description = f"{name} test package"
        self.version = version
        self.url = url
        self.error = error
        self.extra_vars = extra_vars or {}
        self.filename = filename
        self.detect_calls = 0

    def detect(self, timeout: float = 30) -> VersionInfo:
        self.detect_calls += 1
        if self.error is not None:
            raise self.error
        return VersionInfo(version=self.version, download_url=self.url)

    def template_vars(self, info: VersionInfo) -> dict[str, str]:
        return dict(self.extra_vars)

    def source_filename(self, info: VersionInfo) -> str | None:
        return self.filename


class FakeDownloader:
    """Stands in for fetcher.download; writes deterministic bytes."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.calls: list[tuple[str, Path]] = []

    @staticmethod
    def payload(url: str) -> bytes:
        return b"artifact:" + url.encode()

    def __call__(self, url: str, dest: Path, *, timeout: float = 30) -> Path:
        self.calls.append((url, dest))
        if self.error is not None:
            raise self.error
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.payload(url))
        return dest


def fake_makepkg(action: Action) -> None:
    """Produce ``{pkgname}-{pkgver}-1-x86_64.pkg.tar.zst`` in the build dir."""
    build_dir = Path(action.cwd)
    fields = {}
    for line in (build_dir / "PKGBUILD").read_text().splitlines():
        if "=" in line and not line.startswith("#"):
            key, value = line.split("=", 1)
            fields[key.strip()] = value.strip()
    if fields.get("pkgname") == "explodes":
        raise RuntimeError("makepkg: compilation failed")
    artifact = build_dir / f"{fields['pkgname']}-{fields['pkgver']}-1-x86_64{SUFFIX}"
    artifact.write_bytes(b"built package")


def fake_repo_add(action: Action) -> None:
    """Write the database archives plus repo-add's pointer symlinks."""
    db = Path(action.args[1])
    repo = db.parent
    name = db.name.removesuffix(".db.tar.zst")
    db.write_text("\n".join(Path(a).name for a in action.args[2:]))
    files = repo / f"{name}.files.tar.zst"
    files.write_text("files")
    (repo / f"{name}.db").symlink_to(db.name)
    (repo / f"{name}.files").symlink_to(files.name)


def write_recipe(settings: Settings, name: str, template: str | None = None) -> Path:
    """Create recipes/<name>/PKGBUILD.template."""
    recipe = settings.recipe_dir(name)
    recipe.mkdir(parents=True, exist_ok=True)
    if template is None:
        template = f"pkgname={name}\npkgver=%%VERSION%%\npkgrel=1\nsha256sums=('%%SHA256%%')\n"
    (recipe / "PKGBUILD.template").write_text(template)
    return recipe


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory, no log file, no install step."""
    return Settings(
        root=tmp_path,
        log_file=None,
        install=InstallSettings(enabled=False),
    )


@pytest.fixture
def shell() -> MockAdapter:
    """Mock 'shell' adapter standing in for makepkg / repo-add / pamac."""
    mock = MockAdapter(adapter_name="shell")
    mock.set_side_effect("makepkg", fake_makepkg)
    mock.set_side_effect("repo-add", fake_repo_add)
    return mock


@pytest.fixture
def adapters(shell: MockAdapter) -> AdapterRegistry:
    registry = AdapterRegistry()
    registry.register(shell)
    return registry


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def make_runtime(settings: Settings, adapters: AdapterRegistry, downloader: FakeDownloader):
    """Factory: runtime over the given packages, with recipes written for each."""

    def _make(*packages: Package) -> Runtime:
        for package in packages:
            write_recipe(settings, package.name)
        return Runtime(
            settings=settings,
            packages=PackageRegistry(packages),
            adapters=adapters,
            download=downloader,
        )

    return _make
