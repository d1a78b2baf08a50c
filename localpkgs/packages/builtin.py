"""
Built-in package definitions.

Each class pins one vendor's distribution endpoint; recipes (manifest
templates and auxiliary files) live under recipes/<name>/.
"""

from __future__ import annotations

from pydantic import BaseModel

from localpkgs.core.models.package import VersionInfo
from localpkgs.core.services import http_client
from localpkgs.packages.base import (
    DebianRepoPackage,
    GitHubCommitPackage,
    GitHubReleasePackage,
    Package,
    PlainTextVersionPackage,
)
from localpkgs.packages.registry import PackageRegistry


class Btsms(GitHubCommitPackage):
    name = "btsms"
    description = "Cross-platform SMS manager via Bluetooth (MAP/PBAP/ANCS)"
    repo = "kaaboaye/btsms"


class ClaudeCode(PlainTextVersionPackage):
    name = "claude-code"
    description = "An agentic coding tool that lives in your terminal"
    bucket = (
        "https://storage.googleapis.com/"
        "claude-code-dist-86c565f3-f756-42ad-8dfa-d59b1c096819/claude-code-releases"
    )
    version_url = f"{bucket}/latest"
    download_url = f"{bucket}/{{version}}/linux-x64/claude"

    def source_filename(self, info: VersionInfo) -> str:
        return f"claude-{info.version}-x86_64"


class CrowdinCli(GitHubReleasePackage):
    name = "crowdin-cli-bin"
    description = "Crowdin CLI tool for localization management"
    repo = "crowdin/crowdin-cli"
    download_url = "https://github.com/crowdin/crowdin-cli/releases/download/{tag}/crowdin-cli.zip"

    def source_filename(self, info: VersionInfo) -> str:
        return "crowdin-cli.zip"


class _CursorRelease(BaseModel):
    version: str
    commitSha: str


class Cursor(Package):
    name = "cursor-bin"
    description = "AI-first code editor"
    api_url = "https://www.cursor.com/api/download?platform=linux-x64&releaseTrack=latest"

    def detect(self, timeout: float = http_client.DEFAULT_TIMEOUT) -> VersionInfo:
        release = _CursorRelease.model_validate(http_client.get_json(self.api_url, timeout=timeout))
        return VersionInfo(
            version=release.version,
            commit_hash=release.commitSha,
            download_url=(
                f"https://downloads.cursor.com/production/{release.commitSha}"
                f"/linux/x64/deb/amd64/deb/cursor_{release.version}_amd64.deb"
            ),
        )

    def template_vars(self, info: VersionInfo) -> dict[str, str]:
        return {"COMMIT_HASH": info.commit_hash or ""}

    def source_filename(self, info: VersionInfo) -> str:
        return f"cursor_{info.version}_amd64.deb"


class GoogleChrome(DebianRepoPackage):
    name = "google-chrome"
    description = "The popular web browser by Google (Stable Channel)"
    index_url = "https://dl.google.com/linux/chrome/deb/dists/stable/main/binary-amd64/Packages"
    deb_package = "google-chrome-stable"
    download_url = (
        "https://dl.google.com/linux/chrome/deb/pool/main/g/google-chrome-stable/"
        "google-chrome-stable_{version}-1_amd64.deb"
    )

    def source_filename(self, info: VersionInfo) -> str:
        return f"google-chrome-stable_{info.version}-1_amd64.deb"


class TablePlus(DebianRepoPackage):
    name = "tableplus"
    description = "Modern, native GUI tool for relational databases"
    index_url = "https://deb.tableplus.com/debian/24/dists/tableplus/main/binary-amd64/Packages"
    download_url = "https://deb.tableplus.com/debian/24/pool/main/t/tableplus/tableplus_{version}_amd64.deb"

    def source_filename(self, info: VersionInfo) -> str:
        return f"tableplus_{info.version}_amd64.deb"


class VisualStudioCode(GitHubReleasePackage):
    name = "visual-studio-code-bin"
    description = "Visual Studio Code (official binary version)"
    repo = "microsoft/vscode"
    download_url = "https://update.code.visualstudio.com/{version}/linux-x64/stable"

    def source_filename(self, info: VersionInfo) -> str:
        return f"code_x64_{info.version}.tar.gz"


class WhisperCpp(GitHubReleasePackage):
    name = "whisper-cpp"
    description = "Port of OpenAI's Whisper model in C/C++ (Vulkan GPU acceleration)"
    repo = "ggml-org/whisper.cpp"
    download_url = "https://github.com/ggml-org/whisper.cpp/archive/{tag}.tar.gz"
    strip_v = True

    def source_filename(self, info: VersionInfo) -> str:
        return f"whisper.cpp-{info.version}.tar.gz"


def default_registry() -> PackageRegistry:
    """Registry holding every built-in package."""
    registry = PackageRegistry()
    registry.register(Btsms())
    registry.register(ClaudeCode())
    registry.register(CrowdinCli())
    registry.register(Cursor())
    registry.register(GoogleChrome())
    registry.register(TablePlus())
    registry.register(VisualStudioCode())
    registry.register(WhisperCpp())
    return registry
