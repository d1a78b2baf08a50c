"""
Package base — the capability contract every managed package implements.

A package answers three questions for the builder:

    detect()           what is the latest version and where is it?
    template_vars()    extra %%NAME%% values for its manifest
    source_filename()  what file name its manifest expects the download under

Adding a package means subclassing one of the detector bases below (or
Package itself) and registering an instance; no engine code changes.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel

from localpkgs.core.errors import DetectionError
from localpkgs.core.models.package import VersionInfo
from localpkgs.core.services import http_client

GITHUB_API = "https://api.github.com"
_GITHUB_HEADERS = {"Accept": "application/vnd.github+json"}


class Package(ABC):
    """A third-party package managed by the orchestrator."""

    name: str = ""
    description: str = ""

    @abstractmethod
    def detect(self, timeout: float = http_client.DEFAULT_TIMEOUT) -> VersionInfo:
        """Return the latest upstream version.

        Raises:
            DetectionError: Or any other exception; the builder wraps
                whatever escapes into a DetectionError.
        """

    def template_vars(self, info: VersionInfo) -> dict[str, str]:
        """Extra manifest variables. Merged after VERSION and SHA256."""
        return {}

    def source_filename(self, info: VersionInfo) -> str | None:
        """Filename the manifest expects. None means ``{name}_{version}{ext}``."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


# ── GitHub ──────────────────────────────────────────────────────


class GitHubRelease(BaseModel):
    tag_name: str


class GitHubCommitter(BaseModel):
    date: datetime


class GitHubCommitDetail(BaseModel):
    committer: GitHubCommitter


class GitHubCommit(BaseModel):
    sha: str
    commit: GitHubCommitDetail


def fetch_github_latest_tag(repo: str, *, timeout: float = http_client.DEFAULT_TIMEOUT) -> str:
    """Tag name of the latest release of ``owner/repo``."""
    data = http_client.get_json(
        f"{GITHUB_API}/repos/{repo}/releases/latest",
        timeout=timeout,
        headers=_GITHUB_HEADERS,
    )
    return GitHubRelease.model_validate(data).tag_name


class GitHubReleasePackage(Package):
    """Version = latest GitHub release tag.

    ``download_url`` may reference ``{tag}`` and ``{version}``; with
    ``strip_v`` a leading ``v`` is dropped from the tag to form the version.
    """

    repo: str = ""
    download_url: str = ""
    strip_v: bool = False

    def detect(self, timeout: float = http_client.DEFAULT_TIMEOUT) -> VersionInfo:
        tag = fetch_github_latest_tag(self.repo, timeout=timeout)
        version = tag[1:] if self.strip_v and tag.startswith("v") else tag
        return VersionInfo(
            version=version,
            download_url=self.download_url.format(tag=tag, version=version),
        )


class GitHubCommitPackage(Package):
    """Version = ``{base_version}.{YYYYMMDD}.{short sha}`` of a branch head.

    For projects without releases. The full commit hash is exposed to
    the manifest as ``%%COMMIT%%``.
    """

    repo: str = ""
    branch: str = "main"
    base_version: str = "0.1.0"

    def detect(self, timeout: float = http_client.DEFAULT_TIMEOUT) -> VersionInfo:
        data = http_client.get_json(
            f"{GITHUB_API}/repos/{self.repo}/commits/{self.branch}",
            timeout=timeout,
            headers=_GITHUB_HEADERS,
        )
        head = GitHubCommit.model_validate(data)
        date = head.commit.committer.date.strftime("%Y%m%d")
        return VersionInfo(
            version=f"{self.base_version}.{date}.{head.sha[:7]}",
            download_url=f"https://github.com/{self.repo}/archive/{head.sha}.tar.gz",
            commit_hash=head.sha,
        )

    def template_vars(self, info: VersionInfo) -> dict[str, str]:
        return {"COMMIT": info.commit_hash or ""}

    def source_filename(self, info: VersionInfo) -> str | None:
        return f"{self.repo.rsplit('/', 1)[-1]}-{info.commit_hash}.tar.gz"


# ── Debian repositories ─────────────────────────────────────────


def parse_debian_version(index: str, package: str) -> str | None:
    """Upstream part of ``package``'s Version in a Debian Packages index.

    The Debian revision (``-1``) and epoch are dropped.
    """
    pattern = re.compile(
        rf"^Package: {re.escape(package)}\n(?:[^\n]+\n)*?Version: (?:\d+:)?([^\s-]+)",
        re.MULTILINE,
    )
    match = pattern.search(index)
    return match.group(1) if match else None


class DebianRepoPackage(Package):
    """Version read from a vendor's Debian ``Packages`` index.

    ``download_url`` may reference ``{version}``.
    """

    index_url: str = ""
    deb_package: str = ""
    download_url: str = ""

    def detect(self, timeout: float = http_client.DEFAULT_TIMEOUT) -> VersionInfo:
        index = http_client.get_text(self.index_url, timeout=timeout)
        version = parse_debian_version(index, self.deb_package or self.name)
        if not version:
            raise DetectionError(
                f"Package {self.deb_package or self.name!r} not found in {self.index_url}",
                package=self.name,
            )
        return VersionInfo(version=version, download_url=self.download_url.format(version=version))


# ── Plain endpoints ─────────────────────────────────────────────


class PlainTextVersionPackage(Package):
    """Version = body of ``version_url``, stripped.

    ``download_url`` may reference ``{version}``.
    """

    version_url: str = ""
    download_url: str = ""

    def detect(self, timeout: float = http_client.DEFAULT_TIMEOUT) -> VersionInfo:
        version = http_client.get_text(self.version_url, timeout=timeout).strip()
        if not version or "\n" in version:
            raise DetectionError(f"Unexpected version payload from {self.version_url}", package=self.name)
        return VersionInfo(version=version, download_url=self.download_url.format(version=version))
