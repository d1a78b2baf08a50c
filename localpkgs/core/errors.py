"""
Error taxonomy for the orchestrator.

Package-level errors (detection through artifact placement) are caught
at the package builder boundary and turned into a failed BuildResult.
StateError and repository-index PublishErrors escape to the CLI because
they affect every package.
"""

from __future__ import annotations


class LocalPkgError(Exception):
    """Base class for all orchestrator errors.

    Args:
        message: Human-readable description.
        package: Package the error relates to, if any.
    """

    def __init__(self, message: str, *, package: str | None = None):
        super().__init__(message)
        self.package = package


class ConfigError(LocalPkgError):
    """Raised when localpkgs.yml is invalid or unreadable."""


class UnknownPackageError(LocalPkgError):
    """Raised when a package name is not in the registry."""


class DetectionError(LocalPkgError):
    """Vendor endpoint unreachable or its response unparsable."""


class NetworkError(LocalPkgError):
    """Download or HTTP request failure."""

    def __init__(self, message: str, *, url: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.url = url


class ConnectError(NetworkError):
    """DNS resolution or connection failure."""


class RequestTimeout(NetworkError):
    """The request exceeded its timeout."""


class HTTPStatusError(NetworkError):
    """The server answered with a non-2xx status."""

    def __init__(self, message: str, *, status: int, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status


class ChecksumError(LocalPkgError):
    """I/O failure while hashing an artifact."""


class ManifestError(LocalPkgError):
    """Manifest template missing or unreadable."""


class BuildError(LocalPkgError):
    """Build directory assembly failed or the build tool exited non-zero."""


class PublishError(LocalPkgError):
    """Artifact placement or repository index regeneration failed."""


class StateError(LocalPkgError):
    """Persisted version state could not be read or written."""
