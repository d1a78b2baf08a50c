"""Packages — capability bundles for every managed package.

Public re-exports for convenient access.
"""

from localpkgs.packages.base import (
    DebianRepoPackage,
    GitHubCommitPackage,
    GitHubReleasePackage,
    Package,
    PlainTextVersionPackage,
)
from localpkgs.packages.builtin import default_registry
from localpkgs.packages.registry import PackageRegistry

__all__ = [
    "DebianRepoPackage",
    "GitHubCommitPackage",
    "GitHubReleasePackage",
    "Package",
    "PackageRegistry",
    "PlainTextVersionPackage",
    "default_registry",
]
