"""
Package registry — the explicit list of managed packages.

Populated at startup by register() calls; enumeration order is
registration order, which is also the order builds run in.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from localpkgs.core.errors import UnknownPackageError
from localpkgs.packages.base import Package

logger = logging.getLogger(__name__)


class PackageRegistry:
    """Name → Package mapping with stable ordering."""

    def __init__(self, packages: Iterable[Package] = ()):
        self._packages: dict[str, Package] = {}
        for package in packages:
            self.register(package)

    def register(self, package: Package) -> Package:
        """Register a package; its name must be unique."""
        if not package.name:
            raise ValueError(f"{package!r} has no name")
        if package.name in self._packages:
            raise ValueError(f"Package already registered: {package.name}")
        self._packages[package.name] = package
        logger.debug("Registered package: %s", package.name)
        return package

    def get(self, name: str) -> Package:
        """Look up a package by name.

        Raises:
            UnknownPackageError: If ``name`` is not registered.
        """
        try:
            return self._packages[name]
        except KeyError:
            raise UnknownPackageError(f"Unknown package: {name}", package=name) from None

    def names(self) -> list[str]:
        return list(self._packages)

    def select(self, names: Iterable[str] | None = None) -> list[Package]:
        """Packages for ``names`` (all when empty), in the order given."""
        if not names:
            return list(self._packages.values())
        return [self.get(n) for n in names]

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages.values())

    def __len__(self) -> int:
        return len(self._packages)
