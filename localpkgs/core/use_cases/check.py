"""
Check use case — compare built versions against upstream, read-only.

Detection for all packages runs concurrently; one package's failure
never affects the others. Results come back in enumeration order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from localpkgs.core.engine.builder import detect_version
from localpkgs.core.errors import LocalPkgError
from localpkgs.core.models.package import VersionInfo
from localpkgs.core.use_cases.runtime import Runtime
from localpkgs.packages.base import Package

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Current vs. latest version of one package."""

    package: str
    current_version: str | None = None
    latest_version: str | None = None
    info: VersionInfo | None = None
    installed: bool | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def needs_update(self) -> bool:
        return self.ok and self.current_version != self.latest_version

    @property
    def status(self) -> str:
        if not self.ok:
            return "error"
        return "update_available" if self.needs_update else "up_to_date"

    def to_dict(self) -> dict:
        return {
            "package": self.package,
            "current_version": self.current_version,
            "latest_version": self.latest_version,
            "status": self.status,
            "installed": self.installed,
            "error": self.error,
        }


def check_packages(
    runtime: Runtime,
    names: Iterable[str] | None = None,
    *,
    query_installed: bool = False,
    on_result: Callable[[CheckResult], None] | None = None,
) -> list[CheckResult]:
    """Detect the latest version of each package and compare with state.

    Args:
        runtime: Collaborators for this invocation.
        names: Packages to check; all registered packages when empty.
        query_installed: Also ask the host package manager whether each
            package is installed.
        on_result: Called (on the calling thread) as each result arrives.

    Raises:
        UnknownPackageError: If a name is not registered.
        StateError: If the state file exists but cannot be read.
    """
    packages = runtime.packages.select(names)
    if not packages:
        return []

    state = runtime.store.load()
    timeout = runtime.settings.request_timeout
    workers = min(runtime.settings.check_workers, len(packages))

    def _check(package: Package) -> CheckResult:
        result = CheckResult(package=package.name, current_version=state.get(package.name))
        try:
            info = detect_version(package, timeout=timeout)
        except LocalPkgError as e:
            result.error = str(e)
        else:
            result.info = info
            result.latest_version = info.version
        if query_installed:
            result.installed = runtime.installer.is_installed(package.name)
        return result

    results: dict[str, CheckResult] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="check") as pool:
        futures = {pool.submit(_check, p): p for p in packages}
        for future in as_completed(futures):
            result = future.result()
            results[result.package] = result
            if result.ok:
                logger.info(
                    "%s: %s → %s (%s)",
                    result.package,
                    result.current_version or "not built",
                    result.latest_version,
                    result.status.replace("_", " "),
                )
            else:
                logger.error("Error checking %s: %s", result.package, result.error)
            if on_result:
                on_result(result)

    return [results[p.name] for p in packages]
