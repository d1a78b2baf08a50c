"""
Update use case — the full orchestration run.

    check all (concurrent) → build stale (serial) → republish once
                           → system update + install (optional)

Builds run one at a time in enumeration order because the build tool
shares host-wide state. A package failure is recorded and the run moves
on; a state or index failure marks the whole run failed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from localpkgs.core.engine.builder import BuildResult
from localpkgs.core.engine.publisher import PublishReport
from localpkgs.core.errors import PublishError, StateError
from localpkgs.core.models.action import Receipt
from localpkgs.core.persistence.audit import AuditEntry
from localpkgs.core.use_cases.check import CheckResult, check_packages
from localpkgs.core.use_cases.runtime import Runtime, generate_operation_id

logger = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    """Result of an update run."""

    operation_id: str
    checks: list[CheckResult] = field(default_factory=list)
    builds: list[BuildResult] = field(default_factory=list)
    publish: PublishReport | None = None
    installed: list[str] = field(default_factory=list)
    install_receipts: list[Receipt] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)     # run-level failures

    @property
    def built(self) -> list[str]:
        return [b.package for b in self.builds if b.built]

    @property
    def failed(self) -> list[str]:
        return [c.package for c in self.checks if not c.ok] + [
            b.package for b in self.builds if not b.ok
        ]

    @property
    def up_to_date(self) -> list[str]:
        return [c.package for c in self.checks if c.ok and not c.needs_update]

    @property
    def ok(self) -> bool:
        """False only for run-level failures; package failures are reported, not fatal."""
        return not self.errors

    @property
    def status(self) -> str:
        if self.errors:
            return "failed"
        return "partial" if self.failed else "ok"

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "status": self.status,
            "checks": [c.to_dict() for c in self.checks],
            "builds": [b.to_dict() for b in self.builds],
            "publish": self.publish.to_dict() if self.publish else None,
            "installed": self.installed,
            "errors": self.errors,
        }


def run_update(
    runtime: Runtime,
    *,
    install: bool = True,
    extra_args: Iterable[str] = (),
    no_confirm: bool = False,
    on_check: Callable[[CheckResult], None] | None = None,
    on_build_start: Callable[[str], None] | None = None,
    on_build: Callable[[BuildResult], None] | None = None,
) -> UpdateResult:
    """Bring every registered package up to date.

    Args:
        runtime: Collaborators for this invocation.
        install: Run the host package manager afterwards (also gated by
            ``install.enabled`` in settings).
        extra_args: Passed through to ``<manager> update``.
        no_confirm: Pass ``--no-confirm`` to the install step.
        on_check / on_build_start / on_build: Progress callbacks.
    """
    install = install and runtime.settings.install.enabled
    result = UpdateResult(operation_id=generate_operation_id())
    start = time.monotonic()
    logger.info("Starting package update (%s)", result.operation_id)

    # ── Check (concurrent) ──────────────────────────────────────
    try:
        result.checks = check_packages(runtime, query_installed=install, on_result=on_check)
    except StateError as e:
        logger.error("Cannot read version state: %s", e)
        result.errors.append(str(e))
        _record(runtime, result, start)
        return result

    # ── Build (serial) ──────────────────────────────────────────
    for check in result.checks:
        if not check.needs_update:
            continue
        if on_build_start:
            on_build_start(check.package)
        package = runtime.packages.get(check.package)
        try:
            build = runtime.builder.build(package, check.info)
        except StateError as e:
            logger.error("State error while building %s: %s — stopping builds", check.package, e)
            result.errors.append(str(e))
            break
        result.builds.append(build)
        if on_build:
            on_build(build)

    # ── Republish (once) ────────────────────────────────────────
    # A StateError can follow a successful publish, so republish
    # whenever artifacts may have changed.
    if result.built or result.errors:
        logger.info("Updating repository database...")
        try:
            result.publish = runtime.publisher.republish()
        except PublishError as e:
            logger.error("Repository update failed: %s", e)
            result.errors.append(str(e))

    # ── System update / install ─────────────────────────────────
    if install and not result.errors:
        _install(runtime, result, extra_args, no_confirm)

    _record(runtime, result, start)
    return result


def _install(
    runtime: Runtime,
    result: UpdateResult,
    extra_args: Iterable[str],
    no_confirm: bool,
) -> None:
    built = set(result.built)
    missing = {
        c.package for c in result.checks
        if c.installed is False and (c.current_version or c.package in built)
    }
    targets = [c.package for c in result.checks if c.package in built | missing]

    result.install_receipts.append(runtime.installer.system_update(extra_args))
    if targets:
        receipt = runtime.installer.install(targets, no_confirm=no_confirm)
        result.install_receipts.append(receipt)
        if receipt.ok:
            result.installed = targets


def _record(runtime: Runtime, result: UpdateResult, start: float) -> None:
    runtime.record(
        AuditEntry(
            operation_id=result.operation_id,
            command="update",
            status=result.status,
            built=result.built,
            up_to_date=result.up_to_date,
            failed=result.failed,
            republished=result.publish is not None,
            duration_ms=int((time.monotonic() - start) * 1000),
            errors=result.errors
            + [f"{c.package}: {c.error}" for c in result.checks if c.error]
            + [f"{b.package}: {b.error}" for b in result.builds if b.error],
        )
    )
