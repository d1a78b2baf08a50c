"""
Build use case — build one named package, then republish the repository.

The repository is republished even when the package was already up to
date or failed to build: the caller asked for this package explicitly
and expects the index to reflect the repository afterwards.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from localpkgs.core.engine.builder import BuildResult
from localpkgs.core.engine.publisher import PublishReport
from localpkgs.core.errors import PublishError, StateError
from localpkgs.core.persistence.audit import AuditEntry
from localpkgs.core.use_cases.runtime import Runtime, generate_operation_id

logger = logging.getLogger(__name__)


@dataclass
class BuildRunResult:
    """Result of ``build <name>``."""

    operation_id: str
    build: BuildResult | None = None
    publish: PublishReport | None = None
    error: str | None = None       # run-level failure (state or index)

    @property
    def ok(self) -> bool:
        return self.error is None and self.build is not None and self.build.ok

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "ok": self.ok,
            "build": self.build.to_dict() if self.build else None,
            "publish": self.publish.to_dict() if self.publish else None,
            "error": self.error,
        }


def run_build(runtime: Runtime, name: str) -> BuildRunResult:
    """Build ``name`` and republish.

    Raises:
        UnknownPackageError: If ``name`` is not registered.
    """
    package = runtime.packages.get(name)
    result = BuildRunResult(operation_id=generate_operation_id())
    start = time.monotonic()

    try:
        result.build = runtime.builder.build(package)
    except StateError as e:
        logger.error("State error while building %s: %s", name, e)
        result.error = str(e)

    logger.info("Updating repository database...")
    try:
        result.publish = runtime.publisher.republish()
    except PublishError as e:
        logger.error("Repository update failed: %s", e)
        result.error = result.error or str(e)

    build = result.build
    runtime.record(
        AuditEntry(
            operation_id=result.operation_id,
            command="build",
            status="ok" if result.ok else "failed",
            built=[name] if build and build.built else [],
            up_to_date=[name] if build and build.status == "up_to_date" else [],
            failed=[name] if not build or not build.ok else [],
            republished=result.publish is not None,
            duration_ms=int((time.monotonic() - start) * 1000),
            errors=[e for e in (build.error if build else None, result.error) if e],
        )
    )
    return result
