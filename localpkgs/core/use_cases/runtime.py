"""
Runtime — the collaborators one CLI invocation works with.

Built once from Settings by the CLI; tests build it directly with a
MockAdapter and a fake downloader. Every path comes from Settings, so
nothing here depends on the process working directory.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from localpkgs.adapters.registry import AdapterRegistry
from localpkgs.core.engine.builder import Downloader, PackageBuilder
from localpkgs.core.engine.publisher import RepositoryPublisher
from localpkgs.core.models.settings import Settings
from localpkgs.core.persistence.audit import AuditEntry, RunLedger
from localpkgs.core.persistence.state_file import VersionStore
from localpkgs.core.services import fetcher
from localpkgs.core.services.installer import Installer
from localpkgs.packages.registry import PackageRegistry


def default_adapters() -> AdapterRegistry:
    """Adapter registry wired to the real shell."""
    from localpkgs.adapters.shell.command import ShellCommandAdapter

    return AdapterRegistry([ShellCommandAdapter()])


@dataclass
class Runtime:
    settings: Settings
    packages: PackageRegistry
    adapters: AdapterRegistry = field(default_factory=default_adapters)
    download: Downloader = fetcher.download

    def __post_init__(self) -> None:
        self.store = VersionStore(self.settings.state_path)
        self.builder = PackageBuilder(self.settings, self.adapters, self.store, download=self.download)
        self.publisher = RepositoryPublisher(self.settings, self.adapters)
        self.installer = Installer(self.settings.install, self.adapters)
        self.audit = RunLedger(self.settings.audit_path)

    def record(self, entry: AuditEntry) -> None:
        """Append a run to the audit ledger (best-effort)."""
        self.audit.append(entry)


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
