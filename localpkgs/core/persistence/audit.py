"""
Run ledger — one NDJSON line per ``update`` / ``build`` run.

Lives next to the version state and backs ``localpkgs history``.
Appending is best-effort: the run it describes has already happened,
so a failed write is logged and otherwise ignored.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class AuditEntry(BaseModel):
    """Summary of one run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat(timespec="seconds"))
    operation_id: str = ""
    command: str = ""                # update | build
    status: str = ""                 # ok | partial | failed
    built: list[str] = Field(default_factory=list)
    up_to_date: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    republished: bool = False
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)


class RunLedger:
    """Append-only NDJSON file of AuditEntry records."""

    def __init__(self, path: Path):
        self.path = path

    def append(self, entry: AuditEntry) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Cannot append to run ledger %s: %s", self.path, e)

    def entries(self) -> list[AuditEntry]:
        """Every readable entry, oldest first. Damaged lines are skipped."""
        return list(self._iter_entries())

    def recent(self, n: int = 10) -> list[AuditEntry]:
        return self.entries()[-n:] if n > 0 else []

    def _iter_entries(self) -> Iterator[AuditEntry]:
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Cannot read run ledger %s: %s", self.path, e)
            return

        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                yield AuditEntry.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as e:
                logger.warning("Skipping damaged ledger line %d: %s", number, e)
