"""
Adapter registry — the single entry point for running external programs.

``execute_action`` always returns a Receipt: a missing adapter, a
failed validation and an adapter that raises all come back as failed
receipts.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from localpkgs.adapters.base import Adapter, ExecutionContext
from localpkgs.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Name → Adapter dispatch."""

    def __init__(self, adapters: Iterable[Adapter] = ()):
        self._adapters: dict[str, Adapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter %r", adapter.name)
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def names(self) -> list[str]:
        return list(self._adapters)

    def execute_action(self, action: Action) -> Receipt:
        """Run ``action`` through its adapter. Never raises."""
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(action, f"No adapter registered for '{action.adapter}'")

        context = ExecutionContext(action=action)
        start = time.monotonic()

        try:
            valid, reason = adapter.validate(context)
        except Exception as e:
            valid, reason = False, str(e)
        if not valid:
            logger.debug("%s rejected by %s: %s", action.id, adapter.name, reason)
            return Receipt.failure(action, f"Validation failed: {reason}")

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised while running %s: %s", adapter.name, action.id, e)
            receipt = Receipt.failure(action, f"Unexpected error: {e}")

        receipt.duration_ms = int((time.monotonic() - start) * 1000)
        if receipt.failed:
            logger.debug("%s failed after %dms: %s", action.id, receipt.duration_ms, receipt.error)
        return receipt
