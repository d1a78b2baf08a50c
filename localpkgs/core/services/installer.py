"""
Host package manager bridge — installed-state query, system update, install.

All calls go through the adapter registry so they can be mocked. The
update and install steps are interactive: the package manager owns the
terminal for its prompts.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from localpkgs.adapters.registry import AdapterRegistry
from localpkgs.core.models.action import Action, Receipt
from localpkgs.core.models.settings import InstallSettings

logger = logging.getLogger(__name__)

NO_CONFIRM = "--no-confirm"


class Installer:
    """Drives the host package manager."""

    def __init__(self, settings: InstallSettings, adapters: AdapterRegistry):
        self._settings = settings
        self._adapters = adapters

    def is_installed(self, name: str) -> bool:
        """Whether ``name`` is installed on the host. Any failure means no."""
        receipt = self._adapters.execute_action(
            Action(
                id=f"query:{name}",
                args=[*self._settings.query_command, name],
                for_package=name,
            )
        )
        return receipt.ok

    def system_update(self, extra_args: Iterable[str] = ()) -> Receipt:
        """Run ``<manager> update [extra_args]``."""
        args = [self._settings.manager, "update", *extra_args]
        logger.info("Running system update via %s", self._settings.manager)
        return self._run("system-update", args)

    def install(self, names: Iterable[str], *, no_confirm: bool = False) -> Receipt:
        """Run ``<manager> install <names> [--no-confirm]``."""
        args = [self._settings.manager, "install", *names]
        if no_confirm:
            args.append(NO_CONFIRM)
        logger.info("Installing local packages: %s", " ".join(args[2:]))
        return self._run("install", args)

    def _run(self, action_id: str, args: list[str]) -> Receipt:
        receipt = self._adapters.execute_action(
            Action(id=action_id, args=args, interactive=True)
        )
        if not receipt.ok:
            logger.warning("%s failed: %s", " ".join(args), receipt.error)
        return receipt
