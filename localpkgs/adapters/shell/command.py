"""
Shell command adapter — run a program from an argv list.

Nothing goes through a shell. Captured output is cut to its tail so
receipts of long makepkg logs stay small; interactive actions (the
host package manager) inherit the terminal and capture nothing.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from localpkgs.adapters.base import Adapter, ExecutionContext
from localpkgs.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000


def _tail(text: str | None) -> str:
    return (text or "").strip()[-_OUTPUT_TAIL:]


class ShellCommandAdapter(Adapter):
    """Executes programs with subprocess.run."""

    @property
    def name(self) -> str:
        return "shell"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        action = context.action
        if not action.args:
            return False, "Missing command arguments"
        if shutil.which(action.program) is None and not Path(action.program).is_file():
            return False, f"Program not found: {action.program}"
        if context.working_dir and not Path(context.working_dir).is_dir():
            return False, f"Working directory does not exist: {context.working_dir}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        action = context.action
        meta = {"command": action.command_line}
        logger.debug("Executing: %s (cwd=%s)", action.command_line, context.working_dir)

        try:
            proc = subprocess.run(
                action.args,
                cwd=context.working_dir,
                timeout=context.timeout,
                capture_output=not action.interactive,
                text=True,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(action, f"Command timed out after {context.timeout}s", metadata=meta)
        except OSError as e:
            return Receipt.failure(action, f"Command execution error: {e}", metadata=meta)

        stdout, stderr = _tail(proc.stdout), _tail(proc.stderr)
        if proc.returncode == 0:
            return Receipt.success(action, output=stdout, metadata={**meta, "stderr": stderr})
        return Receipt.failure(
            action,
            stderr or f"Command exited with code {proc.returncode}",
            output=stdout,
            return_code=proc.returncode,
            metadata=meta,
        )
