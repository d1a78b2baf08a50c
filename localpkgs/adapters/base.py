"""
Adapter contract — one implementation per way of running a program.

Production uses ShellCommandAdapter; tests register a MockAdapter under
the same name so the pipeline runs without makepkg or repo-add.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from localpkgs.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """What an adapter sees of one Action."""

    action: Action

    @property
    def working_dir(self) -> str | None:
        return self.action.cwd

    @property
    def timeout(self) -> float | None:
        return self.action.timeout


class Adapter(ABC):
    """Runs Actions and reports Receipts.

    ``validate`` and ``execute`` report problems through their return
    values. The registry still guards against an adapter that raises.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Key Actions use to select this adapter."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """(True, "") when the action can run, else (False, reason)."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
