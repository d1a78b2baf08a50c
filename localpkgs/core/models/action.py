"""
Action and Receipt — how the engine talks to external programs.

The builder, publisher and installer never spawn makepkg, repo-add or
pamac themselves. They describe the call as an Action and hand it to
the adapter registry, which returns a Receipt. Failure is a Receipt
status, not an exception.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class Action(BaseModel):
    """One external program invocation."""

    id: str                          # e.g. build:cursor-bin, index:local-packages
    adapter: str = "shell"
    args: list[str] = Field(default_factory=list)
    cwd: str | None = None
    timeout: float | None = None
    interactive: bool = False        # program owns the terminal (pamac prompts)
    for_package: str | None = None   # None = repository-wide

    @property
    def program(self) -> str:
        return self.args[0] if self.args else ""

    @property
    def command_line(self) -> str:
        return " ".join(self.args)


class Receipt(BaseModel):
    """What came back from running an Action."""

    adapter: str
    action_id: str
    status: Literal["ok", "failed"] = "ok"
    started_at: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    duration_ms: int = 0
    return_code: int | None = None
    output: str = ""                 # tail of stdout
    error: str | None = None         # tail of stderr, or why it never ran
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, action: Action, adapter: str | None = None, **kwargs: Any) -> Receipt:
        kwargs.setdefault("return_code", 0)
        return cls(adapter=adapter or action.adapter, action_id=action.id, **kwargs)

    @classmethod
    def failure(cls, action: Action, error: str, adapter: str | None = None, **kwargs: Any) -> Receipt:
        return cls(
            adapter=adapter or action.adapter,
            action_id=action.id,
            status="failed",
            error=error,
            **kwargs,
        )
