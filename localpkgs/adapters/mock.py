"""
Mock adapter — stands in for makepkg, repo-add, pacman and pamac in tests.

Every action is recorded. Behaviour is keyed by program name (the
first argv element), so ``set_failure("makepkg")`` fails every build
whatever its action id.
"""

from __future__ import annotations

from collections.abc import Callable

from localpkgs.adapters.base import Adapter, ExecutionContext
from localpkgs.core.models.action import Action, Receipt

SideEffect = Callable[[Action], None]


class MockAdapter(Adapter):
    """Records actions; succeeds unless told otherwise.

    A side effect runs before the receipt is produced, e.g. to drop the
    artifact a real build would have written. If it raises, the
    registry turns that into a failed receipt.
    """

    def __init__(self, adapter_name: str = "shell"):
        self._name = adapter_name
        self._failures: dict[str, tuple[str, int]] = {}
        self._side_effects: dict[str, SideEffect] = {}
        self.call_log: list[Action] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    def calls_to(self, program: str) -> list[Action]:
        return [a for a in self.call_log if a.program == program]

    def set_failure(self, program: str, error: str = "Mock failure", return_code: int = 1) -> None:
        self._failures[program] = (error, return_code)

    def set_side_effect(self, program: str, effect: SideEffect) -> None:
        self._side_effects[program] = effect

    def reset(self) -> None:
        self.call_log.clear()
        self._failures.clear()
        self._side_effects.clear()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        action = context.action
        self.call_log.append(action)

        if action.program in self._failures:
            error, code = self._failures[action.program]
            return Receipt.failure(action, error, adapter=self._name, return_code=code)

        effect = self._side_effects.get(action.program)
        if effect is not None:
            effect(action)
        return Receipt.success(action, adapter=self._name, output=f"[mock] {action.command_line}")
