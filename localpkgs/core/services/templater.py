"""
Manifest templater — ``%%NAME%%`` placeholder substitution.

Substitution is best-effort: a placeholder with no value (or an empty
one) is left verbatim, so a manifest can carry unrelated ``%``-style
content safely.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

PLACEHOLDER = re.compile(r"%%(\w+)%%")


def render(template: str, variables: Mapping[str, str]) -> str:
    """Replace every ``%%NAME%%`` in ``template`` with ``variables[NAME]``."""

    def _sub(match: re.Match[str]) -> str:
        value = variables.get(match.group(1))
        return str(value) if value else match.group(0)

    return PLACEHOLDER.sub(_sub, template)


def unresolved(text: str) -> list[str]:
    """Placeholder names still present in rendered ``text``, in order, unique."""
    return list(dict.fromkeys(PLACEHOLDER.findall(text)))


def merge_variables(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge variable layers left to right; the last write wins."""
    merged: dict[str, str] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged
