"""Adapters — tool bindings for the build tool, indexer and package manager.

Public re-exports for convenient access.
"""

from localpkgs.adapters.base import Adapter, ExecutionContext
from localpkgs.adapters.mock import MockAdapter
from localpkgs.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
