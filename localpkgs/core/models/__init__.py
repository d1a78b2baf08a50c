"""
Domain models — Pydantic types for the package orchestrator.

All models are re-exported here for convenient access:

    from localpkgs.core.models import Action, Receipt, Settings, VersionInfo
"""

from localpkgs.core.models.action import Action, Receipt
from localpkgs.core.models.package import VersionInfo
from localpkgs.core.models.settings import InstallSettings, Settings

__all__ = [
    "Action",
    "InstallSettings",
    "Receipt",
    "Settings",
    "VersionInfo",
]
