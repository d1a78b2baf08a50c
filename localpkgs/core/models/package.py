"""
VersionInfo — the answer to "what is the latest version, and where is it".

Produced by a package's detect() call and consumed by one build attempt.
Versions are vendor-defined strings compared only for equality.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class VersionInfo(BaseModel):
    """Latest upstream version of one package."""

    version: str = Field(min_length=1)
    download_url: str = Field(min_length=1)
    commit_hash: str | None = None
