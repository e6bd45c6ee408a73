"""Visual baseline registry data structures."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class BaselineEntry(BaseModel):
    key: str
    scenario: str
    area: Optional[str] = None
    image_path: str  # relative path from the store root to the PNG
    created_at: str  # ISO timestamp
    image_hash: str  # SHA-256 hex digest
    regenerated: bool = False


class BaselineRegistry(BaseModel):
    last_updated: str = ""
    baselines: dict[str, BaselineEntry] = Field(default_factory=dict)
    # key format: "{scenario}" or "{scenario}__{area}"
