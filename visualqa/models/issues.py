"""Normalized (cross-suite) issue data structures."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

IssueSeverity = Literal["critical", "high", "medium", "low"]


class NormalizedIssue(BaseModel):
    canonical_key: str
    occurrence_count: int = Field(ge=1)
    affected_suites: list[str] = Field(default_factory=list)  # unique, first-seen order
    severity: IssueSeverity = "low"
    sample_messages: list[str] = Field(default_factory=list, max_length=3)
    kinds: list[str] = Field(default_factory=list)

    @property
    def is_cross_suite(self) -> bool:
        return len(self.affected_suites) > 1
