"""Suite result data structures: the single shape every suite reports in."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from visualqa.models.config import SuiteRole

Severity = Literal["critical", "high", "medium", "low", "none"]


class IssueContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    viewport_name: Optional[str] = None
    browser_name: Optional[str] = None
    scenario_name: Optional[str] = None

    @property
    def location(self) -> Optional[str]:
        """The most specific place the issue was observed, if any."""
        return self.scenario_name or self.viewport_name or self.browser_name


class RawIssue(BaseModel):
    """A problem exactly as one suite reported it."""

    model_config = ConfigDict(frozen=True)

    source_suite: str
    kind: str
    message: str
    severity: Severity = "medium"
    context: Optional[IssueContext] = None


class CheckTally(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(default=0, ge=0)
    passed: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)

    @property
    def pass_ratio(self) -> Optional[float]:
        if self.total == 0:
            return None
        return self.passed / self.total

    @property
    def failure_ratio(self) -> Optional[float]:
        if self.total == 0:
            return None
        return self.failed / self.total

    def recorded(self, passed: bool) -> "CheckTally":
        """A new tally with one more check counted."""
        return CheckTally(
            total=self.total + 1,
            passed=self.passed + int(passed),
            failed=self.failed + int(not passed),
        )

    def __add__(self, other: "CheckTally") -> "CheckTally":
        return CheckTally(
            total=self.total + other.total,
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
        )


class SuiteSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_checks: int = Field(default=0, ge=0)
    passed_checks: int = Field(default=0, ge=0)
    failed_checks: int = Field(default=0, ge=0)
    score: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    # dimension ("browser", "viewport", ...) -> key -> tally
    breakdown: dict[str, dict[str, CheckTally]] = Field(default_factory=dict)
    # context name (viewport / scenario) -> metric -> reading
    measurements: dict[str, dict[str, float]] = Field(default_factory=dict)


class CapturedImage(BaseModel):
    """A freshly captured screenshot handed to the regression stage."""

    model_config = ConfigDict(frozen=True)

    scenario: str
    area: Optional[str] = None
    image_path: str

    @property
    def key(self) -> str:
        return baseline_key(self.scenario, self.area)


def baseline_key(scenario: str, area: Optional[str] = None) -> str:
    return f"{scenario}__{area}" if area else scenario


def image_relpath(scenario: str, area: Optional[str] = None) -> Path:
    """Where the image for a scenario or one of its areas lives, relative to an image root.

    Page shots and area shots sit in separate directories so no area name can
    collide with the page image.
    """
    if area:
        return Path(scenario) / "areas" / f"{area}.png"
    return Path(scenario) / "page.png"


class SuiteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    suite_name: str
    role: SuiteRole = "generic"
    successful: bool
    duration_ms: float = Field(default=0.0, ge=0.0)
    summary: SuiteSummary = Field(default_factory=SuiteSummary)
    issues: list[RawIssue] = Field(default_factory=list)
    captures: list[CapturedImage] = Field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(
        cls, suite_name: str, error: str, duration_ms: float = 0.0, role: SuiteRole = "generic",
    ) -> "SuiteResult":
        """A zeroed result for a suite that broke down entirely."""
        return cls(
            suite_name=suite_name,
            role=role,
            successful=False,
            duration_ms=duration_ms,
            summary=SuiteSummary(),
            issues=[],
            captures=[],
            error=error,
        )
