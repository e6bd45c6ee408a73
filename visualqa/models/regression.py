"""Regression comparison data structures."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from visualqa.models.suite_result import Severity

RiskLevel = Literal["low", "medium", "high", "critical"]


class RegressionVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    scenario: str
    area: Optional[str] = None
    has_changes: bool = False
    is_regression: bool = False
    pixel_difference_percent: float = Field(default=0.0, ge=0.0, le=100.0)
    severity: Severity = "none"
    message: str = ""
    current_path: str = ""
    baseline_path: str = ""
    diff_path: Optional[str] = None


class BaselineFailure(BaseModel):
    """The baseline store could not answer for this key."""

    model_config = ConfigDict(frozen=True)

    key: str
    message: str


class RegressionOutcome(BaseModel):
    verdicts: list[RegressionVerdict] = Field(default_factory=list)
    baselines_created: list[str] = Field(default_factory=list)
    failures: list[BaselineFailure] = Field(default_factory=list)

    @property
    def regressions(self) -> list[RegressionVerdict]:
        return [v for v in self.verdicts if v.is_regression]


class CriticalAreaRiskSummary(BaseModel):
    area_name: str
    regression_count: int = 0
    affected_scenarios: list[str] = Field(default_factory=list)  # unique
    overall_risk: RiskLevel = "low"
