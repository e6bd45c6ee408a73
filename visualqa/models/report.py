"""Report data structures: the single artifact a run produces."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from visualqa.models.issues import NormalizedIssue
from visualqa.models.regression import CriticalAreaRiskSummary, RegressionOutcome, RiskLevel
from visualqa.models.suite_result import SuiteResult

Priority = Literal["critical", "high", "medium"]
ConfidenceLevel = Literal["low", "medium", "high"]


class DeviceConsistency(BaseModel):
    score: float = 100.0
    failure_rates: dict[str, float] = Field(default_factory=dict)
    issues: list[str] = Field(default_factory=list)


class BrowserScore(BaseModel):
    browser: str
    score: float
    checks: int = 0


class BrowserCompatibility(BaseModel):
    overall_score: float = 0.0
    browser_scores: dict[str, float] = Field(default_factory=dict)
    flagged: list[BrowserScore] = Field(default_factory=list)  # below 75


class UserExperience(BaseModel):
    score: float
    journey_success: float
    interactive_success: float
    critical_paths: list[str] = Field(default_factory=list)


class PerformanceImpact(BaseModel):
    conflict: bool = False
    suite_score: Optional[float] = None
    conflicting_issues: list[str] = Field(default_factory=list)


class SuiteCorrelation(BaseModel):
    kind: Literal["positive", "negative"]
    suites: list[str]
    description: str
    confidence: float


class CorrelationSignals(BaseModel):
    common_issues: list[NormalizedIssue] = Field(default_factory=list)
    device_consistency: Optional[DeviceConsistency] = None
    browser_compatibility: Optional[BrowserCompatibility] = None
    user_experience: Optional[UserExperience] = None
    performance_impact: Optional[PerformanceImpact] = None
    regression_count: int = 0
    changes_detected: int = 0
    overall_regression_risk: RiskLevel = "low"
    cross_suite_correlations: list[SuiteCorrelation] = Field(default_factory=list)

    @property
    def critical_common_issues(self) -> list[NormalizedIssue]:
        return [i for i in self.common_issues if i.severity == "critical"]


class CriticalIssue(BaseModel):
    kind: str
    message: str
    severity: Literal["critical", "high"] = "critical"
    suite: Optional[str] = None
    browser: Optional[str] = None


class Recommendation(BaseModel):
    priority: Priority
    category: str
    title: str
    description: str
    actions: list[str] = Field(default_factory=list)


class RunTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_checks: int = 0
    passed_checks: int = 0
    failed_checks: int = 0


class Report(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    target_url: str
    per_suite_results: list[SuiteResult] = Field(default_factory=list)
    normalized_issues: list[NormalizedIssue] = Field(default_factory=list)
    critical_area_risk_summaries: list[CriticalAreaRiskSummary] = Field(default_factory=list)
    correlation_signals: CorrelationSignals = Field(default_factory=CorrelationSignals)
    regression: RegressionOutcome = Field(default_factory=RegressionOutcome)
    overall_score: float = Field(default=0.0, ge=0.0, le=100.0)
    visual_perfection_score: float = Field(default=0.0, ge=0.0, le=100.0)
    confidence_level: ConfidenceLevel = "low"
    completion_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    totals: RunTotals = Field(default_factory=RunTotals)
    critical_issues: list[CriticalIssue] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)
    summary_text: str = ""

    @property
    def successful_suites(self) -> list[SuiteResult]:
        return [r for r in self.per_suite_results if r.successful]

    @property
    def failed_suites(self) -> list[SuiteResult]:
        return [r for r in self.per_suite_results if not r.successful]

    @property
    def should_fail_build(self) -> bool:
        return self.confidence_level == "low" or bool(self.critical_issues)
