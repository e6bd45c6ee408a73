"""Correlation analyzer: signals derived from more than one suite's output."""

from __future__ import annotations

import logging
from statistics import mean
from typing import Iterable, Optional

from visualqa.analysis.scoring import suite_score
from visualqa.models.issues import NormalizedIssue
from visualqa.models.regression import (
    CriticalAreaRiskSummary,
    RegressionOutcome,
    RegressionVerdict,
    RiskLevel,
)
from visualqa.models.report import (
    BrowserCompatibility,
    BrowserScore,
    CorrelationSignals,
    DeviceConsistency,
    PerformanceImpact,
    SuiteCorrelation,
    UserExperience,
)
from visualqa.models.suite_result import CheckTally, SuiteResult
from visualqa.runner.normalizer import issue_severity

logger = logging.getLogger(__name__)

DEVICE_DEPARTURE_THRESHOLD = 0.25
BROWSER_FLAG_SCORE = 75
PERFORMANCE_ANOMALY_MARKERS = ("layout-shift", "cls", "paint", "fcp", "lcp")
SUITE_WIDE = "overall"

_RISK_BY_SCENARIO_COUNT: dict[int, RiskLevel] = {0: "low", 1: "medium", 2: "high"}


def _successful(results: Iterable[SuiteResult], *roles: str) -> list[SuiteResult]:
    return [r for r in results if r.successful and r.role in roles]


def _merged_breakdown(results: Iterable[SuiteResult], dimension: str) -> dict[str, CheckTally]:
    merged: dict[str, CheckTally] = {}
    for result in results:
        for key, tally in result.summary.breakdown.get(dimension, {}).items():
            merged[key] = merged.get(key, CheckTally()) + tally
    return merged


def _success_percent(results: list[SuiteResult]) -> Optional[float]:
    total = sum(r.summary.total_checks for r in results)
    if total == 0:
        return None
    return sum(r.summary.passed_checks for r in results) / total * 100


# -- Common issues -----------------------------------------------------------

def common_issues(normalized: Iterable[NormalizedIssue]) -> list[NormalizedIssue]:
    """Issues seen more than once or in more than one suite."""
    common = []
    for issue in normalized:
        if len(issue.affected_suites) > 1 or issue.occurrence_count > 1:
            severity = issue_severity(issue.occurrence_count, len(issue.affected_suites))
            common.append(issue.model_copy(update={"severity": severity}))
    return common


# -- Device consistency ------------------------------------------------------

def _departures(rates: dict[str, float], label: str) -> list[str]:
    if len(rates) < 2:
        return []
    best_name = min(rates, key=rates.get)
    best = rates[best_name]
    return [
        f"{label} {name} failure rate {rate:.0%} departs from {best_name} ({best:.0%})"
        for name, rate in rates.items()
        if rate - best > DEVICE_DEPARTURE_THRESHOLD
    ]


def device_consistency(results: list[SuiteResult]) -> Optional[DeviceConsistency]:
    """Flag viewport-specific breakage.

    Compares the failure rates of the viewport-oriented suites with each
    other, and the per-viewport failure rates within them, against the
    best-behaving peer.
    """
    suites = _successful(results, "visual", "cross_browser")
    if not suites:
        return None

    suite_rates = {
        r.suite_name: r.summary.failed_checks / r.summary.total_checks
        for r in suites if r.summary.total_checks > 0
    }
    viewport_rates = {
        name: tally.failure_ratio
        for name, tally in _merged_breakdown(suites, "viewport").items()
        if tally.failure_ratio is not None
    }

    issues = _departures(suite_rates, "Suite") + _departures(viewport_rates, "Viewport")
    failure_rates = dict(suite_rates)
    failure_rates.update({f"viewport:{k}": v for k, v in viewport_rates.items()})
    return DeviceConsistency(
        score=float(max(0, 100 - 10 * len(issues))),
        failure_rates={k: round(v, 4) for k, v in failure_rates.items()},
        issues=issues,
    )


# -- Browser compatibility ---------------------------------------------------

def browser_compatibility(results: list[SuiteResult]) -> Optional[BrowserCompatibility]:
    tallies = _merged_breakdown(_successful(results, "cross_browser"), "browser")
    scored = {b: t for b, t in tallies.items() if t.pass_ratio is not None}
    if not scored:
        return None

    browser_scores = {b: round(t.pass_ratio * 100, 1) for b, t in scored.items()}
    flagged = [
        BrowserScore(browser=b, score=s, checks=scored[b].total)
        for b, s in browser_scores.items() if s < BROWSER_FLAG_SCORE
    ]
    return BrowserCompatibility(
        overall_score=round(mean(browser_scores.values()), 1),
        browser_scores=browser_scores,
        flagged=flagged,
    )


# -- User experience ---------------------------------------------------------

def user_experience(results: list[SuiteResult]) -> Optional[UserExperience]:
    """Mean of journey and interactive success, only when both suites ran."""
    journeys = _successful(results, "user_journey")
    interactive = _successful(results, "interactive")
    if not journeys or not interactive:
        return None

    journey_success = _success_percent(journeys)
    interactive_success = _success_percent(interactive)
    if journey_success is None or interactive_success is None:
        return None

    critical_paths = [
        name for name, tally in _merged_breakdown(journeys, "journey").items() if tally.failed > 0
    ]
    return UserExperience(
        score=round((journey_success + interactive_success) / 2, 1),
        journey_success=round(journey_success, 1),
        interactive_success=round(interactive_success, 1),
        critical_paths=critical_paths,
    )


# -- Performance / visual conflict --------------------------------------------

def _is_render_anomaly(kind: str) -> bool:
    kind = kind.lower()
    return any(marker in kind for marker in PERFORMANCE_ANOMALY_MARKERS)


def performance_impact(
    results: list[SuiteResult], visual_completeness_min: float = 80.0,
) -> Optional[PerformanceImpact]:
    """Detect render-timing anomalies that coincide with incomplete rendering."""
    suites = _successful(results, "performance")
    if not suites:
        return None

    conflicting: list[str] = []
    for result in suites:
        readings = result.summary.measurements
        for issue in result.issues:
            if not _is_render_anomaly(issue.kind):
                continue
            location = issue.context.location if issue.context else None
            completeness = readings.get(location or SUITE_WIDE, {}).get("visual_completeness")
            if completeness is None:
                completeness = readings.get(SUITE_WIDE, {}).get("visual_completeness")
            if completeness is not None and completeness < visual_completeness_min:
                conflicting.append(issue.message)

    return PerformanceImpact(
        conflict=bool(conflicting),
        suite_score=round(mean(suite_score(r) for r in suites), 1),
        conflicting_issues=conflicting,
    )


# -- Regression risk ---------------------------------------------------------

def risk_for_scenario_count(count: int) -> RiskLevel:
    return _RISK_BY_SCENARIO_COUNT.get(count, "critical")


def critical_area_risk(
    verdicts: Iterable[RegressionVerdict], area_names: Iterable[str] = (),
) -> list[CriticalAreaRiskSummary]:
    """One summary per critical area; risk grows with distinct affected scenarios."""
    names = list(dict.fromkeys(area_names))
    per_area: dict[str, list[RegressionVerdict]] = {n: [] for n in names}
    for verdict in verdicts:
        if verdict.area is None:
            continue
        per_area.setdefault(verdict.area, [])
        if verdict.is_regression:
            per_area[verdict.area].append(verdict)

    summaries = []
    for name, regressions in per_area.items():
        scenarios = list(dict.fromkeys(v.scenario for v in regressions))
        summaries.append(CriticalAreaRiskSummary(
            area_name=name,
            regression_count=len(regressions),
            affected_scenarios=scenarios,
            overall_risk=risk_for_scenario_count(len(scenarios)),
        ))
    return summaries


def overall_regression_risk(verdicts: list[RegressionVerdict]) -> RiskLevel:
    regressions = [v for v in verdicts if v.is_regression]
    if any(v.severity == "critical" for v in regressions):
        return "critical"
    if sum(1 for v in regressions if v.severity == "high") > 1 or len(regressions) > 3:
        return "high"
    if len(regressions) > 1:
        return "medium"
    return "low"


# -- Cross-suite correlations --------------------------------------------------

def cross_suite_correlations(
    results: list[SuiteResult], regression_count: int,
) -> list[SuiteCorrelation]:
    correlations = []

    journeys = _successful(results, "user_journey")
    interactive = _successful(results, "interactive")
    journey_success = _success_percent(journeys) if journeys else None
    interactive_success = _success_percent(interactive) if interactive else None
    if (journey_success is not None and interactive_success is not None
            and interactive_success > 80 and journey_success < 60):
        correlations.append(SuiteCorrelation(
            kind="negative",
            suites=[r.suite_name for r in interactive + journeys],
            description="Interactive elements test well but user journeys fail - possible integration issues",
            confidence=0.7,
        ))

    performance = _successful(results, "performance")
    if regression_count > 0 and performance and min(suite_score(r) for r in performance) < 70:
        correlations.append(SuiteCorrelation(
            kind="positive",
            suites=[r.suite_name for r in results if r.role == "regression"]
            + [r.suite_name for r in performance],
            description="Visual regressions coincide with performance issues - optimization breaking visuals",
            confidence=0.8,
        ))

    return correlations


# -- Entry point ---------------------------------------------------------------

class CorrelationAnalyzer:
    """Builds every correlation signal for one run."""

    def __init__(self, visual_completeness_min: float = 80.0, critical_areas: Iterable[str] = ()):
        self.visual_completeness_min = visual_completeness_min
        self.critical_areas = list(critical_areas)

    def analyze(
        self,
        results: list[SuiteResult],
        normalized: list[NormalizedIssue],
        regression: RegressionOutcome,
    ) -> tuple[CorrelationSignals, list[CriticalAreaRiskSummary]]:
        verdicts = regression.verdicts
        regression_count = len(regression.regressions)

        signals = CorrelationSignals(
            common_issues=common_issues(normalized),
            device_consistency=device_consistency(results),
            browser_compatibility=browser_compatibility(results),
            user_experience=user_experience(results),
            performance_impact=performance_impact(results, self.visual_completeness_min),
            regression_count=regression_count,
            changes_detected=sum(1 for v in verdicts if v.has_changes),
            overall_regression_risk=overall_regression_risk(verdicts),
            cross_suite_correlations=cross_suite_correlations(results, regression_count),
        )
        area_risk = critical_area_risk(verdicts, self.critical_areas)

        logger.info(
            "Correlation: %d common issues, %d regressions (risk %s)",
            len(signals.common_issues), regression_count, signals.overall_regression_risk,
        )
        return signals, area_risk
