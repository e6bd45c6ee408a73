"""Score and recommendation engine."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from visualqa.models.regression import RegressionOutcome
from visualqa.models.report import (
    ConfidenceLevel,
    CorrelationSignals,
    CriticalIssue,
    Recommendation,
    RunTotals,
)
from visualqa.models.suite_result import SuiteResult

logger = logging.getLogger(__name__)

COMPLETION_SCORE = 50.0

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}

BROWSER_CRITICAL_SCORE = 50
BROWSER_FLAG_SCORE = 75
UX_MIN_SCORE = 70
DEVICE_CONSISTENCY_MIN_SCORE = 80
PERFORMANCE_CRITICAL_SCORE = 40


# -- Scores ------------------------------------------------------------------

def suite_score(result: SuiteResult) -> float:
    """A suite's 0–100 score: explicit score, else pass ratio, else completion credit."""
    summary = result.summary
    if summary.score is not None:
        return float(summary.score)
    if summary.total_checks > 0:
        return summary.passed_checks / summary.total_checks * 100
    return COMPLETION_SCORE


def overall_score(results: Iterable[SuiteResult], weights: Mapping[str, float]) -> float:
    """Weighted mean over the suites that succeeded.

    Weights are renormalized over that subset, so a failed or disabled suite
    never drags the score toward zero. No successful suite means 0.
    """
    weighted = 0.0
    total_weight = 0.0
    for result in results:
        weight = weights.get(result.suite_name, 0.0)
        if not result.successful or weight <= 0:
            continue
        weighted += suite_score(result) * weight
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return round(min(100.0, max(0.0, weighted / total_weight)), 1)


def visual_perfection_score(signals: CorrelationSignals) -> float:
    penalty = 15 * len(signals.critical_common_issues) + 10 * signals.regression_count
    return float(max(0, 100 - penalty))


def completion_rate(results: Iterable[SuiteResult], enabled_count: int) -> float:
    if enabled_count <= 0:
        return 0.0
    successful = sum(1 for r in results if r.successful)
    return min(1.0, successful / enabled_count)


def confidence_level(rate: float, score: float) -> ConfidenceLevel:
    if rate >= 0.9 and score >= 80:
        return "high"
    if rate >= 0.7 and score >= 60:
        return "medium"
    return "low"


def totals(results: Iterable[SuiteResult]) -> RunTotals:
    summaries = [r.summary for r in results]
    return RunTotals(
        total_checks=sum(s.total_checks for s in summaries),
        passed_checks=sum(s.passed_checks for s in summaries),
        failed_checks=sum(s.failed_checks for s in summaries),
    )


# -- Critical issues ---------------------------------------------------------

def critical_issues(
    results: list[SuiteResult],
    signals: CorrelationSignals,
    regression: RegressionOutcome,
) -> list[CriticalIssue]:
    """Issues serious enough to fail a build, critical ones first."""
    issues: list[CriticalIssue] = []

    for result in results:
        if not result.successful:
            issues.append(CriticalIssue(
                kind="suite-failure",
                suite=result.suite_name,
                message=f"{result.suite_name} test suite failed: {result.error or 'unknown error'}",
            ))
            continue

        summary = result.summary
        if result.role == "visual" and summary.failed_checks > summary.passed_checks:
            issues.append(CriticalIssue(
                kind="visual-majority-failed",
                suite=result.suite_name,
                message="Majority of basic visual checks failed",
            ))
        elif (result.role == "user_journey" and summary.total_checks > 0
              and summary.failed_checks / summary.total_checks > 0.5):
            issues.append(CriticalIssue(
                kind="user-journey-critical",
                suite=result.suite_name,
                message="Majority of user journeys failing",
            ))
        elif result.role == "performance" and suite_score(result) < PERFORMANCE_CRITICAL_SCORE:
            issues.append(CriticalIssue(
                kind="performance-visual-breakdown",
                suite=result.suite_name,
                message="Performance and visual quality severely compromised",
            ))

    if signals.browser_compatibility:
        for browser, score in signals.browser_compatibility.browser_scores.items():
            if score < BROWSER_CRITICAL_SCORE:
                issues.append(CriticalIssue(
                    kind="browser-critical-failure",
                    browser=browser,
                    message=f"{browser} compatibility critically low ({score:.0f}%)",
                ))

    if signals.overall_regression_risk == "critical":
        issues.append(CriticalIssue(
            kind="critical-regression",
            message="Critical visual regressions detected",
        ))

    for failure in regression.failures:
        issues.append(CriticalIssue(
            kind="baseline-unavailable",
            message=f"Baseline check for {failure.key} could not run: {failure.message}",
        ))

    return sorted(issues, key=lambda i: PRIORITY_ORDER[i.severity])


# -- Recommendations ---------------------------------------------------------

def recommendations(
    signals: CorrelationSignals, regression: RegressionOutcome,
) -> list[Recommendation]:
    """One recommendation per triggered condition, sorted critical → high → medium."""
    recs: list[Recommendation] = []

    critical_common = signals.critical_common_issues
    if critical_common:
        recs.append(Recommendation(
            priority="critical",
            category="common-issues",
            title="Fix Common Critical Issues",
            description=f"{len(critical_common)} critical issues affect multiple test areas",
            actions=[f"Fix: {i.canonical_key}" for i in critical_common[:3]],
        ))

    if regression.failures:
        recs.append(Recommendation(
            priority="critical",
            category="baseline-store",
            title="Restore Baseline Store",
            description=f"{len(regression.failures)} regression checks could not read their baselines",
            actions=[
                "Check that the baselines directory exists and is readable",
                "Repair or restore registry.json from version control",
            ],
        ))

    compat = signals.browser_compatibility
    if compat and compat.flagged:
        recs.append(Recommendation(
            priority="high",
            category="browser-compatibility",
            title="Improve Cross-Browser Compatibility",
            description=f"{len(compat.flagged)} browsers have compatibility issues",
            actions=[f"Optimize for {b.browser} (current score: {b.score:.0f}%)" for b in compat.flagged],
        ))

    ux = signals.user_experience
    if ux and ux.score < UX_MIN_SCORE:
        recs.append(Recommendation(
            priority="high",
            category="user-experience",
            title="Improve User Experience",
            description=f"User experience score is low ({ux.score:.0f}%)",
            actions=[
                "Review and fix user journey failures",
                "Improve interactive element responsiveness",
                "Optimize critical conversion paths",
            ],
        ))

    if signals.performance_impact and signals.performance_impact.conflict:
        recs.append(Recommendation(
            priority="high",
            category="performance",
            title="Fix Performance-Visual Conflicts",
            description="Layout shift or paint timing problems coincide with incomplete rendering",
            actions=[
                "Review recent performance optimizations",
                "Reserve space for late-loading content",
                "Test visual impact of performance changes",
            ],
        ))

    if signals.regression_count > 0:
        recs.append(Recommendation(
            priority="medium",
            category="visual-regression",
            title="Address Visual Regressions",
            description=f"{signals.regression_count} visual regressions detected",
            actions=[
                "Review recent code changes affecting visuals",
                "Regenerate baselines if the changes are intentional",
            ],
        ))

    device = signals.device_consistency
    if device and device.score < DEVICE_CONSISTENCY_MIN_SCORE:
        recs.append(Recommendation(
            priority="medium",
            category="device-consistency",
            title="Improve Device Consistency",
            description="Visual presentation varies significantly across devices",
            actions=device.issues[:3] or ["Standardize responsive breakpoints"],
        ))

    if regression.baselines_created:
        recs.append(Recommendation(
            priority="medium",
            category="baselines",
            title="New Baselines Created",
            description=f"{len(regression.baselines_created)} baselines were recorded for the first time",
            actions=["Review the new baselines and run again after the next deployment"],
        ))

    return sorted(recs, key=lambda r: PRIORITY_ORDER[r.priority])
