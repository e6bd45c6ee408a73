"""Check recorder: accumulates tallies, issues and captures into a SuiteResult."""

from __future__ import annotations

from typing import Optional

from visualqa.models.suite_result import (
    CapturedImage,
    CheckTally,
    IssueContext,
    RawIssue,
    Severity,
    SuiteResult,
    SuiteSummary,
)


class CheckRecorder:
    def __init__(self, suite_name: str):
        self.suite_name = suite_name
        self.total = 0
        self.passed = 0
        self.failed = 0
        self.breakdown: dict[str, dict[str, CheckTally]] = {}
        self.measurements: dict[str, dict[str, float]] = {}
        self.issues: list[RawIssue] = []
        self.captures: list[CapturedImage] = []

    def check(
        self,
        passed: bool,
        kind: str,
        message: str,
        severity: Severity = "medium",
        viewport: Optional[str] = None,
        browser: Optional[str] = None,
        scenario: Optional[str] = None,
        dimensions: Optional[dict[str, str]] = None,
    ) -> bool:
        """Record one check. A failed check also becomes an issue."""
        self.total += 1
        if passed:
            self.passed += 1
        else:
            self.failed += 1
            self.issue(kind, message, severity, viewport=viewport, browser=browser, scenario=scenario)

        for dimension, key in (dimensions or {}).items():
            tallies = self.breakdown.setdefault(dimension, {})
            tallies[key] = tallies.get(key, CheckTally()).recorded(passed)
        return passed

    def issue(
        self,
        kind: str,
        message: str,
        severity: Severity = "medium",
        viewport: Optional[str] = None,
        browser: Optional[str] = None,
        scenario: Optional[str] = None,
    ) -> None:
        context = None
        if viewport or browser or scenario:
            context = IssueContext(viewport_name=viewport, browser_name=browser, scenario_name=scenario)
        self.issues.append(RawIssue(
            source_suite=self.suite_name, kind=kind, message=message,
            severity=severity, context=context,
        ))

    def measure(self, context_name: str, metric: str, value: float) -> None:
        self.measurements.setdefault(context_name, {})[metric] = value

    def capture(self, scenario: str, image_path: str, area: Optional[str] = None) -> None:
        self.captures.append(CapturedImage(scenario=scenario, area=area, image_path=image_path))

    def result(self, score: Optional[float] = None) -> SuiteResult:
        return SuiteResult(
            suite_name=self.suite_name,
            successful=True,
            summary=SuiteSummary(
                total_checks=self.total,
                passed_checks=self.passed,
                failed_checks=self.failed,
                score=score,
                breakdown=self.breakdown,
                measurements=self.measurements,
            ),
            issues=self.issues,
            captures=self.captures,
        )
