"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from visualqa.ai.client import SummaryClient
from visualqa.models.config import OrchestratorConfig
from visualqa.models.report import Report

from .html_report import generate_html_report
from .json_report import generate_json_report
from .markdown_report import generate_markdown_report

logger = logging.getLogger(__name__)

_WRITERS = {
    "json": ("json", generate_json_report),
    "html": ("html", generate_html_report),
    "markdown": ("md", generate_markdown_report),
}


class Reporter:
    """Writes a finished Report in every configured format."""

    def __init__(self, config: OrchestratorConfig, ai_client: Optional[SummaryClient] = None):
        self.config = config
        self.ai_client = ai_client

    def with_summary(self, report: Report) -> Report:
        """Return a copy of ``report`` carrying a narrative summary."""
        if report.summary_text:
            return report
        return report.model_copy(update={"summary_text": self._generate_summary(report)})

    def generate_reports(self, report: Report, output_dir: Optional[Path] = None) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        out_dir = output_dir or Path(self.config.report_output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        stem = "report_" + report.timestamp.replace(":", "-")
        generated = {}

        for fmt in self.config.report_formats:
            if fmt not in _WRITERS:
                logger.warning("Unknown report format %r, skipping", fmt)
                continue
            suffix, writer = _WRITERS[fmt]
            path = out_dir / f"{stem}.{suffix}"
            logger.debug("Generating %s report...", fmt)
            writer(report, path)
            generated[fmt] = str(path)
            logger.info("%s report: %s", fmt.upper(), path)

        return generated

    def _generate_summary(self, report: Report) -> str:
        if not self.ai_client:
            return self._generate_basic_summary(report)

        try:
            # Keep the prompt small; the full report can be large
            digest = {
                "target_url": report.target_url,
                "overall_score": report.overall_score,
                "visual_perfection_score": report.visual_perfection_score,
                "confidence": report.confidence_level,
                "completion_rate": report.completion_rate,
                "failed_suites": [
                    {"suite": r.suite_name, "error": r.error} for r in report.failed_suites
                ],
                "regressions": [
                    {"key": v.key, "severity": v.severity, "difference": v.pixel_difference_percent}
                    for v in report.regression.regressions
                ][:20],
                "common_issues": [
                    {"issue": i.canonical_key, "suites": i.affected_suites, "severity": i.severity}
                    for i in report.correlation_signals.common_issues
                ][:20],
                "critical_issues": [i.message for i in report.critical_issues],
                "recommendations": [r.title for r in report.recommendations],
            }
            return self.ai_client.summarize(digest)
        except Exception as e:
            logger.warning("AI summary generation failed: %s", e)
            return self._generate_basic_summary(report)

    @staticmethod
    def _generate_basic_summary(report: Report) -> str:
        """Generate a deterministic summary without AI."""
        suites = report.per_suite_results
        parts = [
            f"Tested {report.target_url}: {len(report.successful_suites)}/{len(suites)} suites completed, "
            f"overall score {report.overall_score:.1f} ({report.confidence_level} confidence).",
            f"Checks: {report.totals.passed_checks}/{report.totals.total_checks} passed.",
        ]
        if report.failed_suites:
            parts.append(f"Failed suites: {', '.join(r.suite_name for r in report.failed_suites)}.")
        regressions = report.regression.regressions
        if regressions:
            parts.append(f"{len(regressions)} visual regressions "
                         f"(risk {report.correlation_signals.overall_regression_risk}): "
                         f"{', '.join(v.key for v in regressions[:5])}.")
        if report.regression.baselines_created:
            parts.append(f"{len(report.regression.baselines_created)} new baselines recorded.")
        if report.critical_issues:
            parts.append(f"{len(report.critical_issues)} critical issues need attention.")
        return " ".join(parts)
