"""Markdown summary report: suitable for CI job summaries and PR comments."""

from __future__ import annotations

from pathlib import Path

from visualqa.models.report import Report

_SUITE_ICON = {True: "✅", False: "❌"}


def render_markdown(report: Report) -> str:
    lines = [
        "# Visual QA Report",
        "",
        f"**Target:** {report.target_url}  ",
        f"**Run at:** {report.timestamp}",
        "",
        "| Metric | Value |",
        "|---|---|",
        f"| Overall score | {report.overall_score:.1f} |",
        f"| Visual perfection | {report.visual_perfection_score:.0f} |",
        f"| Confidence | {report.confidence_level} |",
        f"| Suites completed | {len(report.successful_suites)}/{len(report.per_suite_results)} |",
        f"| Checks passed | {report.totals.passed_checks}/{report.totals.total_checks} |",
        f"| Regressions | {report.correlation_signals.regression_count} |",
        "",
    ]

    if report.summary_text:
        lines += ["## Summary", "", report.summary_text, ""]

    lines += ["## Suites", "", "| Suite | Status | Checks | Duration |", "|---|---|---|---|"]
    for r in report.per_suite_results:
        status = _SUITE_ICON[r.successful] + (f" {r.error}" if r.error else "")
        checks = f"{r.summary.passed_checks}/{r.summary.total_checks}"
        lines.append(f"| {r.suite_name} | {status} | {checks} | {r.duration_ms / 1000:.1f}s |")
    lines.append("")

    if report.critical_issues:
        lines += ["## Critical Issues", ""]
        for issue in report.critical_issues:
            where = f" ({issue.suite})" if issue.suite else ""
            lines.append(f"- **{issue.severity.upper()}**{where}: {issue.message}")
        lines.append("")

    if report.regression.regressions:
        lines += ["## Visual Regressions", "", "| Key | Severity | Difference |", "|---|---|---|"]
        for v in report.regression.regressions:
            lines.append(f"| {v.key} | {v.severity} | {v.pixel_difference_percent:.2f}% |")
        lines.append("")

    if report.recommendations:
        lines += ["## Recommendations", ""]
        for rec in report.recommendations:
            lines.append(f"### [{rec.priority}] {rec.title}")
            lines.append("")
            lines.append(rec.description)
            lines.extend(f"- {a}" for a in rec.actions)
            lines.append("")

    return "\n".join(lines)


def generate_markdown_report(report: Report, output_path: Path) -> None:
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(render_markdown(report))
