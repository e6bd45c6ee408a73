"""HTML report generator — produces a self-contained HTML report of one visual QA run."""

from __future__ import annotations

import base64
import html
import logging
from pathlib import Path

from visualqa.models.regression import RegressionVerdict
from visualqa.models.report import Report
from visualqa.models.suite_result import SuiteResult

logger = logging.getLogger(__name__)

_SEVERITY_COLOR = {
    "critical": "#ef4444", "high": "#f97316", "medium": "#eab308",
    "low": "#22c55e", "none": "#94a3b8",
}


def _embed_image(path: str) -> str:
    """Read an image file and return a base64 data URI, or empty string on failure."""
    try:
        p = Path(path)
        if not p.exists() or p.stat().st_size == 0:
            return ""
        with open(p, "rb") as f:
            data = base64.b64encode(f.read()).decode()
        return f"data:image/png;base64,{data}"
    except OSError:
        return ""


def _badge(text: str, severity: str) -> str:
    color = _SEVERITY_COLOR.get(severity, "#94a3b8")
    return f'<span class="badge" style="background:{color}">{html.escape(text)}</span>'


def _build_suite_card(r: SuiteResult) -> str:
    status = "pass" if r.successful else "fail"
    summary = r.summary
    score = f" &middot; score {summary.score:.0f}" if summary.score is not None else ""
    card = f'''
    <div class="card" onclick="this.classList.toggle('expanded')">
      <div class="card-header">
        <span class="badge {status}">{status.upper()}</span>
        <strong>{html.escape(r.suite_name)}</strong>
        <span class="meta">{html.escape(r.role)} &middot; {summary.passed_checks}/{summary.total_checks} checks{score} &middot; {r.duration_ms / 1000:.1f}s</span>
      </div>
      <div class="card-body">'''

    if r.error:
        card += f'<div class="failure-banner"><strong>Error:</strong> {html.escape(r.error)}</div>'

    for dimension, tallies in summary.breakdown.items():
        rows = "".join(
            f"<tr><td>{html.escape(key)}</td><td>{t.passed}/{t.total}</td></tr>"
            for key, t in tallies.items()
        )
        card += f'<h4>By {html.escape(dimension)}</h4><table>{rows}</table>'

    if r.issues:
        items = ""
        for issue in r.issues[:50]:
            where = f" <em>@ {html.escape(issue.context.location)}</em>" if issue.context and issue.context.location else ""
            items += f"<li>{_badge(issue.severity, issue.severity)} {html.escape(issue.message)}{where}</li>"
        card += f'<h4>Issues ({len(r.issues)})</h4><ul>{items}</ul>'

    card += '</div></div>'
    return card


def _build_verdict_row(v: RegressionVerdict) -> str:
    diff_img = ""
    if v.diff_path:
        uri = _embed_image(v.diff_path)
        if uri:
            diff_img = f'<img class="thumb" src="{uri}" alt="diff" onclick="this.classList.toggle(\'zoomed\')"/>'
    return (
        f"<tr><td>{html.escape(v.key)}</td><td>{_badge(v.severity, v.severity)}</td>"
        f"<td>{v.pixel_difference_percent:.3f}%</td><td>{html.escape(v.message)}</td>"
        f"<td>{diff_img}</td></tr>"
    )


def generate_html_report(report: Report, output_path: Path) -> None:
    """Generate a self-contained HTML report."""
    signals = report.correlation_signals

    summary_section = ""
    if report.summary_text:
        formatted = html.escape(report.summary_text).replace("\n", "<br>")
        summary_section = f'<div class="box accent"><h2>Summary</h2><div>{formatted}</div></div>'

    critical_section = ""
    if report.critical_issues:
        items = "".join(
            f"<li>{_badge(i.severity, i.severity)} {html.escape(i.message)}</li>"
            for i in report.critical_issues
        )
        critical_section = f'<div class="box danger"><h2>Critical Issues ({len(report.critical_issues)})</h2><ul>{items}</ul></div>'

    rec_section = ""
    if report.recommendations:
        items = ""
        for rec in report.recommendations:
            actions = "".join(f"<li>{html.escape(a)}</li>" for a in rec.actions)
            items += (f'<div class="rec">{_badge(rec.priority, rec.priority)} <strong>{html.escape(rec.title)}</strong>'
                      f'<p>{html.escape(rec.description)}</p><ul>{actions}</ul></div>')
        rec_section = f'<div class="box"><h2>Recommendations</h2>{items}</div>'

    regression_section = ""
    if report.regression.verdicts or report.regression.baselines_created or report.regression.failures:
        rows = "".join(_build_verdict_row(v) for v in report.regression.verdicts)
        created = ""
        if report.regression.baselines_created:
            created = f'<p class="meta">New baselines: {html.escape(", ".join(report.regression.baselines_created))}</p>'
        failures = "".join(
            f"<li>{html.escape(f.key)}: {html.escape(f.message)}</li>" for f in report.regression.failures
        )
        failures = f'<h4>Baseline store failures</h4><ul>{failures}</ul>' if failures else ""
        areas = "".join(
            f"<tr><td>{html.escape(a.area_name)}</td><td>{_badge(a.overall_risk, a.overall_risk)}</td>"
            f"<td>{a.regression_count}</td><td>{html.escape(', '.join(a.affected_scenarios))}</td></tr>"
            for a in report.critical_area_risk_summaries
        )
        regression_section = f'''<div class="box"><h2>Visual Regression (risk: {html.escape(signals.overall_regression_risk)})</h2>
          {created}{failures}
          <table><tr><th>Key</th><th>Severity</th><th>Difference</th><th>Message</th><th>Diff</th></tr>{rows}</table>
          <h4>Critical areas</h4>
          <table><tr><th>Area</th><th>Risk</th><th>Regressions</th><th>Scenarios</th></tr>{areas}</table>
        </div>'''

    common_section = ""
    if signals.common_issues:
        rows = "".join(
            f"<tr><td>{html.escape(i.canonical_key)}</td><td>{_badge(i.severity, i.severity)}</td>"
            f"<td>{i.occurrence_count}</td><td>{html.escape(', '.join(i.affected_suites))}</td></tr>"
            for i in signals.common_issues
        )
        common_section = f'''<div class="box"><h2>Common Issues</h2>
          <table><tr><th>Issue</th><th>Severity</th><th>Occurrences</th><th>Suites</th></tr>{rows}</table></div>'''

    suite_cards = "".join(_build_suite_card(r) for r in report.per_suite_results)

    report_html = f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Visual QA Report &mdash; {html.escape(report.timestamp)}</title>
<style>
  :root {{ --pass: #22c55e; --fail: #ef4444; --bg: #f8fafc; --card: white; --border: #e2e8f0; --text: #1e293b; --muted: #64748b; --accent: #6366f1; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: var(--bg); color: var(--text); line-height: 1.6; padding: 1.5rem; }}
  .container {{ max-width: 1400px; margin: 0 auto; }}
  h1 {{ font-size: 1.8rem; margin-bottom: 0.3rem; }}
  h2 {{ font-size: 1rem; margin-bottom: 0.6rem; }}
  h4 {{ font-size: 0.8rem; color: var(--muted); text-transform: uppercase; margin: 0.6rem 0 0.3rem; }}
  .meta {{ color: var(--muted); font-size: 0.85rem; }}
  .summary {{ display: grid; grid-template-columns: repeat(auto-fit, minmax(140px, 1fr)); gap: 0.8rem; margin: 1rem 0 1.5rem; }}
  .stat {{ background: var(--card); border-radius: 8px; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); text-align: center; }}
  .stat .value {{ font-size: 1.8rem; font-weight: 700; }}
  .stat .label {{ font-size: 0.8rem; color: var(--muted); }}
  .badge {{ display: inline-block; padding: 0.1rem 0.5rem; border-radius: 9999px; font-size: 0.7rem; font-weight: 600; text-transform: uppercase; color: white; }}
  .badge.pass {{ background: var(--pass); }}
  .badge.fail {{ background: var(--fail); }}
  .box {{ background: var(--card); border-radius: 8px; padding: 1.2rem; margin-bottom: 1.5rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); }}
  .box.accent {{ border-left: 4px solid var(--accent); }}
  .box.danger {{ border-left: 4px solid var(--fail); background: #fef2f2; }}
  .rec {{ padding: 0.5rem 0; border-bottom: 1px solid var(--border); }}
  .rec p {{ color: var(--muted); font-size: 0.88rem; }}
  ul {{ margin-left: 1.2rem; font-size: 0.88rem; }}
  table {{ border-collapse: collapse; width: 100%; font-size: 0.85rem; }}
  th, td {{ text-align: left; padding: 0.3rem 0.5rem; border-bottom: 1px solid var(--border); vertical-align: top; }}
  .card {{ background: var(--card); border-radius: 8px; margin-bottom: 0.6rem; box-shadow: 0 1px 3px rgba(0,0,0,0.08); cursor: pointer; }}
  .card-header {{ display: flex; gap: 0.5rem; align-items: center; padding: 0.7rem 1rem; flex-wrap: wrap; }}
  .card-body {{ display: none; padding: 0 1rem 1rem; }}
  .card.expanded .card-body {{ display: block; }}
  .failure-banner {{ background: #fef2f2; border: 1px solid #fecaca; color: #991b1b; border-radius: 6px; padding: 0.6rem 0.8rem; margin-bottom: 0.8rem; font-size: 0.88rem; }}
  .thumb {{ width: 120px; border-radius: 4px; border: 1px solid var(--border); cursor: pointer; }}
  .thumb.zoomed {{ position: fixed; top: 5%; left: 5%; width: 90%; height: 90%; object-fit: contain; z-index: 1000; background: rgba(0,0,0,0.85); }}
</style>
</head>
<body>
<div class="container">
  <h1>Visual QA Report</h1>
  <p class="meta">Target: {html.escape(report.target_url)} &middot; {html.escape(report.timestamp)}</p>

  <div class="summary">
    <div class="stat"><div class="value">{report.overall_score:.1f}</div><div class="label">Overall Score</div></div>
    <div class="stat"><div class="value">{report.visual_perfection_score:.0f}</div><div class="label">Visual Perfection</div></div>
    <div class="stat"><div class="value">{html.escape(report.confidence_level)}</div><div class="label">Confidence</div></div>
    <div class="stat"><div class="value">{report.completion_rate:.0%}</div><div class="label">Suites Completed</div></div>
    <div class="stat"><div class="value">{report.totals.passed_checks}/{report.totals.total_checks}</div><div class="label">Checks Passed</div></div>
    <div class="stat"><div class="value">{signals.regression_count}</div><div class="label">Regressions</div></div>
  </div>

  {summary_section}
  {critical_section}
  {rec_section}
  {regression_section}
  {common_section}

  <h2>Suites</h2>
  {suite_cards}
</div>
</body>
</html>'''

    with open(output_path, "w", encoding="utf-8") as f:
        f.write(report_html)
    logger.debug("Wrote HTML report (%d bytes)", len(report_html))
