"""Performance/visual correlation suite: paint timings, layout shift, render completeness."""

from __future__ import annotations

import logging
from statistics import mean
from typing import Optional

from playwright.async_api import Error as PlaywrightError

from visualqa.models.config import PerformanceThresholds
from visualqa.models.suite_result import SuiteResult
from visualqa.suites.base import SuiteContext
from visualqa.suites.recorder import CheckRecorder
from visualqa.utils.browser import NAVIGATION_TIMEOUT_MS, browser_session, create_context, is_visible

logger = logging.getLogger(__name__)

SUITE_WIDE = "overall"
ISSUE_PENALTY = 20

METRICS_JS = """
async () => {
    const observe = (type, reduce, initial) => new Promise(resolve => {
        let value = initial;
        try {
            new PerformanceObserver(list => {
                value = reduce(value, list.getEntries());
            }).observe({ type, buffered: true });
        } catch (e) {}
        setTimeout(() => resolve(value), 250);
    });
    const fcp = performance.getEntriesByName('first-contentful-paint')[0];
    const lcp = await observe('largest-contentful-paint',
        (v, entries) => entries.length ? entries[entries.length - 1].startTime : v, null);
    const cls = await observe('layout-shift',
        (v, entries) => entries.reduce((s, e) => e.hadRecentInput ? s : s + e.value, v), 0);
    return { fcp: fcp ? fcp.startTime : null, lcp, cls };
}
"""


def evaluate_metrics(
    rec: CheckRecorder,
    viewport: str,
    metrics: dict,
    thresholds: PerformanceThresholds,
) -> None:
    """Turn raw metric readings into checks; readings a browser cannot supply are skipped."""
    dims = {"viewport": viewport}
    fcp: Optional[float] = metrics.get("fcp")
    lcp: Optional[float] = metrics.get("lcp")
    cls: Optional[float] = metrics.get("cls")

    if fcp is not None:
        rec.measure(viewport, "fcp_ms", fcp)
        rec.check(fcp <= thresholds.fcp_ms, "paint-timing",
                  f"First contentful paint {fcp:.0f}ms exceeds {thresholds.fcp_ms:.0f}ms",
                  severity="high", viewport=viewport, dimensions=dims)
    if lcp is not None:
        rec.measure(viewport, "lcp_ms", lcp)
        rec.check(lcp <= thresholds.lcp_ms, "paint-timing",
                  f"Largest contentful paint {lcp:.0f}ms exceeds {thresholds.lcp_ms:.0f}ms",
                  severity="high", viewport=viewport, dimensions=dims)
    if cls is not None:
        rec.measure(viewport, "cls", cls)
        rec.check(cls <= thresholds.cls, "layout-shift",
                  f"Cumulative layout shift {cls:.3f} exceeds {thresholds.cls}",
                  severity="high", viewport=viewport, dimensions=dims)


class PerformanceSuite:
    async def run(self, target_url: str, context: SuiteContext) -> SuiteResult:
        config = context.config
        rec = CheckRecorder(context.descriptor.name)
        areas = config.regression.critical_areas

        async with browser_session("chromium", headless=config.headless) as browser:
            for vp in config.viewports:
                browser_context = await create_context(browser, vp, config.user_agent)
                try:
                    page = await browser_context.new_page()
                    try:
                        await page.goto(target_url, wait_until="domcontentloaded",
                                        timeout=NAVIGATION_TIMEOUT_MS)
                    except PlaywrightError as e:
                        rec.check(False, "page-load", f"Page failed to load: {e}",
                                  severity="critical", viewport=vp.name, dimensions={"viewport": vp.name})
                        continue

                    # Share of critical areas already visible at DOMContentLoaded
                    visible = [await is_visible(page, a.selector) for a in areas]
                    completeness = sum(visible) / len(visible) * 100 if visible else 100.0
                    rec.measure(vp.name, "visual_completeness", round(completeness, 1))

                    await page.wait_for_load_state("load")
                    metrics = await page.evaluate(METRICS_JS)
                    evaluate_metrics(rec, vp.name, metrics or {}, config.performance)
                finally:
                    await browser_context.close()

        readings = [m["visual_completeness"] for m in rec.measurements.values() if "visual_completeness" in m]
        if readings:
            rec.measure(SUITE_WIDE, "visual_completeness", round(mean(readings), 1))

        return rec.result(score=float(max(0, 100 - ISSUE_PENALTY * len(rec.issues))))
