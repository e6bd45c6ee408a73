"""Cross-browser suite: the same checks on every Playwright engine."""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from visualqa.models.config import ViewportConfig
from visualqa.models.suite_result import SuiteResult
from visualqa.suites.base import SuiteContext
from visualqa.suites.recorder import CheckRecorder
from visualqa.utils.browser import (
    HORIZONTAL_OVERFLOW_JS,
    browser_session,
    create_context,
    open_page,
    settle,
)

logger = logging.getLogger(__name__)


class CrossBrowserSuite:
    """Per-engine pass ratios feed the browser compatibility score."""

    async def run(self, target_url: str, context: SuiteContext) -> SuiteResult:
        config = context.config
        rec = CheckRecorder(context.descriptor.name)
        out_dir = context.suite_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        viewport = config.viewports[0] if config.viewports else ViewportConfig()

        for engine in config.browsers:
            dims = {"browser": engine}
            try:
                async with browser_session(engine, headless=config.headless) as browser:
                    browser_context = await create_context(browser, viewport)
                    try:
                        page = await open_page(browser_context, target_url)
                        await settle(page)
                        rec.check(True, "page-load", "", dimensions=dims)

                        await page.screenshot(path=str(out_dir / f"{engine}.png"), full_page=True)

                        for area in config.regression.critical_areas:
                            count = await page.locator(area.selector).count()
                            rec.check(count > 0, "critical-area-missing",
                                      f"Critical area {area.name} not rendered",
                                      severity="high", browser=engine, dimensions=dims)
                        rec.check(not await page.evaluate(HORIZONTAL_OVERFLOW_JS), "horizontal-overflow",
                                  "Page overflows horizontally", browser=engine, dimensions=dims)
                    finally:
                        await browser_context.close()
            except PlaywrightError as e:
                logger.warning("%s could not render %s: %s", engine, target_url, e)
                rec.check(False, "browser-failure", f"Page failed to render: {e}",
                          severity="critical", browser=engine, dimensions=dims)

        return rec.result()
