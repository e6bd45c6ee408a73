"""Basic visual suite: full-page screenshots and layout checks per viewport."""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError

from visualqa.models.suite_result import SuiteResult
from visualqa.suites.base import SuiteContext
from visualqa.suites.recorder import CheckRecorder
from visualqa.utils.browser import (
    HORIZONTAL_OVERFLOW_JS,
    PAGE_HAS_CONTENT_JS,
    browser_session,
    create_context,
    is_visible,
    open_page,
    settle,
)

logger = logging.getLogger(__name__)


class ViewportSuite:
    """Checks that the page renders sensibly at every configured viewport."""

    async def run(self, target_url: str, context: SuiteContext) -> SuiteResult:
        config = context.config
        rec = CheckRecorder(context.descriptor.name)
        out_dir = context.suite_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        async with browser_session("chromium", headless=config.headless) as browser:
            for vp in config.viewports:
                dims = {"viewport": vp.name}
                browser_context = await create_context(browser, vp, config.user_agent)
                try:
                    try:
                        page = await open_page(browser_context, target_url)
                    except PlaywrightError as e:
                        rec.check(False, "page-load", f"Page failed to load: {e}",
                                  severity="critical", viewport=vp.name, dimensions=dims)
                        continue
                    rec.check(True, "page-load", "", dimensions=dims)
                    await settle(page)

                    shot = out_dir / f"{vp.name}.png"
                    await page.screenshot(path=str(shot), full_page=True)
                    logger.debug("Captured %s", shot)

                    rec.check(bool(await page.evaluate(PAGE_HAS_CONTENT_JS)), "empty-page",
                              "Page has no visible text",
                              severity="high", viewport=vp.name, dimensions=dims)
                    rec.check(not await page.evaluate(HORIZONTAL_OVERFLOW_JS), "horizontal-overflow",
                              "Page overflows horizontally",
                              viewport=vp.name, dimensions=dims)
                    for area in config.regression.critical_areas:
                        rec.check(await is_visible(page, area.selector), "critical-area-hidden",
                                  f"Critical area {area.name} not visible",
                                  severity="high", viewport=vp.name, dimensions=dims)
                finally:
                    await browser_context.close()

        return rec.result()
