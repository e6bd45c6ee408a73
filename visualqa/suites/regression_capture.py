"""Regression capture suite: screenshots every scenario and critical area for baseline comparison."""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from visualqa.models.config import RegressionScenario
from visualqa.models.suite_result import SuiteResult, image_relpath
from visualqa.suites.base import SuiteContext
from visualqa.suites.recorder import CheckRecorder
from visualqa.utils.browser import (
    SCROLL_MIDDLE_JS,
    browser_session,
    create_context,
    is_visible,
    open_page,
    settle,
)

logger = logging.getLogger(__name__)

ACTION_TIMEOUT_MS = 5000


async def apply_interaction(page: Page, interaction: str) -> None:
    """Apply one scenario interaction: ``hover:<sel>``, ``click:<sel>`` or ``scroll-middle``."""
    action, _, selector = interaction.partition(":")
    if action == "scroll-middle":
        await page.evaluate(SCROLL_MIDDLE_JS)
        await page.wait_for_timeout(500)
    elif action == "hover" and selector:
        await page.locator(selector).first.hover(timeout=ACTION_TIMEOUT_MS)
    elif action == "click" and selector:
        await page.locator(selector).first.click(timeout=ACTION_TIMEOUT_MS)
    else:
        raise ValueError(f"Unknown scenario interaction: {interaction}")


class RegressionCaptureSuite:
    """Produces the captures the baseline comparison stage works on."""

    async def run(self, target_url: str, context: SuiteContext) -> SuiteResult:
        config = context.config
        rec = CheckRecorder(context.descriptor.name)

        async with browser_session("chromium", headless=config.headless) as browser:
            for scenario in config.regression.scenarios:
                await self._capture_scenario(browser, target_url, scenario, context, rec)

        logger.info("Captured %d images across %d scenarios",
                    len(rec.captures), len(config.regression.scenarios))
        return rec.result()

    async def _capture_scenario(
        self, browser, target_url: str, scenario: RegressionScenario,
        context: SuiteContext, rec: CheckRecorder,
    ) -> None:
        config = context.config
        page_shot = context.suite_dir / image_relpath(scenario.name)
        page_shot.parent.mkdir(parents=True, exist_ok=True)
        dims = {"scenario": scenario.name}

        browser_context = await create_context(browser, scenario.viewport, config.user_agent)
        try:
            try:
                page = await open_page(browser_context, target_url)
            except PlaywrightError as e:
                rec.check(False, "page-load", f"Page failed to load: {e}",
                          severity="critical", scenario=scenario.name, dimensions=dims)
                return
            await settle(page)

            for interaction in scenario.interactions:
                try:
                    await apply_interaction(page, interaction)
                except (PlaywrightError, ValueError) as e:
                    rec.issue("interaction-failed", f"Scenario interaction {interaction} failed: {e}",
                              severity="low", scenario=scenario.name)

            await page.screenshot(path=str(page_shot), full_page=scenario.full_page)
            rec.capture(scenario.name, str(page_shot))
            rec.check(True, "capture", "", dimensions=dims)

            for area in config.regression.critical_areas:
                if not await is_visible(page, area.selector):
                    rec.check(False, "critical-area-missing",
                              f"Critical area {area.name} not visible",
                              severity="medium", scenario=scenario.name, dimensions=dims)
                    continue
                area_shot = context.suite_dir / image_relpath(scenario.name, area.name)
                area_shot.parent.mkdir(parents=True, exist_ok=True)
                try:
                    await page.locator(area.selector).first.screenshot(
                        path=str(area_shot), timeout=ACTION_TIMEOUT_MS,
                    )
                except PlaywrightError as e:
                    rec.check(False, "capture-failed", f"Could not capture {area.name}: {e}",
                              severity="low", scenario=scenario.name, dimensions=dims)
                    continue
                rec.capture(scenario.name, str(area_shot), area=area.name)
                rec.check(True, "capture", "", dimensions=dims)
        finally:
            await browser_context.close()
