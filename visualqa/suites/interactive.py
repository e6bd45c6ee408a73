"""Interactive suite: hover, click and focus states of key elements."""

from __future__ import annotations

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from visualqa.models.config import InteractionCheck
from visualqa.models.suite_result import SuiteResult
from visualqa.suites.base import SuiteContext
from visualqa.suites.recorder import CheckRecorder
from visualqa.utils.browser import browser_session, create_context, is_visible, open_page, settle

logger = logging.getLogger(__name__)

ACTION_TIMEOUT_MS = 5000


async def perform_interaction(page: Page, check: InteractionCheck) -> None:
    """Trigger the check's action on the first matching element."""
    locator = page.locator(check.selector).first
    if check.action == "hover":
        await locator.hover(timeout=ACTION_TIMEOUT_MS)
    elif check.action == "click":
        await locator.click(timeout=ACTION_TIMEOUT_MS)
    else:
        await locator.focus(timeout=ACTION_TIMEOUT_MS)


class InteractiveSuite:
    async def run(self, target_url: str, context: SuiteContext) -> SuiteResult:
        config = context.config
        rec = CheckRecorder(context.descriptor.name)
        out_dir = context.suite_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        async with browser_session("chromium", headless=config.headless) as browser:
            for vp in config.viewports:
                browser_context = await create_context(browser, vp, config.user_agent)
                try:
                    for check in config.interactions:
                        dims = {"viewport": vp.name, "interaction": check.name}
                        # Fresh page per check; a click may navigate away
                        try:
                            page = await open_page(browser_context, target_url)
                        except PlaywrightError as e:
                            rec.check(False, "page-load", f"Page failed to load: {e}",
                                      severity="critical", viewport=vp.name, dimensions=dims)
                            continue
                        try:
                            await settle(page)
                            if not await is_visible(page, check.selector):
                                rec.check(False, "element-missing",
                                          f"Interactive element {check.name} not found",
                                          severity="high", viewport=vp.name, dimensions=dims)
                                continue
                            try:
                                await perform_interaction(page, check)
                            except PlaywrightError as e:
                                rec.check(False, "interaction-failed",
                                          f"{check.action} on {check.name} failed: {e}",
                                          viewport=vp.name, dimensions=dims)
                                continue

                            passed = True
                            if check.expect_selector:
                                passed = await is_visible(page, check.expect_selector)
                            rec.check(passed, "interaction-state",
                                      f"{check.name} did not show its {check.action} state",
                                      viewport=vp.name, dimensions=dims)
                            await page.screenshot(
                                path=str(out_dir / f"{vp.name}_{check.name}.png"), full_page=False,
                            )
                        finally:
                            await page.close()
                finally:
                    await browser_context.close()

        return rec.result()
