"""User journey suite: scripted multi-step flows, one check per journey."""

from __future__ import annotations

import logging
from urllib.parse import urljoin

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from visualqa.models.config import JourneyStep, UserJourney
from visualqa.models.suite_result import SuiteResult
from visualqa.suites.base import SuiteContext
from visualqa.suites.recorder import CheckRecorder
from visualqa.utils.browser import NAVIGATION_TIMEOUT_MS, browser_session, create_context

logger = logging.getLogger(__name__)

STEP_TIMEOUT_MS = 10000


def default_journey() -> UserJourney:
    return UserJourney(
        name="landing",
        persona="first-time visitor",
        steps=[
            JourneyStep(action="navigate", description="Open the landing page"),
            JourneyStep(action="expect_visible", selector="body", description="Page renders"),
        ],
    )


async def run_step(page: Page, step: JourneyStep, target_url: str) -> None:
    """Execute one journey step; Playwright errors propagate."""
    match step.action:
        case "navigate":
            url = urljoin(target_url, step.value) if step.value else target_url
            await page.goto(url, wait_until="load", timeout=NAVIGATION_TIMEOUT_MS)
        case "click":
            await page.locator(step.selector).first.click(timeout=STEP_TIMEOUT_MS)
        case "fill":
            await page.locator(step.selector).first.fill(step.value or "", timeout=STEP_TIMEOUT_MS)
        case "wait":
            await page.wait_for_timeout(int(step.value or 1000))
        case "expect_visible":
            await page.locator(step.selector).first.wait_for(state="visible", timeout=STEP_TIMEOUT_MS)


class UserJourneySuite:
    async def run(self, target_url: str, context: SuiteContext) -> SuiteResult:
        config = context.config
        rec = CheckRecorder(context.descriptor.name)
        journeys = config.journeys or [default_journey()]

        async with browser_session("chromium", headless=config.headless) as browser:
            for journey in journeys:
                dims = {"journey": journey.name, "viewport": journey.viewport.name}
                browser_context = await create_context(browser, journey.viewport, config.user_agent)
                page = await browser_context.new_page()
                failed_at = None
                error = ""
                try:
                    for i, step in enumerate(journey.steps):
                        logger.debug("Journey %s step %d/%d: %s", journey.name,
                                     i + 1, len(journey.steps), step.description or step.action)
                        try:
                            await run_step(page, step, target_url)
                        except PlaywrightError as e:
                            failed_at, error = i, str(e)
                            break
                finally:
                    await browser_context.close()

                if failed_at is None:
                    rec.check(True, "journey", "", dimensions=dims)
                else:
                    step = journey.steps[failed_at]
                    rec.check(False, "journey-step-failed",
                              f"Journey {journey.name} failed at step {failed_at + 1} "
                              f"({step.description or step.action}): {error}",
                              severity="high", scenario=journey.name,
                              viewport=journey.viewport.name, dimensions=dims)

        return rec.result()
