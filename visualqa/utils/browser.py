"""Browser helpers shared by the reference suites."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from visualqa.models.config import ViewportConfig

logger = logging.getLogger(__name__)

ENGINES = ("chromium", "firefox", "webkit")

NAVIGATION_TIMEOUT_MS = 30000
SETTLE_TIMEOUT_MS = 3000

_INIT_SCRIPT = """
// Hide navigator.webdriver so sites render what a visitor would see
Object.defineProperty(navigator, 'webdriver', { get: () => false });
Object.defineProperty(navigator, 'languages', {
    get: () => ['en-US', 'en'],
});
"""

PAGE_HAS_CONTENT_JS = "() => !!document.body && document.body.innerText.trim().length > 0"

HORIZONTAL_OVERFLOW_JS = (
    "() => document.documentElement.scrollWidth > window.innerWidth + 1"
)

SCROLL_MIDDLE_JS = "() => window.scrollTo(0, document.body.scrollHeight / 2)"


async def launch_browser(playwright: Playwright, engine: str = "chromium", headless: bool = True) -> Browser:
    """Launch one of the Playwright engines."""
    if engine not in ENGINES:
        raise ValueError(f"Unknown browser engine: {engine}")
    browser_type = getattr(playwright, engine)
    if engine == "chromium":
        return await browser_type.launch(
            headless=headless,
            args=["--disable-blink-features=AutomationControlled"],
        )
    return await browser_type.launch(headless=headless)


@asynccontextmanager
async def browser_session(engine: str = "chromium", headless: bool = True) -> AsyncIterator[Browser]:
    """Start Playwright, launch a browser and close both on exit."""
    async with async_playwright() as p:
        logger.debug("Launching %s (headless=%s)", engine, headless)
        browser = await launch_browser(p, engine, headless)
        try:
            yield browser
        finally:
            await browser.close()


async def create_context(
    browser: Browser,
    viewport: ViewportConfig,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create a browser context sized to ``viewport`` with the init patches applied."""
    context_kwargs: dict = {
        "viewport": {"width": viewport.width, "height": viewport.height},
        "locale": "en-US",
        "timezone_id": "America/New_York",
        "extra_http_headers": {
            "Accept-Language": "en-US,en;q=0.9",
        },
    }
    if user_agent:
        context_kwargs["user_agent"] = user_agent

    context = await browser.new_context(**context_kwargs)
    await context.add_init_script(_INIT_SCRIPT)
    return context


async def open_page(context: BrowserContext, url: str, wait_until: str = "load") -> Page:
    """Open ``url`` in a new page of ``context``. Navigation errors propagate."""
    page = await context.new_page()
    await page.goto(url, wait_until=wait_until, timeout=NAVIGATION_TIMEOUT_MS)
    return page


async def settle(page: Page) -> None:
    """Give fonts, animations and late requests a moment before capturing."""
    try:
        await page.wait_for_load_state("networkidle", timeout=SETTLE_TIMEOUT_MS)
    except PlaywrightError:
        # If the network doesn't idle in time, continue anyway
        pass
    await page.wait_for_timeout(500)


async def is_visible(page: Page, selector: str) -> bool:
    """Whether the first element matching ``selector`` is visible."""
    try:
        locator = page.locator(selector).first
        return await locator.count() > 0 and await locator.is_visible()
    except PlaywrightError as e:
        logger.debug("Visibility check failed for %s: %s", selector, e)
        return False
