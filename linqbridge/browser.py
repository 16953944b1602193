"""Hardened Playwright browser sessions."""

import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from playwright.async_api import Route, async_playwright

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-background-networking",
]

EXTRA_HTTP_HEADERS = {
    "accept-language": "en-US,en;q=0.9",
    "sec-ch-ua": '"Chromium";v="124", "Not:A-Brand";v="8"',
    "sec-ch-ua-platform": '"Windows"',
    "sec-ch-ua-mobile": "?0",
    "upgrade-insecure-requests": "1",
}

HIDE_WEBDRIVER_SCRIPT = (
    "Object.defineProperty(navigator, 'webdriver', { get: () => false });"
)

COOKIE_DOMAIN = ".linkedin.com"

BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font"})
BLOCKED_ASSET_PATTERN = re.compile(r"\.(png|jpg|jpeg|gif|webp|svg)(\?|$)", re.IGNORECASE)
BLOCKED_TRACKER_PATTERN = re.compile(
    r"doubleclick|google-analytics|adservice|facebook|hotjar|segment"
)

DEFAULT_TIMEOUT_MS = 20000
DEFAULT_NAVIGATION_TIMEOUT_MS = 30000


def build_cookies(cookie_bundle: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Session cookies for the target site. JSESSIONID must be quoted."""
    bundle = cookie_bundle or {}
    cookies = []
    if bundle.get("li_at"):
        cookies.append(_cookie("li_at", bundle["li_at"], http_only=True))
    if bundle.get("jsessionid"):
        cookies.append(_cookie("JSESSIONID", f'"{bundle["jsessionid"]}"', http_only=True))
    if bundle.get("bcookie"):
        cookies.append(_cookie("bcookie", bundle["bcookie"], http_only=False))
    return cookies


def _cookie(name: str, value: str, http_only: bool) -> Dict[str, Any]:
    return {
        "name": name,
        "value": value,
        "domain": COOKIE_DOMAIN,
        "path": "/",
        "httpOnly": http_only,
        "secure": True,
        "sameSite": "Lax",
    }


def should_block(resource_type: str, url: str) -> bool:
    """Heavy or tracking requests that are dropped before they leave the browser."""
    if resource_type in BLOCKED_RESOURCE_TYPES:
        return True
    return bool(BLOCKED_ASSET_PATTERN.search(url) or BLOCKED_TRACKER_PATTERN.search(url))


async def _filter_route(route: Route) -> None:
    request = route.request
    if should_block(request.resource_type, request.url):
        await route.abort()
    else:
        await route.continue_()


class PlaywrightPage:
    """Adapts a Playwright page to the navigator's page interface."""

    def __init__(self, page):
        self.raw = page

    async def goto(self, url: str, timeout_ms: int) -> Optional[int]:
        response = await self.raw.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        return response.status if response else None

    async def title(self) -> str:
        return await self.raw.title()


@asynccontextmanager
async def browser_session(
    cookie_bundle: Optional[Dict[str, Any]] = None,
    headless: bool = True,
) -> AsyncIterator[PlaywrightPage]:
    """
    Launch Chromium with a realistic fingerprint and yield a ready page.

    The browser is closed on every exit path, including errors and
    cancellation inside the ``async with`` block.
    """
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=headless, args=LAUNCH_ARGS)
        try:
            context = await browser.new_context(
                user_agent=USER_AGENT,
                locale="en-US",
                timezone_id="America/Los_Angeles",
                color_scheme="light",
                viewport={"width": 1366, "height": 768},
                device_scale_factor=1,
                java_script_enabled=True,
                extra_http_headers=EXTRA_HTTP_HEADERS,
            )
            await context.add_init_script(HIDE_WEBDRIVER_SCRIPT)

            cookies = build_cookies(cookie_bundle)
            if cookies:
                await context.add_cookies(cookies)

            await context.route("**/*", _filter_route)

            page = await context.new_page()
            page.set_default_timeout(DEFAULT_TIMEOUT_MS)
            page.set_default_navigation_timeout(DEFAULT_NAVIGATION_TIMEOUT_MS)

            yield PlaywrightPage(page)
        finally:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Closing browser failed: {e}")
