"""
Shared headless browser handle.

One Chromium instance per analysis run, launched on first use and closed
explicitly by the owner. Page access is serialised with a lock, so brand
pipelines running concurrently never drive the browser at the same time.
"""

import asyncio
import logging
from typing import Optional

from playwright.async_api import Browser, Playwright, async_playwright

from config.settings import settings

logger = logging.getLogger(__name__)


class BrowserSession:
    """Lazily launched Playwright Chromium browser."""

    def __init__(self, headless: Optional[bool] = None, timeout_ms: Optional[int] = None):
        self.headless = settings.BROWSER_HEADLESS if headless is None else headless
        self.timeout_ms = timeout_ms if timeout_ms is not None else settings.BROWSER_NAV_TIMEOUT_MS
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        if self._browser is None:
            logger.info("🌐 Launching headless browser")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
        return self._browser

    async def render(self, url: str) -> str:
        """Navigate to `url` and return the rendered HTML."""
        async with self._lock:
            browser = await self._ensure_browser()
            page = await browser.new_page(user_agent=settings.USER_AGENT)
            try:
                await page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)
                await page.wait_for_timeout(2000)
                return await page.content()
            finally:
                await page.close()

    async def close(self):
        """Tear down browser and driver; safe to call when never started."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            logger.info("🌐 Browser closed")

    async def __aenter__(self) -> "BrowserSession":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
