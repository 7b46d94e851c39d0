from __future__ import annotations

import logging
import os

from playwright.async_api import async_playwright

from healwright.config.schema import BrowserConfig

logger = logging.getLogger(__name__)


class BrowserSession:
    """Launches a Chromium page through Playwright and owns its lifetime."""

    def __init__(self, browser_config: BrowserConfig) -> None:
        self.browser_config = browser_config
        self._playwright = None
        self.browser = None
        self.context = None
        self.page = None

    async def start(self):
        if self.page is not None and not self.page.is_closed():
            return self.page
        if self._playwright is not None or self.browser is not None or self.context is not None:
            logger.info("Page is closed, releasing the previous browser before relaunching")
            await self.close()
        if self.browser_config.browsers_path:
            os.environ["PLAYWRIGHT_BROWSERS_PATH"] = os.path.abspath(self.browser_config.browsers_path)
            logger.info("Using PLAYWRIGHT_BROWSERS_PATH=%s", os.environ["PLAYWRIGHT_BROWSERS_PATH"])

        self._playwright = await async_playwright().start()
        try:
            self.browser = await self._playwright.chromium.launch(headless=self.browser_config.headless)
            self.context = await self.browser.new_context(
                viewport={
                    "width": self.browser_config.viewport_width,
                    "height": self.browser_config.viewport_height,
                }
            )
            self.page = await self.context.new_page()
        except Exception:
            logger.error("Failed to launch Chromium", exc_info=True)
            await self.close()
            raise
        return self.page

    async def close(self) -> None:
        if self.page is not None and not self.page.is_closed():
            await self.page.close()
        if self.context is not None:
            await self.context.close()
        if self.browser is not None:
            await self.browser.close()
        if self._playwright is not None:
            await self._playwright.stop()
        self.page = None
        self.context = None
        self.browser = None
        self._playwright = None
