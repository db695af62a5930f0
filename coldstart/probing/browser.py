"""Browser lifetime for one iteration."""

from __future__ import annotations

from typing import Optional

import structlog
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from ..config import BrowserConfig

logger = structlog.get_logger(__name__)


class BrowserSession:
    """
    One Chromium browser, context and page shared by every probe of an
    iteration. Everything is torn down on exit, even when the iteration raised.
    """

    def __init__(self, config: Optional[BrowserConfig] = None) -> None:
        self.config = config or BrowserConfig()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def __aenter__(self) -> Page:
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise
        return self.page

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()

    async def start(self) -> None:
        logger.info("Launching Chromium", headless=self.config.headless)
        self.playwright = await async_playwright().start()

        launch_kwargs: dict = {"headless": self.config.headless}
        if self.config.executable_path:
            launch_kwargs["executable_path"] = self.config.executable_path
        self.browser = await self.playwright.chromium.launch(**launch_kwargs)
        self.context = await self.browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
        )
        self.page = await self.context.new_page()

    async def stop(self) -> None:
        logger.info("Closing browser")
        for name in ("page", "context", "browser"):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception:
                logger.warning("Failed to close browser resource", resource=name, exc_info=True)
            setattr(self, name, None)
        if self.playwright is not None:
            try:
                await self.playwright.stop()
            except Exception:
                logger.warning("Failed to stop Playwright", exc_info=True)
            self.playwright = None
