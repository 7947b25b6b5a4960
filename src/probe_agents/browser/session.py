"""
Playwright browser lifecycle.

BrowserSession launches Chromium with the configured options, opens one
context and page, and tears all of it down again. It is usable as an async
context manager:

    async with BrowserSession(settings.browser) as session:
        driver = PlaywrightBrowserDriver(session.page, settings.browser.timeout_ms)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

from probe_agents.config.settings import BrowserSettings
from probe_agents.exceptions import EnvironmentIssueError

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


class BrowserSession:
    """Owns the Playwright runtime, browser, context and page.

    Attributes:
        settings: Launch options
    """

    def __init__(
        self,
        settings: BrowserSettings | None = None,
        playwright_factory: Any = async_playwright,
    ) -> None:
        self.settings = settings or BrowserSettings()
        self._playwright_factory = playwright_factory
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page:
        """The open page.

        Raises:
            EnvironmentIssueError: If the session has not been launched
        """
        if self._page is None:
            raise EnvironmentIssueError("Browser page not initialized; call launch() first")
        return self._page

    @property
    def is_open(self) -> bool:
        return self._page is not None

    async def launch(self) -> Page:
        """Start Playwright, launch Chromium and open a page."""
        if self._page is not None:
            return self._page

        self._playwright = await self._playwright_factory().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.settings.headless,
            slow_mo=self.settings.slow_mo_ms,
        )
        self._context = await self._browser.new_context(
            viewport={
                "width": self.settings.viewport_width,
                "height": self.settings.viewport_height,
            }
        )
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self.settings.timeout_ms)

        logger.info(
            "Browser launched (headless=%s, viewport %dx%d)",
            self.settings.headless,
            self.settings.viewport_width,
            self.settings.viewport_height,
        )
        return self._page

    async def save_session(self, path: str | Path) -> None:
        """Write the context's cookies and storage to ``path``.

        The file can be restored later through a session-auth setup.

        Raises:
            EnvironmentIssueError: If the session has not been launched
        """
        if self._context is None:
            raise EnvironmentIssueError("Browser context not initialized; call launch() first")
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await self._context.storage_state(path=str(target))
        logger.info("Saved browser session to %s", target)

    async def close(self) -> None:
        """Close the page, context and browser, then stop Playwright.

        Every resource is released even when an earlier close fails.
        """
        for name, resource in (
            ("page", self._page),
            ("context", self._context),
            ("browser", self._browser),
        ):
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.warning("Failed to close browser %s: %s", name, e)

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning("Failed to stop Playwright: %s", e)

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        logger.debug("Browser session closed")

    async def __aenter__(self) -> BrowserSession:
        await self.launch()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
