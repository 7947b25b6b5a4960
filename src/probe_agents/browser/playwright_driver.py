"""
Playwright-backed BrowserDriver.

Wraps one ``playwright.async_api.Page``; the caller owns the browser and
context lifecycle.
"""

from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from probe_agents.exceptions import EnvironmentIssueError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

LoadState = Literal["load", "domcontentloaded", "networkidle"]

LOADING_SELECTORS = (
    ".loading",
    '[data-loading="true"]',
    '[aria-busy="true"]',
    ".spinner",
    ".animate-spin",
    '[role="progressbar"]',
    ".skeleton",
)

LOADING_CHECK_SCRIPT = """(selectors) => {
    for (const selector of selectors) {
        const el = document.querySelector(selector);
        if (el) {
            const style = window.getComputedStyle(el);
            if (style.display !== 'none' && style.visibility !== 'hidden') {
                return true;
            }
        }
    }
    return false;
}"""

VALID_LOAD_STATES = ("load", "domcontentloaded", "networkidle")


class PlaywrightBrowserDriver:
    """BrowserDriver implementation over a Playwright page.

    Attributes:
        page: The page all operations target
        timeout_ms: Default timeout for navigation
    """

    def __init__(self, page: Page, timeout_ms: int = 30000) -> None:
        self.page = page
        self.timeout_ms = timeout_ms
        self.page.set_default_timeout(timeout_ms)

    async def navigate(self, url: str) -> None:
        """Go to ``url`` and wait for the network to settle."""
        logger.debug("Navigating to %s", url)
        await self.page.goto(url, wait_until="networkidle", timeout=self.timeout_ms)

    async def reload(self) -> None:
        await self.page.reload(wait_until="networkidle", timeout=self.timeout_ms)

    async def wait_for_load_state(self, state: str, timeout_ms: int) -> None:
        """Wait for a Playwright load state.

        Raises:
            ValueError: If ``state`` is not a Playwright load state
        """
        if state not in VALID_LOAD_STATES:
            raise ValueError(f"Unknown load state: {state}")
        load_state: LoadState = state  # type: ignore[assignment]
        await self.page.wait_for_load_state(load_state, timeout=timeout_ms)

    async def wait_for_timeout(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def press_key(self, key: str) -> None:
        await self.page.keyboard.press(key)

    async def has_loading_indicator(self) -> bool:
        """Whether any of LOADING_SELECTORS matches a displayed element."""
        return bool(await self.page.evaluate(LOADING_CHECK_SCRIPT, list(LOADING_SELECTORS)))

    async def load_session(self, path: str) -> None:
        """Restore cookies from a saved Playwright storage-state file.

        Raises:
            EnvironmentIssueError: If the file is missing or not valid storage state
        """
        state_file = Path(path)
        if not state_file.is_file():
            raise EnvironmentIssueError(f"Session file not found: {path}")

        try:
            state = json.loads(state_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise EnvironmentIssueError(f"Invalid session file {path}: {e}") from e

        cookies = state.get("cookies", []) if isinstance(state, dict) else []
        await self.page.context.add_cookies(cookies)
        logger.info("Loaded %d session cookies from %s", len(cookies), path)

    async def screenshot_base64(self, full_page: bool = True) -> str:
        """Capture the page as a base64-encoded PNG."""
        data = await self.page.screenshot(full_page=full_page, type="png")
        return base64.b64encode(data).decode("ascii")
