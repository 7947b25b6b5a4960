"""Playwright implementations of the browser collaborators."""

from probe_agents.browser.executor import PlaywrightActionExecutor, parse_locator_string
from probe_agents.browser.page_state import PlaywrightPageState
from probe_agents.browser.playwright_driver import LOADING_SELECTORS, PlaywrightBrowserDriver
from probe_agents.browser.session import BrowserSession

__all__ = [
    "LOADING_SELECTORS",
    "BrowserSession",
    "PlaywrightActionExecutor",
    "PlaywrightBrowserDriver",
    "PlaywrightPageState",
    "parse_locator_string",
]
