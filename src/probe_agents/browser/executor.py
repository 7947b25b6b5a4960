"""
Playwright-backed ActionExecutor.

Targets are resolved against the observation's element catalog in this order:
1. Element id (interactive elements, then form fields and submit buttons)
2. Visible text, aria-label or placeholder (case-insensitive)
3. The raw target, treated as a selector

A resolved element prefers its Playwright locator string over its CSS
selector. Locator strings of the form ``getByRole('button', { name: 'Save' })``,
``getByText('...')``, ``getByPlaceholder('...')``, ``getByLabel('...')`` and
``locator('...')`` are translated to the matching Page calls.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from probe_agents.exceptions import (
    ExecutionError,
    FailureKind,
    ProbeError,
    TargetResolutionError,
    TransientStateError,
)
from probe_agents.schemas.plan import (
    ActionType,
    ExecutedAction,
    PlannedAction,
    WaitCondition,
    WaitType,
)

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

    from probe_agents.browser.playwright_driver import PlaywrightBrowserDriver
    from probe_agents.schemas.observation import InteractiveElement, Observation

logger = logging.getLogger(__name__)

KEYBOARD_TARGET = "__keyboard__"
PAGE_TARGET = "__page__"

ROLE_PATTERN = re.compile(r"^getByRole\('([^']+)'(?:,\s*\{\s*name:\s*'([^']+)'\s*\})?\)$")
TEXT_PATTERN = re.compile(r"^getByText\('([^']+)'\)$")
PLACEHOLDER_PATTERN = re.compile(r"^getByPlaceholder\('([^']+)'\)$")
LABEL_PATTERN = re.compile(r"^getByLabel\('([^']+)'\)$")
LOCATOR_PATTERN = re.compile(r"^locator\('(.+)'\)$")

# Actions that wait for their target element before acting
ELEMENT_ACTIONS = frozenset(
    {
        ActionType.CLICK,
        ActionType.FILL,
        ActionType.SELECT,
        ActionType.CHECK,
        ActionType.UNCHECK,
        ActionType.HOVER,
    }
)

TEXT_WAIT_SCRIPT = "(text) => document.body.innerText.includes(text)"


def parse_locator_string(page: Page, locator: str) -> Locator | None:
    """Translate a Playwright locator method string into a Locator.

    Returns:
        The Locator, or None if ``locator`` is not a recognised method string
    """
    if match := ROLE_PATTERN.match(locator):
        role, name = match.group(1), match.group(2)
        if name:
            return page.get_by_role(role, name=name)  # type: ignore[arg-type]
        return page.get_by_role(role)  # type: ignore[arg-type]
    if match := TEXT_PATTERN.match(locator):
        return page.get_by_text(match.group(1))
    if match := PLACEHOLDER_PATTERN.match(locator):
        return page.get_by_placeholder(match.group(1))
    if match := LABEL_PATTERN.match(locator):
        return page.get_by_label(match.group(1))
    if match := LOCATOR_PATTERN.match(locator):
        return page.locator(match.group(1))
    return None


def find_by_id(target: str, observation: Observation) -> InteractiveElement | None:
    for element in observation.interactive_elements:
        if element.id == target:
            return element
    for form in observation.forms:
        for field in form.fields:
            if field.element.id == target:
                return field.element
        if form.submit_button and form.submit_button.id == target:
            return form.submit_button
    return None


def find_by_text(target: str, observation: Observation) -> InteractiveElement | None:
    needle = target.lower()
    if not needle:
        return None
    for element in observation.interactive_elements:
        candidates = (element.text, element.aria_label, element.placeholder)
        if any(c and needle in c.lower() for c in candidates):
            return element
    return None


def resolve_selector(target: str, observation: Observation) -> str:
    """Resolve an action target to a selector or locator string."""
    if target in (KEYBOARD_TARGET, PAGE_TARGET):
        return target

    element = find_by_id(target, observation) or find_by_text(target, observation)
    if element:
        return element.playwright_locator or element.selector
    return target


class PlaywrightActionExecutor:
    """ActionExecutor implementation over a PlaywrightBrowserDriver.

    Attributes:
        driver: Browser driver owning the page
    """

    def __init__(self, driver: PlaywrightBrowserDriver) -> None:
        self.driver = driver
        self._handlers: dict[ActionType, Callable[[PlannedAction, str], Awaitable[None]]] = {
            ActionType.CLICK: self._click,
            ActionType.FILL: self._fill,
            ActionType.SELECT: self._select,
            ActionType.CHECK: self._check,
            ActionType.UNCHECK: self._uncheck,
            ActionType.HOVER: self._hover,
            ActionType.PRESS: self._press,
            ActionType.SCROLL: self._scroll,
            ActionType.WAIT: self._wait,
            ActionType.NAVIGATE: self._navigate,
        }

    @property
    def page(self) -> Page:
        return self.driver.page

    async def execute(self, action: PlannedAction, observation: Observation) -> ExecutedAction:
        """Perform ``action`` and report how it went.

        Failures are reported on the result, not raised; a screenshot is
        attached when one can be taken. A target that never appears is
        reported as a target-resolution failure, and a wait condition that
        never holds as a transient-state failure.

        Args:
            action: Planned action to perform
            observation: Observation the plan was made from

        Returns:
            ExecutedAction with success, duration and error details
        """
        start = time.monotonic()
        error: str | None = None
        failure_kind: FailureKind | None = None
        screenshot: str | None = None

        try:
            selector = resolve_selector(action.target, observation)
            await self._perform(action, selector)
            if action.wait_after and action.type != ActionType.WAIT:
                await self.wait_for(action.wait_after)
        except Exception as e:
            error = str(e) or type(e).__name__
            if isinstance(e, ProbeError):
                failure_kind = e.kind
            logger.info("Action failed (%s): %s", action.describe(), error)
            try:
                screenshot = await self.driver.screenshot_base64()
            except Exception as shot_error:
                logger.debug("Failure screenshot unavailable: %s", shot_error)

        return ExecutedAction(
            action=action,
            success=error is None,
            duration_ms=(time.monotonic() - start) * 1000,
            error=error,
            failure_kind=failure_kind,
            screenshot=screenshot,
        )

    async def wait_for(self, condition: WaitCondition) -> None:
        """Block until ``condition`` holds.

        Raises:
            TransientStateError: If the condition does not hold within its timeout
        """
        try:
            await self._wait_for(condition)
        except PlaywrightTimeoutError as e:
            raise TransientStateError(
                f"Wait for {condition.type.value} '{condition.value}' ended: {e}"
            ) from e

    async def _perform(self, action: PlannedAction, selector: str) -> None:
        try:
            await self._handlers[action.type](action, selector)
        except PlaywrightTimeoutError as e:
            if action.type not in ELEMENT_ACTIONS:
                raise
            raise TargetResolutionError(
                f"No element found for target '{action.target}' ({selector}): {e}"
            ) from e

    async def _wait_for(self, condition: WaitCondition) -> None:
        timeout = condition.timeout_ms
        if condition.type == WaitType.URL:
            await self.page.wait_for_url(condition.value, timeout=timeout)
        elif condition.type == WaitType.ELEMENT:
            await self.page.wait_for_selector(condition.value, state="visible", timeout=timeout)
        elif condition.type == WaitType.NETWORK:
            await self.driver.wait_for_load_state(condition.value or "networkidle", timeout)
        elif condition.type == WaitType.TIME:
            await self.page.wait_for_timeout(int(condition.value or 0))
        elif condition.type == WaitType.TEXT:
            await self.page.wait_for_function(
                TEXT_WAIT_SCRIPT, arg=condition.value, timeout=timeout
            )

    def locator(self, selector: str) -> Locator:
        """Locator for a selector or Playwright locator method string."""
        return parse_locator_string(self.page, selector) or self.page.locator(selector)

    # =========================================================================
    # Action handlers
    # =========================================================================

    @staticmethod
    def _require_value(action: PlannedAction) -> str:
        if action.value is None:
            raise ExecutionError(f"{action.type.value.capitalize()} action requires a value")
        return action.value

    async def _click(self, action: PlannedAction, selector: str) -> None:
        await self.locator(selector).click()

    async def _fill(self, action: PlannedAction, selector: str) -> None:
        await self.locator(selector).fill(self._require_value(action))

    async def _select(self, action: PlannedAction, selector: str) -> None:
        await self.locator(selector).select_option(self._require_value(action))

    async def _check(self, action: PlannedAction, selector: str) -> None:
        await self.locator(selector).check()

    async def _uncheck(self, action: PlannedAction, selector: str) -> None:
        await self.locator(selector).uncheck()

    async def _hover(self, action: PlannedAction, selector: str) -> None:
        await self.locator(selector).hover()

    async def _press(self, action: PlannedAction, selector: str) -> None:
        key = self._require_value(action)
        if selector and selector != KEYBOARD_TARGET:
            await self.locator(selector).click()
        await self.page.keyboard.press(key)

    async def _scroll(self, action: PlannedAction, selector: str) -> None:
        if selector and selector != PAGE_TARGET:
            await self.locator(selector).scroll_into_view_if_needed()
            return
        if action.value:
            # "x,y" or just "y"
            parts = [int(p.strip()) for p in action.value.split(",")]
            delta_x, delta_y = (parts[0], parts[1]) if len(parts) > 1 else (0, parts[0])
            await self.page.mouse.wheel(delta_x, delta_y)

    async def _wait(self, action: PlannedAction, selector: str) -> None:
        if action.wait_after:
            await self.wait_for(action.wait_after)
        elif action.value:
            await self.page.wait_for_timeout(int(action.value))

    async def _navigate(self, action: PlannedAction, selector: str) -> None:
        await self.driver.navigate(self._require_value(action))
