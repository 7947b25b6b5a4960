"""
Tests for the Playwright action executor and browser driver.

Playwright pages are replaced by MagicMock/AsyncMock doubles, so these tests
need no browser. They verify:
1. Target resolution: id, form fields, text/aria/placeholder, raw selector
2. Locator string translation (getByRole, getByText, locator, ...)
3. Action dispatch per ActionType, including keyboard and scroll targets
4. Failures are reported on the ExecutedAction with a screenshot
5. Playwright timeouts map to target-resolution or transient-state failures
6. Driver session restoration and load-state validation
"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from probe_agents.browser.executor import (
    KEYBOARD_TARGET,
    PlaywrightActionExecutor,
    parse_locator_string,
    resolve_selector,
)
from probe_agents.browser.playwright_driver import PlaywrightBrowserDriver
from probe_agents.exceptions import EnvironmentIssueError, FailureKind, TransientStateError
from probe_agents.schemas.observation import (
    FormField,
    FormInfo,
    InteractiveElement,
    Observation,
)
from probe_agents.schemas.plan import ActionType, PlannedAction, WaitCondition, WaitType

OBSERVATION = Observation(
    url="http://localhost:5173/contacts",
    interactive_elements=[
        InteractiveElement(
            id="el-1",
            type="button",
            selector="#save",
            playwright_locator="getByRole('button', { name: 'Save' })",
            text="Save",
        ),
        InteractiveElement(id="el-2", type="input", selector="#search", placeholder="Search"),
        InteractiveElement(id="el-3", type="link", selector="a.help", aria_label="Open help"),
    ],
    forms=[
        FormInfo(
            id="contact-form",
            fields=[
                FormField(name="email", element=InteractiveElement(id="el-4", selector="#email"))
            ],
            submit_button=InteractiveElement(id="el-5", selector="#submit"),
        )
    ],
)


@pytest.fixture
def locator() -> MagicMock:
    """Locator double whose actions are awaitable."""
    loc = MagicMock()
    for name in ("click", "fill", "select_option", "check", "uncheck", "hover"):
        setattr(loc, name, AsyncMock())
    loc.scroll_into_view_if_needed = AsyncMock()
    return loc


@pytest.fixture
def page(locator: MagicMock) -> MagicMock:
    """Page double returning the same locator for every query."""
    page = MagicMock()
    page.locator.return_value = locator
    page.get_by_role.return_value = locator
    page.get_by_text.return_value = locator
    page.keyboard.press = AsyncMock()
    page.mouse.wheel = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"png-bytes")
    page.context.add_cookies = AsyncMock()
    return page


@pytest.fixture
def executor(page: MagicMock) -> PlaywrightActionExecutor:
    return PlaywrightActionExecutor(PlaywrightBrowserDriver(page, timeout_ms=1000))


# =============================================================================
# Test target resolution
# =============================================================================


class TestResolveSelector:
    """Test target-to-selector resolution."""

    @pytest.mark.parametrize(
        ("target", "expected"),
        [
            ("el-1", "getByRole('button', { name: 'Save' })"),
            ("el-2", "#search"),
            ("el-4", "#email"),
            ("el-5", "#submit"),
            ("save", "getByRole('button', { name: 'Save' })"),
            ("search", "#search"),
            ("open HELP", "a.help"),
            ("div.custom", "div.custom"),
            (KEYBOARD_TARGET, KEYBOARD_TARGET),
        ],
    )
    def test_resolution_order(self, target: str, expected: str) -> None:
        """Test id, form, text and raw-selector resolution."""
        assert resolve_selector(target, OBSERVATION) == expected


class TestParseLocatorString:
    """Test translation of locator method strings."""

    def test_role_with_name(self, page: MagicMock) -> None:
        """Test getByRole with a name option."""
        parse_locator_string(page, "getByRole('button', { name: 'Save' })")

        page.get_by_role.assert_called_once_with("button", name="Save")

    def test_text_and_locator(self, page: MagicMock) -> None:
        """Test getByText and locator strings."""
        parse_locator_string(page, "getByText('Contacts')")
        parse_locator_string(page, "locator('#main > ul')")

        page.get_by_text.assert_called_once_with("Contacts")
        page.locator.assert_called_once_with("#main > ul")

    def test_plain_selector_is_not_translated(self, page: MagicMock) -> None:
        """Test that CSS selectors are left for page.locator()."""
        assert parse_locator_string(page, "#save") is None


# =============================================================================
# Test execute()
# =============================================================================


class TestExecute:
    """Test action dispatch and failure reporting."""

    @pytest.mark.asyncio
    async def test_click_uses_element_locator(
        self, executor: PlaywrightActionExecutor, page: MagicMock, locator: MagicMock
    ) -> None:
        """Test a click on a resolved element."""
        result = await executor.execute(
            PlannedAction(type=ActionType.CLICK, target="el-1"), OBSERVATION
        )

        assert result.success is True
        assert result.error is None
        page.get_by_role.assert_called_once_with("button", name="Save")
        locator.click.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_fill_requires_value(
        self, executor: PlaywrightActionExecutor, page: MagicMock
    ) -> None:
        """Test that a fill without a value fails with a screenshot."""
        result = await executor.execute(
            PlannedAction(type=ActionType.FILL, target="el-4"), OBSERVATION
        )

        assert result.success is False
        assert result.error == "Fill action requires a value"
        assert result.screenshot == base64.b64encode(b"png-bytes").decode("ascii")

    @pytest.mark.asyncio
    async def test_playwright_error_is_reported(
        self, executor: PlaywrightActionExecutor, locator: MagicMock
    ) -> None:
        """Test that driver exceptions become failed results."""
        locator.click.side_effect = TimeoutError("Timeout 1000ms exceeded")

        result = await executor.execute(
            PlannedAction(type=ActionType.CLICK, target="#missing"), OBSERVATION
        )

        assert result.success is False
        assert result.error == "Timeout 1000ms exceeded"

    @pytest.mark.asyncio
    async def test_keyboard_press(
        self, executor: PlaywrightActionExecutor, page: MagicMock, locator: MagicMock
    ) -> None:
        """Test a key press with no element focus."""
        result = await executor.execute(
            PlannedAction(type=ActionType.PRESS, target=KEYBOARD_TARGET, value="Escape"),
            OBSERVATION,
        )

        assert result.success is True
        page.keyboard.press.assert_awaited_once_with("Escape")
        locator.click.assert_not_awaited()

    @pytest.mark.parametrize(("value", "expected"), [("400", (0, 400)), ("10, -50", (10, -50))])
    @pytest.mark.asyncio
    async def test_page_scroll(
        self,
        executor: PlaywrightActionExecutor,
        page: MagicMock,
        value: str,
        expected: tuple[int, int],
    ) -> None:
        """Test wheel scrolling of the page."""
        await executor.execute(
            PlannedAction(type=ActionType.SCROLL, target="__page__", value=value), OBSERVATION
        )

        page.mouse.wheel.assert_awaited_once_with(*expected)

    @pytest.mark.asyncio
    async def test_wait_after(self, executor: PlaywrightActionExecutor, page: MagicMock) -> None:
        """Test that wait_after runs after the action."""
        action = PlannedAction(
            type=ActionType.CLICK,
            target="el-5",
            wait_after=WaitCondition(type=WaitType.URL, value="**/contacts/*", timeout_ms=2000),
        )

        result = await executor.execute(action, OBSERVATION)

        assert result.success is True
        page.wait_for_url.assert_awaited_once_with("**/contacts/*", timeout=2000)

    @pytest.mark.asyncio
    async def test_navigate(self, executor: PlaywrightActionExecutor, page: MagicMock) -> None:
        """Test navigation through the driver."""
        await executor.execute(
            PlannedAction(type=ActionType.NAVIGATE, value="/deals"), OBSERVATION
        )

        page.goto.assert_awaited_once_with("/deals", wait_until="networkidle", timeout=1000)

    @pytest.mark.asyncio
    async def test_fill_without_value_is_an_execution_failure(
        self, executor: PlaywrightActionExecutor
    ) -> None:
        """Test the failure kind of a malformed fill."""
        result = await executor.execute(
            PlannedAction(type=ActionType.FILL, target="el-4"), OBSERVATION
        )

        assert result.failure_kind == FailureKind.EXECUTION


# =============================================================================
# Test failure kinds
# =============================================================================


class TestFailureKinds:
    """Test Playwright timeouts are reported with the concern they belong to."""

    @pytest.mark.asyncio
    async def test_element_timeout_is_target_resolution(
        self, executor: PlaywrightActionExecutor, locator: MagicMock
    ) -> None:
        """Test a click that never finds its element."""
        locator.click.side_effect = PlaywrightTimeoutError("Timeout 1000ms exceeded")

        result = await executor.execute(
            PlannedAction(type=ActionType.CLICK, target="#missing"), OBSERVATION
        )

        assert result.success is False
        assert result.failure_kind == FailureKind.TARGET_RESOLUTION
        assert result.error.startswith("No element found for target '#missing'")
        assert "Timeout 1000ms exceeded" in result.error

    @pytest.mark.asyncio
    async def test_navigation_timeout_keeps_playwright_error(
        self, executor: PlaywrightActionExecutor, page: MagicMock
    ) -> None:
        """Test that non-element actions are not reported as missing targets."""
        page.goto.side_effect = PlaywrightTimeoutError("Navigation timeout")

        result = await executor.execute(
            PlannedAction(type=ActionType.NAVIGATE, value="/deals"), OBSERVATION
        )

        assert result.success is False
        assert result.failure_kind is None
        assert result.error == "Navigation timeout"

    @pytest.mark.asyncio
    async def test_wait_timeout_is_transient_state(
        self, executor: PlaywrightActionExecutor, page: MagicMock
    ) -> None:
        """Test a wait condition that never holds."""
        page.wait_for_url.side_effect = PlaywrightTimeoutError("Timeout 2000ms exceeded")

        with pytest.raises(TransientStateError, match="Wait for url '\\*\\*/done'"):
            await executor.wait_for(
                WaitCondition(type=WaitType.URL, value="**/done", timeout_ms=2000)
            )

    @pytest.mark.asyncio
    async def test_wait_after_timeout_fails_the_action(
        self, executor: PlaywrightActionExecutor, page: MagicMock
    ) -> None:
        """Test wait_after timeouts surface as transient-state failures."""
        page.wait_for_url.side_effect = PlaywrightTimeoutError("Timeout 2000ms exceeded")
        action = PlannedAction(
            type=ActionType.CLICK,
            target="el-5",
            wait_after=WaitCondition(type=WaitType.URL, value="**/contacts/*", timeout_ms=2000),
        )

        result = await executor.execute(action, OBSERVATION)

        assert result.success is False
        assert result.failure_kind == FailureKind.TRANSIENT_STATE


# =============================================================================
# Test PlaywrightBrowserDriver
# =============================================================================


class TestBrowserDriver:
    """Test driver operations that carry logic."""

    @pytest.mark.asyncio
    async def test_load_session_restores_cookies(self, page: MagicMock, tmp_path: Path) -> None:
        """Test cookies are read from a storage-state file."""
        cookies = [{"name": "sid", "value": "abc", "domain": "localhost", "path": "/"}]
        state = tmp_path / "user.json"
        state.write_text(json.dumps({"cookies": cookies, "origins": []}), encoding="utf-8")

        await PlaywrightBrowserDriver(page).load_session(str(state))

        page.context.add_cookies.assert_awaited_once_with(cookies)

    @pytest.mark.asyncio
    async def test_load_session_missing_file(self, page: MagicMock, tmp_path: Path) -> None:
        """Test a missing storage-state file."""
        with pytest.raises(EnvironmentIssueError, match="Session file not found"):
            await PlaywrightBrowserDriver(page).load_session(str(tmp_path / "none.json"))

    @pytest.mark.asyncio
    async def test_unknown_load_state(self, page: MagicMock) -> None:
        """Test load-state validation."""
        with pytest.raises(ValueError, match="Unknown load state"):
            await PlaywrightBrowserDriver(page).wait_for_load_state("settled", 1000)
