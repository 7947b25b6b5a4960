"""
Playwright-backed PageStateProvider.

Observations combine three sources:
1. A DOM snapshot taken in the page: the interactive-element catalog,
   modal dialogs and toast notifications
2. Errors collected from page events since the last clear: console errors,
   uncaught page errors, failed requests and HTTP error responses
3. The loading-indicator check and an optional screenshot from the driver

Element ids (``el-0``, ``el-1``, ...) are assigned in document order and are
only stable within one observation.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from probe_agents.schemas.observation import (
    InteractiveElement,
    ModalInfo,
    NetworkError,
    Observation,
    ToastInfo,
)

if TYPE_CHECKING:
    from playwright.async_api import ConsoleMessage, Error, Request, Response

    from probe_agents.browser.playwright_driver import PlaywrightBrowserDriver

logger = logging.getLogger(__name__)

STABLE_POLL_MS = 200
STABLE_SETTLE_MS = 100
MAX_ELEMENT_TEXT = 100
TOAST_TYPES = ("success", "error", "warning", "info")

SNAPSHOT_SCRIPT = """(maxText) => {
    const isShown = (el) => {
        const style = window.getComputedStyle(el);
        return style.display !== 'none' && style.visibility !== 'hidden';
    };
    const text = (el, limit) => (el.textContent || '').trim().slice(0, limit);

    const selectorFor = (el) => {
        if (el.hasAttribute('data-testid')) {
            return `[data-testid="${el.getAttribute('data-testid')}"]`;
        }
        if (el.id && !/^(:|react|radix)/.test(el.id)) {
            return `#${el.id}`;
        }
        if (el.getAttribute('aria-label')) {
            return `[aria-label="${el.getAttribute('aria-label')}"]`;
        }
        const label = text(el, 30);
        if (label && el.tagName === 'BUTTON') {
            return `button:has-text("${label}")`;
        }
        const parts = [];
        let current = el;
        while (current && current !== document.body) {
            if (current.id) {
                parts.unshift(`#${current.id}`);
                break;
            }
            let part = current.tagName.toLowerCase();
            const siblings = current.parentElement ? current.parentElement.children : [];
            if (siblings.length > 1) {
                part += `:nth-child(${Array.from(siblings).indexOf(current) + 1})`;
            }
            parts.unshift(part);
            current = current.parentElement;
        }
        return parts.join(' > ');
    };

    const implicitRole = (el) => {
        const tag = el.tagName.toLowerCase();
        const type = (el.getAttribute('type') || '').toLowerCase();
        if (tag === 'button') return 'button';
        if (tag === 'a' && el.hasAttribute('href')) return 'link';
        if (tag === 'input' && type === 'checkbox') return 'checkbox';
        if (tag === 'input' && type === 'radio') return 'radio';
        if (tag === 'input' || tag === 'textarea') return 'textbox';
        if (tag === 'select') return 'combobox';
        return '';
    };

    const kindOf = (el) => {
        const tag = el.tagName.toLowerCase();
        const type = (el.getAttribute('type') || '').toLowerCase();
        const role = (el.getAttribute('role') || '').toLowerCase();
        if (tag === 'button' || role === 'button') return 'button';
        if (tag === 'a') return 'link';
        if (tag === 'select' || role === 'listbox') return 'select';
        if (tag === 'textarea') return 'textarea';
        if (role === 'combobox') return 'combobox';
        if (type === 'checkbox' || role === 'checkbox') return 'checkbox';
        if (type === 'radio' || role === 'radio') return 'radio';
        if (tag === 'input') return 'input';
        return 'button';
    };

    const locatorFor = (el) => {
        const role = el.getAttribute('role') || implicitRole(el);
        const name = el.getAttribute('aria-label') || text(el, 50);
        if (role && name && !name.includes("'")) {
            return `getByRole('${role}', { name: '${name}' })`;
        }
        const placeholder = el.getAttribute('placeholder');
        if (placeholder && !placeholder.includes("'")) {
            return `getByPlaceholder('${placeholder}')`;
        }
        return null;
    };

    const interactive = [
        'button', 'a[href]', 'input:not([type="hidden"])', 'select', 'textarea',
        '[role="button"]', '[role="link"]', '[role="menuitem"]', '[role="tab"]',
        '[role="checkbox"]', '[role="radio"]', '[role="combobox"]', '[role="listbox"]',
        '[tabindex]:not([tabindex="-1"])', '[contenteditable="true"]',
    ].join(', ');

    const elements = [];
    for (const el of document.querySelectorAll(interactive)) {
        const rect = el.getBoundingClientRect();
        if (rect.width === 0 || rect.height === 0 || !isShown(el)) continue;
        const hasValue = 'value' in el && typeof el.value === 'string';
        elements.push({
            type: kindOf(el),
            selector: selectorFor(el),
            playwright_locator: locatorFor(el),
            text: text(el, maxText),
            placeholder: el.getAttribute('placeholder'),
            value: hasValue ? el.value : null,
            disabled: el.hasAttribute('disabled') || el.getAttribute('aria-disabled') === 'true',
            visible: rect.top >= 0 && rect.left >= 0
                && rect.bottom <= window.innerHeight && rect.right <= window.innerWidth,
            aria_label: el.getAttribute('aria-label'),
            role: el.getAttribute('role') || el.tagName.toLowerCase(),
        });
    }

    const modals = [];
    for (const modal of document.querySelectorAll('[role="dialog"], [role="alertdialog"], .modal')) {
        const heading = modal.querySelector('[role="heading"], h1, h2, h3, .modal-title');
        modals.push({
            title: heading ? text(heading, 100) : 'Untitled Modal',
            visible: isShown(modal),
        });
    }

    const toasts = [];
    for (const toast of document.querySelectorAll('[data-sonner-toast]')) {
        toasts.push({ type: toast.getAttribute('data-type') || 'info', message: text(toast, 200) });
    }
    for (const toast of document.querySelectorAll('.toast, [role="alert"], [role="status"]')) {
        const classes = String(toast.className || '');
        let type = 'info';
        if (classes.includes('success') || classes.includes('green')) type = 'success';
        if (classes.includes('error') || classes.includes('red')) type = 'error';
        if (classes.includes('warning') || classes.includes('yellow')) type = 'warning';
        toasts.push({ type, message: text(toast, 200) });
    }

    return { elements, modals, toasts };
}"""


def normalize_toast_type(value: str | None) -> str:
    kind = (value or "").lower()
    return kind if kind in TOAST_TYPES else "info"


def build_elements(raw: list[dict[str, Any]]) -> list[InteractiveElement]:
    """Turn snapshot entries into catalog elements with sequential ids."""
    return [
        InteractiveElement(id=f"el-{index}", **entry)
        for index, entry in enumerate(raw)
    ]


class PlaywrightPageState:
    """PageStateProvider over a PlaywrightBrowserDriver's page.

    Page listeners are attached on construction so errors raised before the
    first observation are kept.

    Attributes:
        driver: Browser driver owning the page
        console_errors: Console errors since the last clear
        network_errors: Network errors since the last clear
    """

    def __init__(self, driver: PlaywrightBrowserDriver) -> None:
        self.driver = driver
        self.console_errors: list[str] = []
        self.network_errors: list[NetworkError] = []

        page = driver.page
        page.on("console", self._on_console)
        page.on("pageerror", self._on_page_error)
        page.on("requestfailed", self._on_request_failed)
        page.on("response", self._on_response)

    # =========================================================================
    # Page event handlers
    # =========================================================================

    def _on_console(self, message: ConsoleMessage) -> None:
        if message.type == "error":
            self.console_errors.append(message.text)

    def _on_page_error(self, error: Error) -> None:
        self.console_errors.append(f"Uncaught: {error.message}")

    def _on_request_failed(self, request: Request) -> None:
        self.network_errors.append(
            NetworkError(url=request.url, method=request.method, error=request.failure)
        )

    def _on_response(self, response: Response) -> None:
        if response.status >= 400:
            self.network_errors.append(
                NetworkError(
                    url=response.url,
                    method=response.request.method,
                    status=response.status,
                )
            )

    # =========================================================================
    # PageStateProvider
    # =========================================================================

    async def observe(
        self,
        include_visual: bool = True,
        capture_console: bool = True,
        capture_network: bool = True,
    ) -> Observation:
        """Snapshot the current page state."""
        page = self.driver.page
        snapshot = await page.evaluate(SNAPSHOT_SCRIPT, MAX_ELEMENT_TEXT)
        loading = await self.driver.has_loading_indicator()
        screenshot = await self.driver.screenshot_base64() if include_visual else None

        observation = Observation(
            url=page.url,
            title=await page.title(),
            interactive_elements=build_elements(snapshot.get("elements", [])),
            modals=[ModalInfo(**m) for m in snapshot.get("modals", [])],
            toasts=[
                ToastInfo(type=normalize_toast_type(t.get("type")), message=t.get("message", ""))
                for t in snapshot.get("toasts", [])
            ],
            loading_indicators=loading,
            console_errors=list(self.console_errors) if capture_console else [],
            network_errors=list(self.network_errors) if capture_network else [],
            screenshot=screenshot,
        )
        logger.debug("Observed %s", observation.summary())
        return observation

    async def wait_for_stable(self, timeout_ms: int) -> None:
        """Poll until no loading indicator is visible.

        Returns quietly when ``timeout_ms`` elapses with the page still loading;
        the following observation reports the indicator.
        """
        deadline = time.monotonic() + timeout_ms / 1000
        while time.monotonic() < deadline:
            if not await self.driver.has_loading_indicator():
                await self.driver.wait_for_timeout(STABLE_SETTLE_MS)
                return
            await self.driver.wait_for_timeout(STABLE_POLL_MS)
        logger.debug("Page still loading after %dms", timeout_ms)

    async def clear_errors(self) -> None:
        self.console_errors.clear()
        self.network_errors.clear()
