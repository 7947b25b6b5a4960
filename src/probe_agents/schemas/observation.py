"""Pydantic models for page observations.

An Observation is a point-in-time snapshot of rendered page state produced
by the page-state provider. The core reads it but never mutates it:

- InteractiveElement: a clickable/fillable element in the element catalog
- FormInfo / FormField: detected forms and their fields
- ModalInfo / ToastInfo: overlays and notifications
- NetworkError: a failed or erroring network request
- Observation: the snapshot itself
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


class InteractiveElement(BaseModel):
    """An interactive element discovered on the page.

    Attributes:
        id: Stable element id within the observation (e.g. "el-5")
        type: Element kind (button, link, input, select, ...)
        selector: CSS selector for the element
        playwright_locator: Optional Playwright locator string
        text: Visible text
        placeholder: Placeholder text for inputs
        value: Current value for inputs
        disabled: Whether the element is disabled
        visible: Whether the element is visible
        aria_label: ARIA label if present
        role: ARIA role if present
    """

    id: str = Field(description="Element id within the observation")
    type: str = Field(default="element", description="Element kind")
    selector: str = Field(default="", description="CSS selector")
    playwright_locator: str | None = Field(
        default=None, description="Playwright locator string"
    )
    text: str = Field(default="", description="Visible text")
    placeholder: str | None = Field(default=None, description="Placeholder text")
    value: str | None = Field(default=None, description="Current input value")
    disabled: bool = Field(default=False, description="Whether disabled")
    visible: bool = Field(default=True, description="Whether visible")
    aria_label: str | None = Field(default=None, description="ARIA label")
    role: str | None = Field(default=None, description="ARIA role")


class FormField(BaseModel):
    """A field inside a detected form."""

    name: str = Field(default="", description="Field name attribute")
    label: str | None = Field(default=None, description="Associated label")
    type: str = Field(default="text", description="Input type")
    required: bool = Field(default=False, description="Whether required")
    value: str | None = Field(default=None, description="Current value")
    element: InteractiveElement = Field(description="Underlying element")


class FormInfo(BaseModel):
    """A form detected on the page."""

    id: str = Field(description="Form identifier")
    fields: list[FormField] = Field(default_factory=list)
    submit_button: InteractiveElement | None = Field(default=None)


class ModalInfo(BaseModel):
    """A modal dialog detected on the page."""

    title: str = Field(default="", description="Modal title")
    visible: bool = Field(default=True, description="Whether the modal is open")


class ToastInfo(BaseModel):
    """A toast notification detected on the page."""

    type: str = Field(default="info", description="success, error, warning or info")
    message: str = Field(default="", description="Notification text")


class NetworkError(BaseModel):
    """A network request that failed or returned an error status.

    Attributes:
        url: Request URL
        method: HTTP method
        status: HTTP status code, None when the request never completed
        error: Transport-level failure text, if any
    """

    url: str = Field(description="Request URL")
    method: str = Field(default="GET", description="HTTP method")
    status: int | None = Field(default=None, description="HTTP status code")
    error: str | None = Field(default=None, description="Transport failure text")


class Observation(BaseModel):
    """Snapshot of page state at an instant.

    Attributes:
        url: Current page location
        title: Document title
        interactive_elements: Element catalog used for action targeting
        forms: Detected forms
        modals: Detected modal dialogs
        toasts: Detected toast notifications
        loading_indicators: Whether any loading indicator is active
        console_errors: Console errors accumulated since the last clear
        network_errors: Network errors accumulated since the last clear
        screenshot: Opaque visual capture, if requested
        timestamp: When the snapshot was taken
    """

    url: str = Field(default="", description="Current page location")
    title: str = Field(default="", description="Document title")
    interactive_elements: list[InteractiveElement] = Field(default_factory=list)
    forms: list[FormInfo] = Field(default_factory=list)
    modals: list[ModalInfo] = Field(default_factory=list)
    toasts: list[ToastInfo] = Field(default_factory=list)
    loading_indicators: bool = Field(default=False)
    console_errors: list[str] = Field(default_factory=list)
    network_errors: list[NetworkError] = Field(default_factory=list)
    screenshot: str | None = Field(default=None, description="Opaque visual capture")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def find_element(self, target: str) -> InteractiveElement | None:
        """Look up an element referenced by an assertion target.

        Lookup order: element id, then selector or Playwright locator
        containing the target, then text or aria-label (case-insensitive),
        then role.

        Args:
            target: Element id, selector fragment, text or role

        Returns:
            The first matching element, or None
        """
        for element in self.interactive_elements:
            if element.id == target:
                return element

        for element in self.interactive_elements:
            if target in element.selector or (
                element.playwright_locator and target in element.playwright_locator
            ):
                return element

        needle = target.lower()
        for element in self.interactive_elements:
            if needle in element.text.lower() or (
                element.aria_label and needle in element.aria_label.lower()
            ):
                return element

        for element in self.interactive_elements:
            if element.role == target:
                return element

        return None

    def summary(self) -> dict[str, object]:
        """Compact view of the snapshot for logs, without the visual capture."""
        return {
            "url": self.url,
            "title": self.title,
            "elements": len(self.interactive_elements),
            "forms": len(self.forms),
            "modals": sum(1 for m in self.modals if m.visible),
            "toasts": [f"[{t.type}] {t.message}" for t in self.toasts],
            "loading": self.loading_indicators,
            "console_errors": len(self.console_errors),
            "network_errors": len(self.network_errors),
            "has_screenshot": self.screenshot is not None,
        }
