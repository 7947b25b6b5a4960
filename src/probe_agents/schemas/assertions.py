"""Typed assertion variants evaluated against an Observation.

Each assertion kind is its own pydantic model with a ``type`` literal, and
``Assertion`` is the discriminated union over them. Evaluation lives on the
variant (``check``), so adding a kind means adding a class; there is no
dispatch switch to keep in sync.

Kinds:
- url: compare the current location
- element_exists: element is visible (or absent with ``not_equals``)
- element_text: compare an element's visible text
- element_value: compare an input's current value
- toast: any toast message matches
- no_errors: no console or network errors accumulated
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from probe_agents.schemas.observation import Observation

logger = logging.getLogger(__name__)


class Operator(str, Enum):
    """Comparison operators for assertions."""

    EQUALS = "equals"
    CONTAINS = "contains"
    MATCHES = "matches"
    NOT_EQUALS = "not_equals"


def compare(actual: str, expected: str, operator: Operator) -> bool:
    """Compare two strings with an assertion operator.

    ``matches`` is a regular-expression search; an invalid pattern never matches.
    """
    if operator == Operator.EQUALS:
        return actual == expected
    if operator == Operator.CONTAINS:
        return expected in actual
    if operator == Operator.NOT_EQUALS:
        return actual != expected
    try:
        return re.search(expected, actual) is not None
    except re.error:
        logger.warning("Invalid assertion pattern: %s", expected)
        return False


class AssertionCheck(BaseModel):
    """Outcome of evaluating one assertion."""

    passed: bool
    message: str


class _AssertionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    target: str = Field(default="", description="Element reference for element assertions")
    value: str = Field(default="", description="Expected value")


class UrlAssertion(_AssertionBase):
    """The current URL compared against ``value``."""

    type: Literal["url"] = "url"
    operator: Operator = Operator.CONTAINS

    def check(self, observation: Observation) -> AssertionCheck:
        passed = compare(observation.url, self.value, self.operator)
        if passed:
            return AssertionCheck(passed=True, message=f'URL {self.operator.value} "{self.value}"')
        return AssertionCheck(
            passed=False,
            message=(
                f'URL assertion failed: expected "{observation.url}" to '
                f'{self.operator.value} "{self.value}"'
            ),
        )


class ElementExistsAssertion(_AssertionBase):
    """An element is visible, or absent when ``operator`` is ``not_equals``."""

    type: Literal["element_exists"] = "element_exists"
    operator: Operator = Operator.EQUALS

    def check(self, observation: Observation) -> AssertionCheck:
        element = observation.find_element(self.target)
        should_exist = self.operator != Operator.NOT_EQUALS
        exists = element is not None and element.visible
        passed = exists if should_exist else not exists

        if passed:
            state = "exists" if should_exist else "does not exist"
            return AssertionCheck(passed=True, message=f'Element "{self.target}" {state}')
        problem = (
            "not found or not visible" if should_exist else "should not exist but was found"
        )
        return AssertionCheck(
            passed=False,
            message=f'Element assertion failed: "{self.target}" {problem}',
        )


class ElementTextAssertion(_AssertionBase):
    """An element's visible text compared against ``value``."""

    type: Literal["element_text"] = "element_text"
    operator: Operator = Operator.CONTAINS

    def check(self, observation: Observation) -> AssertionCheck:
        element = observation.find_element(self.target)
        if element is None:
            return AssertionCheck(
                passed=False,
                message=f'Element text assertion failed: element "{self.target}" not found',
            )
        passed = compare(element.text, self.value, self.operator)
        if passed:
            return AssertionCheck(
                passed=True,
                message=f'Element "{self.target}" text {self.operator.value} "{self.value}"',
            )
        return AssertionCheck(
            passed=False,
            message=(
                f'Element text assertion failed: expected text "{element.text}" to '
                f'{self.operator.value} "{self.value}"'
            ),
        )


class ElementValueAssertion(_AssertionBase):
    """An input's current value compared against ``value``."""

    type: Literal["element_value"] = "element_value"
    operator: Operator = Operator.EQUALS

    def check(self, observation: Observation) -> AssertionCheck:
        element = observation.find_element(self.target)
        if element is None:
            return AssertionCheck(
                passed=False,
                message=f'Element value assertion failed: element "{self.target}" not found',
            )
        actual = element.value or ""
        passed = compare(actual, self.value, self.operator)
        if passed:
            return AssertionCheck(
                passed=True,
                message=f'Element "{self.target}" value {self.operator.value} "{self.value}"',
            )
        return AssertionCheck(
            passed=False,
            message=(
                f'Element value assertion failed: expected value "{actual}" to '
                f'{self.operator.value} "{self.value}"'
            ),
        )


class ToastAssertion(_AssertionBase):
    """Some toast message compared against ``value``."""

    type: Literal["toast"] = "toast"
    operator: Operator = Operator.CONTAINS

    def check(self, observation: Observation) -> AssertionCheck:
        if any(compare(t.message, self.value, self.operator) for t in observation.toasts):
            return AssertionCheck(
                passed=True,
                message=f'Toast message {self.operator.value} "{self.value}"',
            )
        found = ", ".join(f'"{t.message}"' for t in observation.toasts) or "none"
        return AssertionCheck(
            passed=False,
            message=(
                f"Toast assertion failed: no toast message {self.operator.value} "
                f'"{self.value}". Found toasts: {found}'
            ),
        )


class NoErrorsAssertion(_AssertionBase):
    """No console or network errors have accumulated."""

    type: Literal["no_errors"] = "no_errors"
    operator: Operator = Operator.EQUALS

    def check(self, observation: Observation) -> AssertionCheck:
        console = observation.console_errors
        network = observation.network_errors
        if not console and not network:
            return AssertionCheck(
                passed=True, message="No console or network errors detected"
            )

        details: list[str] = []
        if console:
            details.append(f"Console errors: {'; '.join(console[:3])}{_more(len(console))}")
        if network:
            shown = "; ".join(
                f"{e.url}: {e.status if e.status is not None else e.error}"
                for e in network[:3]
            )
            details.append(f"Network errors: {shown}{_more(len(network))}")
        return AssertionCheck(
            passed=False, message=f"Errors detected: {'. '.join(details)}"
        )


def _more(count: int) -> str:
    return f" (+{count - 3} more)" if count > 3 else ""


Assertion = Annotated[
    UrlAssertion
    | ElementExistsAssertion
    | ElementTextAssertion
    | ElementValueAssertion
    | ToastAssertion
    | NoErrorsAssertion,
    Field(discriminator="type"),
]
