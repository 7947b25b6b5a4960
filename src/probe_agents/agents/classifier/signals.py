"""Signal detectors for failure classification.

Each detector looks at the same (error text, observation) pair and reports
a score plus indicators for one hypothesis:

- detect_app_signals: the application under test is broken
- detect_agent_signals: the agent chose a bad target or bad timing
- detect_environment_signals: network, auth, TLS or browser trouble

The error text passed in is already lower-cased.
"""

from __future__ import annotations

from probe_agents.agents.classifier.models import SignalReport
from probe_agents.schemas.observation import NetworkError, Observation

JS_ERROR_PATTERNS = (
    "typeerror",
    "referenceerror",
    "syntaxerror",
    "uncaught",
    "unhandled",
    "exception",
    "error:",
)

FRAMEWORK_ERROR_PATTERNS = (
    "react",
    "hydration",
    "warning:",
    "each child in a list",
    "invalid hook call",
    "cannot update",
    "maximum update depth",
)

RUNTIME_ERROR_PATTERNS = (
    "undefined is not",
    "cannot read property",
    "is not a function",
    "null reference",
)

NOT_FOUND_PATTERNS = ("no element", "not found", "unable to find", "could not find")
TIMEOUT_PATTERNS = ("timeout", "waiting for", "timed out")
NOT_INTERACTABLE_PATTERNS = ("not interactable", "obscured", "covered by")
INVALID_SELECTOR_PATTERNS = ("invalid selector", "syntax error")
DETACHED_PATTERNS = ("not attached", "detached", "stale element")

UNREACHABLE_PATTERNS = (
    "econnrefused",
    "enotfound",
    "connection refused",
    "dns",
    "unreachable",
)
TLS_PATTERNS = ("ssl", "tls", "certificate")
BROWSER_DISCONNECT_PATTERNS = (
    "browser has disconnected",
    "target closed",
    "context has been destroyed",
)
CONNECTION_FAILURE_PATTERNS = ("net::", "connection", "timeout", "aborted")

AUTH_STATUSES = (401, 403)


def _contains_any(text: str, patterns: tuple[str, ...]) -> bool:
    return any(p in text for p in patterns)


def is_javascript_error(console_error: str) -> bool:
    """Whether a console error looks like a JavaScript runtime error."""
    return _contains_any(console_error.lower(), JS_ERROR_PATTERNS)


def is_framework_error(console_error: str) -> bool:
    """Whether a console error looks like a rendering-framework error."""
    return _contains_any(console_error.lower(), FRAMEWORK_ERROR_PATTERNS)


def is_connection_failure(error: NetworkError) -> bool:
    """Whether a network error failed below HTTP (no response, or transport text)."""
    if not error.error:
        return False
    if not error.status:
        return True
    return _contains_any(error.error.lower(), CONNECTION_FAILURE_PATTERNS)


def _format_statuses(errors: list[NetworkError]) -> str:
    return ", ".join(f"{e.status} on {e.url}" for e in errors)


def detect_app_signals(message: str, observation: Observation) -> SignalReport:
    """Score evidence that the application under test is at fault."""
    report = SignalReport()

    server_errors = [
        e for e in observation.network_errors if e.status and 500 <= e.status < 600
    ]
    if server_errors:
        report.add(3, f"Server errors (5xx): {_format_statuses(server_errors)}")

    js_errors = [e for e in observation.console_errors if is_javascript_error(e)]
    if js_errors:
        report.add(2, f"JavaScript errors: {len(js_errors)} found")

    framework_errors = [e for e in observation.console_errors if is_framework_error(e)]
    if framework_errors:
        report.add(2, f"React errors: {len(framework_errors)} found")

    client_errors = [
        e
        for e in observation.network_errors
        if e.status and 400 <= e.status < 500 and e.status not in AUTH_STATUSES
    ]
    if client_errors:
        report.add(2, f"API errors (4xx): {_format_statuses(client_errors)}")

    if _contains_any(message, RUNTIME_ERROR_PATTERNS):
        report.add(2, "Error suggests runtime JavaScript error")

    return report


def detect_agent_signals(message: str, observation: Observation) -> SignalReport:
    """Score evidence that the agent itself is at fault."""
    report = SignalReport()

    if _contains_any(message, NOT_FOUND_PATTERNS):
        if observation.interactive_elements:
            report.add(
                2,
                "Element not found but page has interactive elements - "
                "possible selector issue",
            )
        else:
            report.add(1, "Element not found - page may be empty or still loading")

    if _contains_any(message, TIMEOUT_PATTERNS):
        if not observation.loading_indicators:
            report.add(
                2, "Timeout without loading indicators - possible timing issue in agent"
            )
        else:
            report.add(1, "Timeout with loading indicators - app may be slow")

    if _contains_any(message, NOT_INTERACTABLE_PATTERNS):
        report.add(
            2,
            "Element not interactable - agent may have selected wrong element "
            "or timing issue",
        )

    if _contains_any(message, INVALID_SELECTOR_PATTERNS):
        report.add(3, "Invalid selector syntax - agent bug in selector generation")

    if _contains_any(message, DETACHED_PATTERNS):
        report.add(2, "Element detached - action executed too quickly")

    return report


def detect_environment_signals(message: str, observation: Observation) -> SignalReport:
    """Score evidence that the environment is at fault."""
    report = SignalReport()

    connection_failures = [e for e in observation.network_errors if is_connection_failure(e)]
    if connection_failures:
        report.add(3, f"Network connection errors: {len(connection_failures)} failures")

    auth_errors = [e for e in observation.network_errors if e.status in AUTH_STATUSES]
    if auth_errors:
        report.add(2, f"Authentication errors: {len(auth_errors)} (401/403 responses)")

    if _contains_any(message, UNREACHABLE_PATTERNS):
        report.add(3, "Server unreachable or DNS failure")

    if _contains_any(message, TLS_PATTERNS):
        report.add(2, "SSL/TLS certificate error")

    if _contains_any(message, BROWSER_DISCONNECT_PATTERNS):
        report.add(2, "Browser context error - environment issue")

    return report
