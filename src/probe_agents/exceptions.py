"""
Exception taxonomy for the Probe agent.

Every failure raised by a collaborator during an attempt maps onto one of
six kinds. The step runner treats all of them the same way (an attempt
failure); the kind only feeds the failure classifier's heuristics and the
session log.

Kinds:
- TRANSIENT_STATE: stability or timeout waits ran out
- TARGET_RESOLUTION: element or selector not found, or stale
- EXECUTION: applying an action to the page failed
- VALIDATION: assertions or the semantic check failed
- ORACLE: the decision oracle failed or returned unusable output
- ENVIRONMENT: connectivity, auth, TLS or browser-session failure
- UNEXPECTED: anything raised outside the taxonomy
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Kind of attempt failure."""

    TRANSIENT_STATE = "transient_state"
    TARGET_RESOLUTION = "target_resolution"
    EXECUTION = "execution"
    VALIDATION = "validation"
    ORACLE = "oracle"
    ENVIRONMENT = "environment"
    UNEXPECTED = "unexpected"


class ProbeError(Exception):
    """Base exception for all Probe agent errors."""

    kind: FailureKind = FailureKind.UNEXPECTED

    def __init__(self, message: str = "Probe agent error") -> None:
        self.message = message
        super().__init__(self.message)


class TransientStateError(ProbeError):
    """Raised when waiting for page stability or a network state times out."""

    kind = FailureKind.TRANSIENT_STATE

    def __init__(self, message: str = "Page did not reach a stable state") -> None:
        super().__init__(message)


class TargetResolutionError(ProbeError):
    """Raised when an action target cannot be resolved to a live element."""

    kind = FailureKind.TARGET_RESOLUTION

    def __init__(self, message: str = "Target element not found") -> None:
        super().__init__(message)


class ExecutionError(ProbeError):
    """Raised when applying an action to the page fails."""

    kind = FailureKind.EXECUTION

    def __init__(self, message: str = "Action execution failed") -> None:
        super().__init__(message)


class ValidationFailure(ProbeError):
    """Raised when assertions or the semantic outcome check fail."""

    kind = FailureKind.VALIDATION

    def __init__(self, message: str = "Validation failed") -> None:
        super().__init__(message)


class OracleError(ProbeError):
    """Raised when the decision oracle fails or returns unusable output."""

    kind = FailureKind.ORACLE

    def __init__(self, message: str = "Decision oracle failed") -> None:
        super().__init__(message)


class EnvironmentIssueError(ProbeError):
    """Raised on connectivity, auth, TLS or browser-session failures."""

    kind = FailureKind.ENVIRONMENT

    def __init__(self, message: str = "Environment failure") -> None:
        super().__init__(message)


class ScenarioLoadError(ProbeError):
    """Raised when a scenario file cannot be read or fails validation."""

    def __init__(self, message: str = "Invalid scenario file") -> None:
        super().__init__(message)


class ConfigurationError(ProbeError):
    """Raised when the settings file or environment overrides are invalid."""

    def __init__(self, message: str = "Invalid configuration") -> None:
        super().__init__(message)
