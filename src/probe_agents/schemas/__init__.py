"""Shared data models for the Probe agent.

Key Components:
- Scenario, Step, SetupConfig, AuthConfig, TeardownConfig: loaded scenarios
- Assertion variants: typed predicates over an Observation
- Observation and its parts: page-state snapshots
- ActionPlan, PlannedAction, ExecutedAction: oracle plans and their results
- DetectedBug: classified failures
- AttemptFailure: failure value carried between step phases
- SessionEvent: lifecycle events for the session recorder
"""

from probe_agents.schemas.assertions import (
    Assertion,
    AssertionCheck,
    ElementExistsAssertion,
    ElementTextAssertion,
    ElementValueAssertion,
    NoErrorsAssertion,
    Operator,
    ToastAssertion,
    UrlAssertion,
)
from probe_agents.schemas.bug import BugClassification, DetectedBug, Severity
from probe_agents.schemas.failure import AttemptFailure
from probe_agents.schemas.observation import (
    FormField,
    FormInfo,
    InteractiveElement,
    ModalInfo,
    NetworkError,
    Observation,
    ToastInfo,
)
from probe_agents.schemas.plan import (
    ActionPlan,
    ActionType,
    ExecutedAction,
    PlannedAction,
    WaitCondition,
    WaitType,
)
from probe_agents.schemas.scenario import (
    AuthConfig,
    AuthType,
    Scenario,
    ScreenshotMode,
    SetupConfig,
    Step,
    TeardownConfig,
)
from probe_agents.schemas.session import EventKind, SessionEvent

__all__ = [
    "ActionPlan",
    "ActionType",
    "Assertion",
    "AssertionCheck",
    "AttemptFailure",
    "AuthConfig",
    "AuthType",
    "BugClassification",
    "DetectedBug",
    "ElementExistsAssertion",
    "ElementTextAssertion",
    "ElementValueAssertion",
    "EventKind",
    "ExecutedAction",
    "FormField",
    "FormInfo",
    "InteractiveElement",
    "ModalInfo",
    "NetworkError",
    "NoErrorsAssertion",
    "Observation",
    "Operator",
    "PlannedAction",
    "Scenario",
    "ScreenshotMode",
    "SessionEvent",
    "SetupConfig",
    "Severity",
    "Step",
    "TeardownConfig",
    "ToastAssertion",
    "ToastInfo",
    "UrlAssertion",
    "WaitCondition",
    "WaitType",
]
