"""Collaborator contracts consumed by the step and scenario runners.

The core never talks to a browser or a model directly; it goes through
these protocols. Concrete implementations live in ``probe_agents.browser``,
``probe_agents.oracle`` and ``probe_agents.recording``; tests substitute
in-memory fakes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from probe_agents.agents.scenario_runner.models import ScenarioOutcome
    from probe_agents.agents.validator.models import SemanticVerdict
    from probe_agents.schemas.bug import DetectedBug
    from probe_agents.schemas.failure import AttemptFailure
    from probe_agents.schemas.observation import Observation
    from probe_agents.schemas.plan import ActionPlan, ExecutedAction, PlannedAction
    from probe_agents.schemas.scenario import Step
    from probe_agents.schemas.session import SessionEvent


# =============================================================================
# Page and Browser
# =============================================================================


class PageStateProvider(Protocol):
    """Produces observations of the live page."""

    async def observe(
        self,
        include_visual: bool = True,
        capture_console: bool = True,
        capture_network: bool = True,
    ) -> Observation:
        """Snapshot the current page state."""
        ...

    async def wait_for_stable(self, timeout_ms: int) -> None:
        """Wait until no loading indicator is active, bounded by ``timeout_ms``."""
        ...

    async def clear_errors(self) -> None:
        """Forget accumulated console and network errors."""
        ...


class ActionExecutor(Protocol):
    """Applies planned actions to the page."""

    async def execute(self, action: PlannedAction, observation: Observation) -> ExecutedAction:
        """Resolve the action target against ``observation`` and perform the action."""
        ...


class BrowserDriver(Protocol):
    """Low-level page control used by healing strategies and scenario setup."""

    async def navigate(self, url: str) -> None:
        """Go to ``url``."""
        ...

    async def reload(self) -> None:
        """Reload the current page."""
        ...

    async def wait_for_load_state(self, state: str, timeout_ms: int) -> None:
        """Wait for a Playwright load state (load, domcontentloaded, networkidle)."""
        ...

    async def wait_for_timeout(self, ms: int) -> None:
        """Sleep on the page clock."""
        ...

    async def press_key(self, key: str) -> None:
        """Press a keyboard key on the page."""
        ...

    async def has_loading_indicator(self) -> bool:
        """Whether any loading indicator is currently visible."""
        ...

    async def load_session(self, path: str) -> None:
        """Restore a saved browser session (cookies and storage)."""
        ...


# =============================================================================
# Decision Oracle
# =============================================================================


class DecisionOracle(Protocol):
    """Plans actions, judges outcomes and diagnoses failures."""

    async def plan_actions(
        self, goal: str, observation: Observation, recent_actions: list[str]
    ) -> ActionPlan:
        """Propose an action plan toward ``goal``."""
        ...

    async def validate_semantic(
        self,
        step: Step,
        before: Observation,
        after: Observation,
        expected_outcome: str,
    ) -> SemanticVerdict:
        """Judge whether the expected outcome was reached."""
        ...

    async def diagnose_bug(
        self,
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
    ) -> DetectedBug:
        """Classify a failure; the result is not yet enriched."""
        ...


# =============================================================================
# Session Recording
# =============================================================================


class SessionRecorder(Protocol):
    """Append-only sink for lifecycle events."""

    async def start_session(self, scenario_name: str) -> str:
        """Open a session and return its identifier."""
        ...

    async def record(self, event: SessionEvent) -> None:
        """Append one event."""
        ...

    async def end_session(self, outcome: ScenarioOutcome) -> None:
        """Close the session with its final outcome."""
        ...
