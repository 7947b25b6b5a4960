"""Pytest configuration shared by the whole test suite.

This module provides in-memory fakes for the collaborators the core talks
to through ``probe_agents.interfaces``, and fixtures that hand out fresh
instances:

Fixtures:
- page_state: FakePageState returning queued observations
- executor: FakeExecutor succeeding unless a target is marked as failing
- oracle: FakeOracle returning queued plans and verdicts
- browser: FakeBrowser recording every driver call
- recorder: FakeRecorder keeping events in memory
- step / scenario: minimal Step and Scenario models
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from probe_agents.agents.validator.models import SemanticVerdict
from probe_agents.exceptions import FailureKind
from probe_agents.schemas.bug import DetectedBug
from probe_agents.schemas.observation import InteractiveElement, Observation
from probe_agents.schemas.plan import ActionPlan, ActionType, ExecutedAction, PlannedAction
from probe_agents.schemas.scenario import Scenario, Step

if TYPE_CHECKING:
    from probe_agents.agents.scenario_runner.models import ScenarioOutcome
    from probe_agents.schemas.failure import AttemptFailure
    from probe_agents.schemas.session import SessionEvent


# =============================================================================
# Fakes
# =============================================================================


def make_observation(url: str = "http://localhost:5173/dashboard", **kwargs: Any) -> Observation:
    """Observation with one visible button unless elements are given."""
    kwargs.setdefault(
        "interactive_elements",
        [InteractiveElement(id="el-1", type="button", selector="#save", text="Save")],
    )
    return Observation(url=url, title="Dashboard", **kwargs)


def make_plan(*targets: str, expected_outcome: str = "", confidence: float = 0.9) -> ActionPlan:
    """Plan clicking each of ``targets`` in order."""
    return ActionPlan(
        reasoning="click through",
        actions=[
            PlannedAction(type=ActionType.CLICK, target=t, description=f"Click {t}")
            for t in targets
        ],
        expected_outcome=expected_outcome,
        confidence=confidence,
    )


class FakePageState:
    """PageStateProvider returning queued observations (the last one repeats).

    Queued ``observe_errors`` are raised by the next observe() calls, one each.
    """

    def __init__(self, observations: list[Observation] | None = None) -> None:
        self.observations = observations or [make_observation()]
        self.observe_calls: list[bool] = []
        self.wait_calls: list[int] = []
        self.clear_calls = 0
        self.observe_errors: list[Exception] = []

    async def observe(
        self,
        include_visual: bool = True,
        capture_console: bool = True,
        capture_network: bool = True,
    ) -> Observation:
        self.observe_calls.append(include_visual)
        if self.observe_errors:
            raise self.observe_errors.pop(0)
        if len(self.observations) > 1:
            return self.observations.pop(0)
        return self.observations[0]

    async def wait_for_stable(self, timeout_ms: int) -> None:
        self.wait_calls.append(timeout_ms)

    async def clear_errors(self) -> None:
        self.clear_calls += 1


class FakeExecutor:
    """ActionExecutor that fails actions whose target is in ``failing``.

    Targets in ``raising`` raise their exception instead of reporting a result.
    """

    def __init__(self) -> None:
        self.failing: dict[str, str] = {}
        self.failure_kind: FailureKind | None = None
        self.raising: dict[str, Exception] = {}
        self.executed: list[PlannedAction] = []

    async def execute(self, action: PlannedAction, observation: Observation) -> ExecutedAction:
        self.executed.append(action)
        if action.target in self.raising:
            raise self.raising[action.target]
        if action.target in self.failing:
            return ExecutedAction(
                action=action,
                success=False,
                error=self.failing[action.target],
                failure_kind=self.failure_kind,
            )
        return ExecutedAction(action=action, success=True, duration_ms=1.0)


class FakeOracle:
    """DecisionOracle returning queued plans and verdicts (the last one repeats)."""

    def __init__(self) -> None:
        self.plans: list[ActionPlan] = [make_plan("el-1", expected_outcome="Saved")]
        self.verdicts: list[SemanticVerdict] = [SemanticVerdict(passed=True, reason="ok")]
        self.diagnosis: DetectedBug | None = None
        self.diagnose_error: Exception | None = None
        self.plan_error: Exception | None = None
        self.validate_error: Exception | None = None
        self.plan_calls: list[tuple[str, list[str]]] = []
        self.validate_calls: list[str] = []
        self.diagnose_calls = 0

    @staticmethod
    def _next(queue: list[Any]) -> Any:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def plan_actions(
        self, goal: str, observation: Observation, recent_actions: list[str]
    ) -> ActionPlan:
        self.plan_calls.append((goal, list(recent_actions)))
        if self.plan_error is not None:
            raise self.plan_error
        return self._next(self.plans)

    async def validate_semantic(
        self, step: Step, before: Observation, after: Observation, expected_outcome: str
    ) -> SemanticVerdict:
        self.validate_calls.append(expected_outcome)
        if self.validate_error is not None:
            raise self.validate_error
        return self._next(self.verdicts)

    async def diagnose_bug(
        self,
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
    ) -> DetectedBug:
        self.diagnose_calls += 1
        if self.diagnose_error is not None:
            raise self.diagnose_error
        if self.diagnosis is None:
            raise RuntimeError("no diagnosis configured")
        return self.diagnosis


class FakeBrowser:
    """BrowserDriver recording calls as ``(name, args)`` tuples."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.loading: list[bool] = []
        self.network_idle_error: Exception | None = None
        self.reload_error: Exception | None = None

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def navigate(self, url: str) -> None:
        self.calls.append(("navigate", (url,)))

    async def reload(self) -> None:
        self.calls.append(("reload", ()))
        if self.reload_error is not None:
            raise self.reload_error

    async def wait_for_load_state(self, state: str, timeout_ms: int) -> None:
        self.calls.append(("wait_for_load_state", (state, timeout_ms)))
        if state == "networkidle" and self.network_idle_error is not None:
            raise self.network_idle_error

    async def wait_for_timeout(self, ms: int) -> None:
        self.calls.append(("wait_for_timeout", (ms,)))

    async def press_key(self, key: str) -> None:
        self.calls.append(("press_key", (key,)))

    async def has_loading_indicator(self) -> bool:
        self.calls.append(("has_loading_indicator", ()))
        return self.loading.pop(0) if self.loading else False

    async def load_session(self, path: str) -> None:
        self.calls.append(("load_session", (path,)))


class FakeRecorder:
    """SessionRecorder keeping everything in memory."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[SessionEvent] = []
        self.outcomes: list[ScenarioOutcome] = []
        self.started: list[str] = []

    async def start_session(self, scenario_name: str) -> str:
        self.started.append(scenario_name)
        if self.fail:
            raise OSError("disk full")
        return f"session-{len(self.started)}"

    async def record(self, event: SessionEvent) -> None:
        if self.fail:
            raise OSError("disk full")
        self.events.append(event)

    async def end_session(self, outcome: ScenarioOutcome) -> None:
        if self.fail:
            raise OSError("disk full")
        self.outcomes.append(outcome)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def page_state() -> FakePageState:
    return FakePageState()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def recorder() -> FakeRecorder:
    return FakeRecorder()


@pytest.fixture
def step() -> Step:
    return Step(name="Save record", goal="Click save and see a confirmation")


@pytest.fixture
def scenario(step: Step) -> Scenario:
    return Scenario(
        name="Records",
        steps=[step, Step(name="Open list", goal="Open the records list")],
    )
