"""Node functions for the step runner LangGraph workflow.

Nodes (one phase each, bound to their collaborators through StepNodes):

1. observe: start an attempt, wait for stability, capture the before-observation
2. plan: ask the oracle for an ActionPlan
3. execute: run planned actions in order, stopping at the first failure
4. validate: capture the after-observation and validate the attempt
5. heal: apply the healing strategy for the failed attempt
6. classify: classify the step failure into a DetectedBug

Routing functions:
- route_on_failure: heal while attempts remain, otherwise classify
- route_after_observe / route_after_plan / route_after_execute: next phase or failure route
- route_after_validate: complete, or failure route
- route_after_heal: next attempt when recovered, otherwise classify

A phase never raises out of its node. Collaborator exceptions are turned
into an AttemptFailure stored in state, and routing reads that value.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from probe_agents.agents.healer.models import RecoveryContext
from probe_agents.agents.step_runner.models import StepPhase
from probe_agents.agents.step_runner.state import StepState
from probe_agents.exceptions import FailureKind
from probe_agents.schemas.failure import AttemptFailure
from probe_agents.schemas.observation import Observation
from probe_agents.schemas.scenario import ScreenshotMode
from probe_agents.schemas.session import EventKind

if TYPE_CHECKING:
    from probe_agents.agents.classifier.classifier import FailureClassifier
    from probe_agents.agents.healer.controller import HealingController
    from probe_agents.agents.validator.validator import StepValidator
    from probe_agents.interfaces import (
        ActionExecutor,
        BrowserDriver,
        DecisionOracle,
        PageStateProvider,
    )
    from probe_agents.recording.emitter import EventEmitter
    from probe_agents.schemas.plan import ExecutedAction, PlannedAction

logger = logging.getLogger(__name__)


# =============================================================================
# Routing Functions
# =============================================================================


def route_on_failure(state: StepState) -> str:
    """Heal while attempts remain; the final attempt goes straight to classification."""
    if state["attempt"] < state["budget"]:
        return "heal"
    return "classify"


def route_after_observe(state: StepState) -> str:
    """Route after the observing phase."""
    if state["failure"] is not None:
        return route_on_failure(state)
    return "plan"


def route_after_plan(state: StepState) -> str:
    """Route after the planning phase."""
    if state["failure"] is not None:
        return route_on_failure(state)
    return "execute"


def route_after_execute(state: StepState) -> str:
    """Route after the executing phase."""
    if state["failure"] is not None:
        return route_on_failure(state)
    return "validate"


def route_after_validate(state: StepState) -> str:
    """Route after the validating phase."""
    if state["failure"] is not None:
        return route_on_failure(state)
    return "complete"


def route_after_heal(state: StepState) -> str:
    """Start a new attempt when healing recovered the page, otherwise classify."""
    if state["recovered"]:
        return "observe"
    return "classify"


# =============================================================================
# Nodes
# =============================================================================


class StepNodes:
    """Phase nodes of the step workflow, bound to their collaborators.

    Attributes:
        page_state: Page-state provider
        executor: Action executor
        oracle: Decision oracle used for planning
        validator: Step validator
        healer: Healing controller
        classifier: Failure classifier
        events: Session event emitter
        browser: Optional browser driver used to open a step's start location
        stable_timeout_ms: Default stability-wait timeout
        history_window: Number of recent actions passed to planning
    """

    def __init__(
        self,
        page_state: PageStateProvider,
        executor: ActionExecutor,
        oracle: DecisionOracle,
        validator: StepValidator,
        healer: HealingController,
        classifier: FailureClassifier,
        events: EventEmitter,
        browser: BrowserDriver | None = None,
        stable_timeout_ms: int = 5000,
        history_window: int = 10,
    ) -> None:
        self.page_state = page_state
        self.executor = executor
        self.oracle = oracle
        self.validator = validator
        self.healer = healer
        self.classifier = classifier
        self.events = events
        self.browser = browser
        self.stable_timeout_ms = stable_timeout_ms
        self.history_window = history_window

    def _stable_timeout(self, state: StepState) -> int:
        return state["step"].timeout_ms or self.stable_timeout_ms

    async def _record_failure(
        self, state: StepState, failure: AttemptFailure
    ) -> AttemptFailure:
        logger.warning(
            "Step '%s' attempt %d/%d failed while %s: %s",
            state["step"].name,
            failure.attempt,
            state["budget"],
            failure.phase,
            failure.message,
        )
        await self.events.emit(
            state["session_id"],
            EventKind.ERROR,
            state["step"].name,
            failure.attempt,
            {
                "kind": failure.kind.value,
                "phase": failure.phase,
                "message": failure.message,
            },
        )
        return failure

    async def observe(self, state: StepState) -> dict[str, Any]:
        """Start a new attempt and capture the before-observation."""
        step = state["step"]
        attempt = state["attempt"] + 1
        logger.info(
            "Step '%s': attempt %d/%d", step.name, attempt, state["budget"]
        )
        await self.events.emit(
            state["session_id"],
            EventKind.ATTEMPT_START,
            step.name,
            attempt,
            {"budget": state["budget"]},
        )

        update: dict[str, Any] = {
            "attempt": attempt,
            "phase": StepPhase.OBSERVING.value,
            "before": None,
            "after": None,
            "plan": None,
            "executed": [],
            "failed_action": None,
            "failure": None,
            "validation": None,
            "recovered": False,
        }

        try:
            start_location = step.start_location(state["base_url"])
            if start_location and self.browser is not None:
                await self.browser.navigate(start_location)
            await self.page_state.wait_for_stable(self._stable_timeout(state))
            observation = await self.page_state.observe(include_visual=True)
        except Exception as e:
            update["failure"] = await self._record_failure(
                state,
                AttemptFailure.from_exception(e, StepPhase.OBSERVING.value, attempt),
            )
            return update

        await self.events.emit(
            state["session_id"],
            EventKind.OBSERVATION,
            step.name,
            attempt,
            observation.summary(),
        )
        update["before"] = observation
        return update

    async def plan(self, state: StepState) -> dict[str, Any]:
        """Ask the oracle for a plan toward the step goal."""
        step = state["step"]
        attempt = state["attempt"]
        recent = state["action_history"][-self.history_window :]
        update: dict[str, Any] = {"phase": StepPhase.PLANNING.value}

        try:
            plan = await self.oracle.plan_actions(step.goal, state["before"], recent)
        except Exception as e:
            update["failure"] = await self._record_failure(
                state,
                AttemptFailure.from_exception(e, StepPhase.PLANNING.value, attempt),
            )
            return update

        logger.info(
            "Step '%s': planned %d action(s) (confidence %.2f)",
            step.name,
            len(plan.actions),
            plan.confidence,
        )
        await self.events.emit(
            state["session_id"],
            EventKind.PLAN,
            step.name,
            attempt,
            plan.model_dump(mode="json"),
        )
        update["plan"] = plan
        return update

    async def execute(self, state: StepState) -> dict[str, Any]:
        """Run the planned actions in order, aborting at the first failure."""
        step = state["step"]
        attempt = state["attempt"]
        plan = state["plan"]
        observation = state["before"]
        history = list(state["action_history"])
        executed: list[ExecutedAction] = []
        update: dict[str, Any] = {"phase": StepPhase.EXECUTING.value}

        failure: AttemptFailure | None = None
        failed_action: PlannedAction | None = None
        for action in plan.actions if plan else []:
            try:
                result = await self.executor.execute(action, observation)
            except Exception as e:
                failure = AttemptFailure.from_exception(e, StepPhase.EXECUTING.value, attempt)
                failed_action = action
                history.append(action.describe())
                break

            executed.append(result)
            history.append(action.describe())
            await self.events.emit(
                state["session_id"],
                EventKind.ACTION,
                step.name,
                attempt,
                {
                    "description": action.describe(),
                    "success": result.success,
                    "duration_ms": result.duration_ms,
                    "error": result.error,
                },
            )
            if not result.success:
                failure = AttemptFailure(
                    kind=result.failure_kind or FailureKind.EXECUTION,
                    message=result.error or f"Action failed: {action.describe()}",
                    phase=StepPhase.EXECUTING.value,
                    attempt=attempt,
                )
                failed_action = action
                break

        if failure is None:
            try:
                await self.page_state.wait_for_stable(self._stable_timeout(state))
            except Exception as e:
                failure = AttemptFailure.from_exception(e, StepPhase.EXECUTING.value, attempt)

        update["action_history"] = history
        update["executed"] = executed
        if failure is not None:
            update["failure"] = await self._record_failure(state, failure)
            update["failed_action"] = failed_action
        return update

    async def validate(self, state: StepState) -> dict[str, Any]:
        """Capture the after-observation and validate the attempt."""
        step = state["step"]
        attempt = state["attempt"]
        plan = state["plan"]
        update: dict[str, Any] = {"phase": StepPhase.VALIDATING.value}

        try:
            after = await self.page_state.observe(
                include_visual=step.screenshot != ScreenshotMode.NEVER
            )
            update["after"] = after
            report = await self.validator.validate(
                step,
                state["before"],
                after,
                plan.expected_outcome if plan else step.goal,
            )
            update["validation"] = report
            report.raise_for_failure()
        except Exception as e:
            update["failure"] = await self._record_failure(
                state,
                AttemptFailure.from_exception(e, StepPhase.VALIDATING.value, attempt),
            )
            return update

        logger.info("Step '%s' passed on attempt %d", step.name, attempt)
        await self.events.emit(
            state["session_id"],
            EventKind.SUCCESS,
            step.name,
            attempt,
            {"reason": report.reason},
        )
        update["phase"] = StepPhase.COMPLETE.value
        return update

    async def heal(self, state: StepState) -> dict[str, Any]:
        """Apply the healing strategy for the failed attempt."""
        step = state["step"]
        attempt = state["attempt"]
        failure = state["failure"]

        context = RecoveryContext(
            step=step,
            error=failure.message if failure else "",
            base_url=state["base_url"],
            observation=state["after"] or state["before"],
            plan=state["plan"],
            failed_action=state["failed_action"],
        )
        healing = await self.healer.heal(context, attempt)

        await self.events.emit(
            state["session_id"],
            EventKind.HEALING,
            step.name,
            attempt,
            {
                "strategy": healing.strategy.value,
                "recovered": healing.recovered,
                "message": healing.message,
            },
        )

        update: dict[str, Any] = {
            "phase": StepPhase.HEALING.value,
            "healing_attempts": [*state["healing_attempts"], healing],
            "recovered": healing.recovered,
        }
        if healing.recovered:
            update["action_history"] = [
                *state["action_history"],
                f"[Healing:{healing.strategy.value}] {healing.message}",
            ]
        else:
            logger.warning(
                "Healing strategy %s did not recover step '%s': %s",
                healing.strategy.value,
                step.name,
                healing.message,
            )
        return update

    async def classify(self, state: StepState) -> dict[str, Any]:
        """Classify the step failure into a DetectedBug."""
        step = state["step"]
        failure = state["failure"]
        if failure is None:
            # Only reachable through a failure route
            failure = AttemptFailure(
                kind=FailureKind.UNEXPECTED,
                message="Step failed without a recorded error",
                phase=StepPhase.FAILED.value,
                attempt=max(1, state["attempt"]),
            )

        try:
            observation = await self.page_state.observe(
                include_visual=step.screenshot != ScreenshotMode.NEVER
            )
        except Exception as e:
            logger.warning(
                "Could not capture failure observation for step '%s': %s", step.name, e
            )
            observation = state["after"] or state["before"] or Observation()

        bug = await self.classifier.classify(
            step,
            failure,
            observation,
            state["action_history"],
            state["session_id"],
        )
        logger.info(
            "Step '%s' failed: %s (%s, confidence %.2f)",
            step.name,
            bug.title,
            bug.classification.value,
            bug.confidence,
        )
        await self.events.emit(
            state["session_id"],
            EventKind.BUG,
            step.name,
            state["attempt"],
            bug.model_dump(mode="json", exclude={"screenshots"}),
        )
        return {"phase": StepPhase.FAILED.value, "bug": bug, "failure": failure}
