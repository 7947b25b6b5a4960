"""Step state definition for the step runner workflow.

This module defines the TypedDict state schema for the LangGraph step
workflow. One graph run covers one step; the state carries everything the
phases hand to each other:

- The step, its attempt budget and the current attempt number
- The per-session action history (read for planning, appended on execution)
- The before/after observation pair and the plan of the current attempt
- The failure of the current attempt, if any, as an explicit value
- Healing records and the classified bug
"""

from __future__ import annotations

from typing import TypedDict

from probe_agents.agents.healer.models import HealingAttempt
from probe_agents.agents.validator.models import ValidationReport
from probe_agents.schemas.bug import DetectedBug
from probe_agents.schemas.failure import AttemptFailure
from probe_agents.schemas.observation import Observation
from probe_agents.schemas.plan import ActionPlan, ExecutedAction, PlannedAction
from probe_agents.schemas.scenario import Step


class StepState(TypedDict):
    """State schema for the step runner LangGraph workflow.

    Attributes:
        step: Step being run
        session_id: Owning session
        base_url: Scenario base location
        budget: Effective attempt budget (>= 1)
        attempt: Current attempt number (0 before the first attempt)
        phase: Current StepPhase value
        action_history: Session action history
        before: Observation taken at the start of the attempt
        after: Observation taken after executing the plan
        plan: Plan of the current attempt
        executed: Actions executed in the current attempt
        failed_action: Action that failed in the current attempt
        failure: Failure of the current attempt (None while it is healthy)
        validation: Validation report of the current attempt
        healing_attempts: Healing records for the whole step
        recovered: Whether the last healing recovered the page
        bug: Classified failure once the step has failed
    """

    step: Step
    session_id: str
    base_url: str
    budget: int
    attempt: int
    phase: str
    action_history: list[str]
    before: Observation | None
    after: Observation | None
    plan: ActionPlan | None
    executed: list[ExecutedAction]
    failed_action: PlannedAction | None
    failure: AttemptFailure | None
    validation: ValidationReport | None
    healing_attempts: list[HealingAttempt]
    recovered: bool
    bug: DetectedBug | None
