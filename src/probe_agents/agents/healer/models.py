"""Pydantic models for the healing controller.

- HealingStrategy: the five recovery procedures
- RecoveryContext: what a strategy needs to know about the failed attempt
- RecoveryResult: what a strategy reports back
- HealingAttempt: the record kept on the step outcome
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from probe_agents.schemas.observation import Observation
from probe_agents.schemas.plan import ActionPlan, PlannedAction
from probe_agents.schemas.scenario import Step


class HealingStrategy(str, Enum):
    """Recovery procedures, in escalation order.

    - WAIT_AND_RETRY: let loading finish, then settle
    - ALTERNATIVE_SELECTOR: ask the oracle for another way to the same outcome
    - REFRESH_AND_RETRY: reload the page and settle
    - SCREENSHOT_ANALYSIS: ask the oracle to diagnose the page and re-plan
    - RESET_TO_KNOWN_STATE: go back to the step's start location
    """

    WAIT_AND_RETRY = "wait_and_retry"
    ALTERNATIVE_SELECTOR = "alternative_selector"
    REFRESH_AND_RETRY = "refresh_and_retry"
    SCREENSHOT_ANALYSIS = "screenshot_analysis"
    RESET_TO_KNOWN_STATE = "reset_to_known_state"


class RecoveryContext(BaseModel):
    """Inputs for applying a recovery strategy.

    Attributes:
        step: Step whose attempt failed
        error: Failure text of the attempt
        base_url: Scenario base location
        observation: Latest observation before the failure, if any
        plan: Plan of the failed attempt, if planning got that far
        failed_action: Action that failed, if the failure was in execution
    """

    step: Step
    error: str
    base_url: str = ""
    observation: Observation | None = None
    plan: ActionPlan | None = None
    failed_action: PlannedAction | None = None

    @property
    def expected_outcome(self) -> str:
        """Expected outcome of the failed plan, falling back to the step goal."""
        if self.plan and self.plan.expected_outcome:
            return self.plan.expected_outcome
        return self.step.goal


class RecoveryResult(BaseModel):
    """Outcome of one recovery strategy.

    Attributes:
        success: Whether the page is believed recovered
        message: Human-readable summary
        updated_plan: Revised plan proposed by the oracle, if any
        new_observation: Fresh observation taken by the strategy, if any
    """

    success: bool
    message: str = ""
    updated_plan: ActionPlan | None = None
    new_observation: Observation | None = None


class HealingAttempt(BaseModel):
    """Record of a healing invocation for one failed attempt."""

    model_config = ConfigDict(frozen=True)

    attempt: int = Field(ge=1, description="1-based attempt that failed")
    strategy: HealingStrategy
    recovered: bool
    message: str = ""
    updated_plan: ActionPlan | None = None
    new_observation: Observation | None = None
