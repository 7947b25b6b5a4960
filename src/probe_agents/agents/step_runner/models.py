"""Pydantic models for the step runner.

- StepPhase: lifecycle phases of one step
- ExecutionContext: per-session values threaded from step to step
- StepOutcome: immutable result of running one step
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from probe_agents.agents.healer.models import HealingAttempt
from probe_agents.schemas.bug import DetectedBug


class StepPhase(str, Enum):
    """Phases of the step state machine.

    idle -> observing -> planning -> executing -> validating
         -> complete | healing (back to observing) | failed
    """

    IDLE = "idle"
    OBSERVING = "observing"
    PLANNING = "planning"
    EXECUTING = "executing"
    VALIDATING = "validating"
    HEALING = "healing"
    COMPLETE = "complete"
    FAILED = "failed"


class ExecutionContext(BaseModel):
    """Values that outlive a single step.

    Attributes:
        session_id: Owning session
        base_url: Scenario base location
        action_history: Action descriptions recorded so far in the session
    """

    model_config = ConfigDict(frozen=True)

    session_id: str = ""
    base_url: str = ""
    action_history: list[str] = Field(default_factory=list)

    def with_history(self, action_history: list[str]) -> ExecutionContext:
        """Copy of this context carrying ``action_history``."""
        return self.model_copy(update={"action_history": list(action_history)})


class StepOutcome(BaseModel):
    """Result of running one step.

    Attributes:
        step_name: Step that ran
        passed: Whether validation passed on some attempt
        attempts: Attempts consumed
        budget: Effective attempt budget
        budget_exhausted: Whether the step failed with every attempt used
        healing_attempts: Healing invocations, in order
        bugs: Zero or one classified failure
        error: Failure text of the last attempt when the step failed
        duration_ms: Wall-clock duration
        action_history: Session action history after the step
    """

    model_config = ConfigDict(frozen=True)

    step_name: str
    passed: bool
    attempts: int = Field(ge=0)
    budget: int = Field(ge=1)
    budget_exhausted: bool = False
    healing_attempts: list[HealingAttempt] = Field(default_factory=list)
    bugs: list[DetectedBug] = Field(default_factory=list, max_length=1)
    error: str | None = None
    duration_ms: float = Field(default=0.0, ge=0.0)
    action_history: list[str] = Field(default_factory=list)
