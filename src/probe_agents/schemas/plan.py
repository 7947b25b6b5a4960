"""Pydantic models for action plans and executed actions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from probe_agents.exceptions import FailureKind


class ActionType(str, Enum):
    """Interactions the executor knows how to perform."""

    CLICK = "click"
    FILL = "fill"
    SELECT = "select"
    CHECK = "check"
    UNCHECK = "uncheck"
    HOVER = "hover"
    PRESS = "press"
    SCROLL = "scroll"
    WAIT = "wait"
    NAVIGATE = "navigate"


class WaitType(str, Enum):
    """Conditions an action can wait on after it runs."""

    URL = "url"
    ELEMENT = "element"
    NETWORK = "network"
    TIME = "time"
    TEXT = "text"


class WaitCondition(BaseModel):
    """Condition to wait for after an action.

    Attributes:
        type: What to wait on
        value: URL pattern, selector, load state, milliseconds or text
        timeout_ms: Upper bound for the wait
    """

    type: WaitType
    value: str = ""
    timeout_ms: int = Field(default=5000, gt=0)


class PlannedAction(BaseModel):
    """A single interaction proposed by the decision oracle."""

    type: ActionType
    target: str = Field(default="", description="Element id, selector or special target")
    value: str | None = Field(default=None, description="Value for fill/select/press")
    description: str = Field(default="", description="What this action does")
    wait_after: WaitCondition | None = Field(default=None)

    def describe(self) -> str:
        """Render the action-history entry for this action."""
        text = f"{self.type.value} on {self.target}"
        if self.value:
            text += f' with "{self.value}"'
        return text


class ActionPlan(BaseModel):
    """Oracle-produced plan for achieving a step goal.

    Attributes:
        reasoning: Oracle's justification (opaque to the core)
        actions: Ordered actions to execute
        expected_outcome: What should be true after the actions
        confidence: Oracle confidence, clamped into [0, 1]
        alternative_strategies: Backup approaches suggested by the oracle
    """

    reasoning: str = Field(default="", description="Oracle justification")
    actions: list[PlannedAction] = Field(default_factory=list)
    expected_outcome: str = Field(default="", description="Expected outcome")
    confidence: float = Field(default=0.0, description="Confidence in [0, 1]")
    alternative_strategies: list[str] = Field(default_factory=list)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: float | int | str | None) -> float:
        """Clamp confidence into [0, 1]."""
        if value is None:
            return 0.0
        return min(1.0, max(0.0, float(value)))


class ExecutedAction(BaseModel):
    """Result of applying one PlannedAction.

    Attributes:
        action: The action that was attempted
        success: Whether it completed
        duration_ms: Wall-clock duration
        error: Failure text when unsuccessful
        failure_kind: Taxonomy kind of the failure, when the executor knows it
        screenshot: Visual capture taken on failure
    """

    action: PlannedAction
    success: bool
    duration_ms: float = Field(default=0.0, ge=0.0)
    error: str | None = None
    failure_kind: FailureKind | None = None
    screenshot: str | None = None
