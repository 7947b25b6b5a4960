"""Pydantic models for detected bugs."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from probe_agents.schemas.observation import NetworkError


class BugClassification(str, Enum):
    """Hypothesis about what caused a failure."""

    APP_BUG = "app_bug"
    AGENT_BUG = "agent_bug"
    ENVIRONMENT_ISSUE = "environment_issue"
    UNKNOWN = "unknown"


class Severity(str, Enum):
    """Bug severity."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DetectedBug(BaseModel):
    """A classified failure, produced at most once per step.

    The classification fields come from heuristics or the oracle; the
    enrichment fields (url through session_id) are filled afterwards from
    the triggering observation via ``model_copy``.

    Attributes:
        classification: app_bug, agent_bug, environment_issue or unknown
        confidence: Certainty in [0, 1], clamped on construction
        title: Short issue title
        description: Detailed explanation
        severity: critical, high, medium or low
        reproduction_steps: Ordered steps to reproduce
        expected_behavior: What should have happened
        actual_behavior: What actually happened
        url: Page location when the failure was observed
        screenshots: Visual captures attached to the failure
        console_errors: Console errors accumulated at failure time
        network_errors: Network errors accumulated at failure time
        timestamp: When the bug was recorded
        session_id: Owning session
    """

    model_config = ConfigDict(frozen=True)

    classification: BugClassification = BugClassification.UNKNOWN
    confidence: float = 0.0
    title: str = ""
    description: str = ""
    severity: Severity = Severity.LOW
    reproduction_steps: list[str] = Field(default_factory=list)
    expected_behavior: str = ""
    actual_behavior: str = ""
    url: str = ""
    screenshots: list[str] = Field(default_factory=list)
    console_errors: list[str] = Field(default_factory=list)
    network_errors: list[NetworkError] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    session_id: str = ""

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, value: float | int | str | None) -> float:
        """Clamp confidence into [0, 1]."""
        if value is None:
            return 0.0
        return min(1.0, max(0.0, float(value)))
