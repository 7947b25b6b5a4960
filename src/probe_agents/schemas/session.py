"""Lifecycle events forwarded to the session recorder."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventKind(str, Enum):
    """Lifecycle milestones reported during a scenario run."""

    SESSION_START = "session_start"
    STEP_START = "step_start"
    ATTEMPT_START = "attempt_start"
    OBSERVATION = "observation"
    PLAN = "plan"
    ACTION = "action"
    HEALING = "healing"
    SUCCESS = "success"
    ERROR = "error"
    BUG = "bug"
    SESSION_END = "session_end"


class SessionEvent(BaseModel):
    """One append-only session log entry.

    Attributes:
        session_id: Owning session
        kind: Lifecycle milestone
        step_name: Step the event belongs to, if any
        attempt: Attempt number, if any
        payload: JSON-serialisable event data
        timestamp: When the event happened
    """

    session_id: str
    kind: EventKind
    step_name: str | None = None
    attempt: int | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
