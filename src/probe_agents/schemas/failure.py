"""Explicit failure value carried between step phases."""

from __future__ import annotations

import asyncio

from pydantic import BaseModel, ConfigDict, Field

from probe_agents.exceptions import FailureKind, ProbeError


class AttemptFailure(BaseModel):
    """Why an attempt failed.

    Attributes:
        kind: Taxonomy kind, used by heuristics and logs only
        message: Error text inspected by healing and classification
        phase: Phase the failure happened in (observing, planning, ...)
        attempt: 1-based attempt number
    """

    model_config = ConfigDict(frozen=True)

    kind: FailureKind
    message: str
    phase: str
    attempt: int = Field(ge=1)

    @classmethod
    def from_exception(cls, exc: BaseException, phase: str, attempt: int) -> AttemptFailure:
        """Convert an exception raised inside a phase into a failure value."""
        if isinstance(exc, ProbeError):
            kind = exc.kind
        elif isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
            kind = FailureKind.TRANSIENT_STATE
        else:
            kind = FailureKind.UNEXPECTED
        message = str(exc) or type(exc).__name__
        return cls(kind=kind, message=message, phase=phase, attempt=attempt)
