"""Fire-and-forget forwarding of lifecycle events to a session recorder.

Recording is a logging concern: a recorder that raises must never change a
retry decision or a step outcome, so every call here logs and carries on.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from probe_agents.schemas.session import EventKind, SessionEvent

if TYPE_CHECKING:
    from probe_agents.agents.scenario_runner.models import ScenarioOutcome
    from probe_agents.interfaces import SessionRecorder

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    """Timestamped session identifier, e.g. ``20250101-120000-1a2b3c``."""
    return f"{datetime.now(UTC):%Y%m%d-%H%M%S}-{uuid4().hex[:6]}"


class EventEmitter:
    """Forwards events to an optional SessionRecorder, isolating its failures.

    Attributes:
        recorder: Recorder to forward to; None disables recording
    """

    def __init__(self, recorder: SessionRecorder | None = None) -> None:
        self.recorder = recorder

    async def start_session(self, scenario_name: str) -> str:
        """Open a recorder session, falling back to a local id if it fails."""
        if self.recorder is None:
            return new_session_id()
        try:
            return await self.recorder.start_session(scenario_name)
        except Exception as e:
            logger.warning("Session recorder failed to start session: %s", e)
            return new_session_id()

    async def emit(
        self,
        session_id: str,
        kind: EventKind,
        step_name: str | None = None,
        attempt: int | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Record one lifecycle event."""
        if self.recorder is None:
            return
        event = SessionEvent(
            session_id=session_id,
            kind=kind,
            step_name=step_name,
            attempt=attempt,
            payload=payload or {},
        )
        try:
            await self.recorder.record(event)
        except Exception as e:
            logger.warning("Session recorder failed on %s event: %s", kind.value, e)

    async def end_session(self, outcome: ScenarioOutcome) -> None:
        """Close the recorder session."""
        if self.recorder is None:
            return
        try:
            await self.recorder.end_session(outcome)
        except Exception as e:
            logger.warning("Session recorder failed to end session: %s", e)
