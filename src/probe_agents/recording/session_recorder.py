"""
JSONL session recorder.

Layout under ``log_dir``::

    <session_id>/
        events.jsonl   one SessionEvent per line, appended as they happen
        session.json   outcome summary written when the session ends

Visual captures are dropped from event payloads; observations are logged
through ``Observation.summary()`` upstream, and any stray ``screenshot`` keys
are stripped here.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from probe_agents.recording.emitter import new_session_id

if TYPE_CHECKING:
    from probe_agents.agents.scenario_runner.models import ScenarioOutcome
    from probe_agents.schemas.session import SessionEvent

logger = logging.getLogger(__name__)

EVENTS_FILE = "events.jsonl"
SESSION_FILE = "session.json"
REDACTED_KEYS = frozenset({"screenshot", "screenshots"})


def _strip_visuals(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _strip_visuals(v) for k, v in value.items() if k not in REDACTED_KEYS}
    if isinstance(value, list):
        return [_strip_visuals(v) for v in value]
    return value


class JsonlSessionRecorder:
    """SessionRecorder that writes one directory per session.

    Attributes:
        log_dir: Root directory for session folders
    """

    def __init__(self, log_dir: str | Path = "./logs") -> None:
        self.log_dir = Path(log_dir)
        self._sessions: dict[str, dict[str, Any]] = {}

    def session_dir(self, session_id: str) -> Path:
        return self.log_dir / session_id

    async def start_session(self, scenario_name: str) -> str:
        """Create the session directory and return its id."""
        session_id = new_session_id()
        self.session_dir(session_id).mkdir(parents=True, exist_ok=True)
        self._sessions[session_id] = {
            "scenario_name": scenario_name,
            "started_at": datetime.now(UTC),
            "event_count": 0,
        }
        logger.info("Recording session %s for scenario '%s'", session_id, scenario_name)
        return session_id

    async def record(self, event: SessionEvent) -> None:
        """Append one event to the session's events.jsonl."""
        data = _strip_visuals(event.model_dump(mode="json"))
        directory = self.session_dir(event.session_id)
        directory.mkdir(parents=True, exist_ok=True)
        with open(directory / EVENTS_FILE, "a", encoding="utf-8") as f:
            f.write(json.dumps(data, default=str) + "\n")

        if event.session_id in self._sessions:
            self._sessions[event.session_id]["event_count"] += 1

    async def end_session(self, outcome: ScenarioOutcome) -> None:
        """Write session.json with the outcome summary."""
        meta = self._sessions.pop(outcome.session_id, {})
        started_at = meta.get("started_at")

        summary = {
            "session_id": outcome.session_id,
            "scenario_name": outcome.scenario_name,
            "started_at": started_at.isoformat() if started_at else None,
            "ended_at": datetime.now(UTC).isoformat(),
            "event_count": meta.get("event_count", 0),
            "outcome": _strip_visuals(outcome.model_dump(mode="json")),
        }

        directory = self.session_dir(outcome.session_id)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / SESSION_FILE).write_text(
            json.dumps(summary, indent=2, default=str), encoding="utf-8"
        )
        logger.info(
            "Session %s closed: %d/%d steps passed",
            outcome.session_id,
            outcome.passed_steps,
            outcome.total_steps,
        )
