"""Session event recording."""

from probe_agents.recording.emitter import EventEmitter, new_session_id
from probe_agents.recording.session_recorder import JsonlSessionRecorder

__all__ = ["EventEmitter", "JsonlSessionRecorder", "new_session_id"]
