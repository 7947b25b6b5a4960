"""Run configuration."""

from probe_agents.config.settings import (
    AgentSettings,
    AppSettings,
    BrowserSettings,
    LoggingSettings,
    ProbeSettings,
    ScenarioSettings,
    load_settings,
)

__all__ = [
    "AgentSettings",
    "AppSettings",
    "BrowserSettings",
    "LoggingSettings",
    "ProbeSettings",
    "ScenarioSettings",
    "load_settings",
]
