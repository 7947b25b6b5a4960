"""Scenario file loading."""

from probe_agents.scenarios.loader import ScenarioLoader

__all__ = ["ScenarioLoader"]
