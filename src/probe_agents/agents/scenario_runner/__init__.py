"""Scenario runner package.

Key Components:
- ScenarioRunner: sequences steps, applies setup, aggregates outcomes
- ScenarioOutcome: result of one scenario run
"""

from probe_agents.agents.scenario_runner.models import ScenarioOutcome
from probe_agents.agents.scenario_runner.runner import ScenarioRunner

__all__ = ["ScenarioOutcome", "ScenarioRunner"]
