"""LLM model routing for the decision oracle."""

from probe_agents.models.providers import ModelConfig, get_default_configs
from probe_agents.models.router import ModelRouter, TaskType

__all__ = ["ModelConfig", "ModelRouter", "TaskType", "get_default_configs"]
