"""
Model provider configuration for the Probe agent.

This module defines:
- ModelConfig Pydantic model for per-task-type configurations
- Default model configurations for each oracle task, overridable from the
  environment (MODEL_PLANNING, MODEL_VALIDATION, MODEL_DIAGNOSIS)
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from probe_agents.models.router import TaskType


class ModelConfig(BaseModel):
    """Configuration for a model used in a specific task type.

    Attributes:
        primary: Primary model identifier (e.g., "claude-sonnet-4-20250514")
        fallback: Fallback model identifier used when primary fails
        max_tokens: Maximum tokens for response generation
        temperature: Temperature for response generation (0.0-2.0)
        timeout_s: Per-request timeout in seconds
    """

    primary: str
    fallback: str
    max_tokens: int = Field(default=4096, ge=1, le=128000)
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    timeout_s: float = Field(default=60.0, gt=0.0)


def get_default_configs(max_tokens: int = 4096) -> dict[TaskType, ModelConfig]:
    """Get default model configurations for all oracle tasks.

    - Planning: vision-capable model that reads the element catalog and screenshot
    - Validation: low temperature for consistent pass/fail verdicts
    - Diagnosis: same family as planning; classification is a reasoning task

    Args:
        max_tokens: Response token limit applied to every task

    Returns:
        Dictionary mapping TaskType to ModelConfig
    """
    # Import here to avoid circular dependency
    from probe_agents.models.router import TaskType

    planning_model = os.environ.get("MODEL_PLANNING", "claude-sonnet-4-20250514")
    validation_model = os.environ.get("MODEL_VALIDATION", "claude-sonnet-4-20250514")
    diagnosis_model = os.environ.get("MODEL_DIAGNOSIS", "claude-sonnet-4-20250514")

    return {
        TaskType.PLANNING: ModelConfig(
            primary=planning_model,
            fallback="gpt-4o",
            max_tokens=max_tokens,
            temperature=0.2,
        ),
        TaskType.VALIDATION: ModelConfig(
            primary=validation_model,
            fallback="gpt-4o",
            max_tokens=max_tokens,
            temperature=0.0,
        ),
        TaskType.DIAGNOSIS: ModelConfig(
            primary=diagnosis_model,
            fallback="gpt-4o",
            max_tokens=max_tokens,
            temperature=0.1,
        ),
    }
