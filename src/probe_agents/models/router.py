"""
Model Router for the Probe agent.

Each oracle task (planning, outcome validation, bug diagnosis) has its own
model chain: the configured primary model, then its fallback. A request walks
the chain until a model returns a non-empty reply. When every model fails,
the primary model's error is raised, chained to the last failure.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from litellm import acompletion

from probe_agents.exceptions import OracleError
from probe_agents.models.providers import ModelConfig, get_default_configs

logger = logging.getLogger(__name__)


class TaskType(str, Enum):
    """Task types for model routing.

    - PLANNING: propose actions from the page state and screenshot
    - VALIDATION: judge whether an expected outcome was reached
    - DIAGNOSIS: classify a failed step
    """

    PLANNING = "planning"
    VALIDATION = "validation"
    DIAGNOSIS = "diagnosis"


class ModelRouter:
    """Sends oracle requests to the models configured per task.

    Example:
        ```python
        router = ModelRouter()

        reply = await router.route(
            task_type=TaskType.PLANNING,
            messages=[{"role": "user", "content": "Plan how to open the settings page"}],
        )
        ```
    """

    def __init__(self, configs: dict[TaskType, ModelConfig] | None = None) -> None:
        """Initialize the ModelRouter.

        Args:
            configs: Optional custom configs. If None, uses defaults from environment.
        """
        self.configs = configs or get_default_configs()

    def get_model_for_task(self, task_type: TaskType) -> str:
        return self.configs[task_type].primary

    def model_chain(self, task_type: TaskType) -> list[str]:
        """Models to try for ``task_type``, primary first; a repeated model is tried once."""
        config = self.configs[task_type]
        chain = [config.primary]
        if config.fallback and config.fallback != config.primary:
            chain.append(config.fallback)
        return chain

    async def _complete(
        self,
        task_type: TaskType,
        model: str,
        messages: list[dict[str, Any]],
        metadata: dict[str, Any] | None,
    ) -> str:
        config = self.configs[task_type]
        response = await acompletion(
            model=model,
            messages=messages,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            timeout=config.timeout_s,
            metadata={**(metadata or {}), "task_type": task_type.value},
        )
        content = response.choices[0].message.content
        if not content:
            raise OracleError(f"Model {model} returned an empty {task_type.value} reply")
        return str(content)

    async def route(
        self,
        task_type: TaskType,
        messages: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Send ``messages`` through the model chain for ``task_type``.

        Args:
            task_type: The oracle task (planning, validation, diagnosis)
            messages: Chat messages in OpenAI format; content may be a list of
                text and image parts
            metadata: Optional tracking metadata (goal, step, ...)

        Returns:
            The first non-empty reply

        Raises:
            Exception: The primary model's error, when every model fails
        """
        errors: list[Exception] = []
        for model in self.model_chain(task_type):
            logger.debug("Routing %s task to %s", task_type.value, model)
            try:
                reply = await self._complete(task_type, model, messages, metadata)
            except Exception as e:
                logger.warning("Model %s failed for %s task: %s", model, task_type.value, e)
                errors.append(e)
                continue

            if errors:
                logger.info("%s task answered by fallback model %s", task_type.value, model)
            return reply

        logger.error("All models failed for %s task", task_type.value)
        raise errors[0] from (errors[-1] if len(errors) > 1 else None)
