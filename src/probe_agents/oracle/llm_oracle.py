"""
LLM-backed decision oracle.

LLMDecisionOracle implements the DecisionOracle protocol on top of
ModelRouter:
- plan_actions -> TaskType.PLANNING -> ActionPlan
- validate_semantic -> TaskType.VALIDATION -> SemanticVerdict
- diagnose_bug -> TaskType.DIAGNOSIS -> DetectedBug (not yet enriched)

Every failure (transport, missing JSON, schema mismatch) surfaces as
OracleError so the step runner records it as an attempt failure.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from probe_agents.agents.validator.models import SemanticVerdict
from probe_agents.exceptions import OracleError
from probe_agents.models.router import ModelRouter, TaskType
from probe_agents.oracle.prompts import (
    build_diagnose_messages,
    build_plan_messages,
    build_validate_messages,
)
from probe_agents.schemas.bug import DetectedBug
from probe_agents.schemas.plan import ActionPlan

if TYPE_CHECKING:
    from probe_agents.schemas.failure import AttemptFailure
    from probe_agents.schemas.observation import Observation
    from probe_agents.schemas.scenario import Step

logger = logging.getLogger(__name__)

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

DIAGNOSIS_FIELDS = (
    "classification",
    "confidence",
    "title",
    "description",
    "severity",
    "reproduction_steps",
    "expected_behavior",
    "actual_behavior",
)


def extract_json_object(text: str) -> dict[str, Any]:
    """Pull the outermost JSON object out of a model response.

    Surrounding prose and markdown code fences are ignored.

    Args:
        text: Raw model output

    Returns:
        The decoded object

    Raises:
        OracleError: If no object is present or it does not decode
    """
    match = JSON_OBJECT_PATTERN.search(text)
    if not match:
        raise OracleError("No JSON found in model response")
    try:
        data = json.loads(match.group())
    except json.JSONDecodeError as e:
        raise OracleError(f"Invalid JSON in model response: {e}") from e
    if not isinstance(data, dict):
        raise OracleError("Model response JSON is not an object")
    return data


class LLMDecisionOracle:
    """Decision oracle that asks language models through a ModelRouter.

    Attributes:
        router: Task-based model router
    """

    def __init__(self, router: ModelRouter | None = None) -> None:
        self.router = router or ModelRouter()

    async def _ask(
        self,
        task_type: TaskType,
        messages: list[dict[str, Any]],
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.router.route(
                task_type=task_type, messages=messages, metadata=metadata
            )
        except OracleError:
            raise
        except Exception as e:
            logger.error("Oracle %s request failed: %s", task_type.value, str(e))
            raise OracleError(f"Oracle {task_type.value} request failed: {e}") from e

        return extract_json_object(response)

    async def plan_actions(
        self, goal: str, observation: Observation, recent_actions: list[str]
    ) -> ActionPlan:
        """Ask the planning model for an ActionPlan toward ``goal``."""
        messages = build_plan_messages(goal, observation, recent_actions)
        data = await self._ask(TaskType.PLANNING, messages, {"goal": goal})

        try:
            plan = ActionPlan.model_validate(data)
        except ValidationError as e:
            raise OracleError(f"Invalid action plan: {e.error_count()} errors") from e

        logger.debug(
            "Planned %d actions (confidence %.2f) for goal: %s",
            len(plan.actions),
            plan.confidence,
            goal,
        )
        return plan

    async def validate_semantic(
        self,
        step: Step,
        before: Observation,
        after: Observation,
        expected_outcome: str,
    ) -> SemanticVerdict:
        """Ask the validation model whether ``expected_outcome`` was reached."""
        messages = build_validate_messages(step, before, after, expected_outcome)
        data = await self._ask(TaskType.VALIDATION, messages, {"step": step.name})

        try:
            return SemanticVerdict.model_validate(data)
        except ValidationError as e:
            raise OracleError(f"Invalid validation verdict: {e.error_count()} errors") from e

    async def diagnose_bug(
        self,
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
    ) -> DetectedBug:
        """Ask the diagnosis model to classify a failed step.

        Only the classification fields are taken from the response; the
        enrichment fields are left for the classifier to fill.
        """
        messages = build_diagnose_messages(step, failure, observation, action_history)
        data = await self._ask(TaskType.DIAGNOSIS, messages, {"step": step.name})

        fields = {key: data[key] for key in DIAGNOSIS_FIELDS if key in data}
        try:
            return DetectedBug.model_validate(fields)
        except ValidationError as e:
            raise OracleError(f"Invalid diagnosis: {e.error_count()} errors") from e
