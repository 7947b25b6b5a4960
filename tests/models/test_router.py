"""
Tests for the Model Router module.

These tests verify:
1. Task-based model selection (planning/validation/diagnosis)
2. Environment overrides for default models
3. Request parameters (temperature per task, task_type metadata)
4. Fallback logic when the primary model fails or replies empty
5. A fallback equal to the primary is tried once
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from probe_agents.models.providers import ModelConfig, get_default_configs
from probe_agents.models.router import ModelRouter, TaskType


def _response(content: str) -> MagicMock:
    return MagicMock(choices=[MagicMock(message=MagicMock(content=content))])


class TestTaskType:
    """Test TaskType enumeration."""

    def test_task_type_values(self) -> None:
        """Verify task type string values."""
        assert TaskType.PLANNING.value == "planning"
        assert TaskType.VALIDATION.value == "validation"
        assert TaskType.DIAGNOSIS.value == "diagnosis"


class TestProviderConfig:
    """Test default configuration loading."""

    def test_get_default_configs(self) -> None:
        """Test that default configs are returned for all task types."""
        configs = get_default_configs()

        assert set(configs) == set(TaskType)
        assert all(isinstance(c, ModelConfig) for c in configs.values())

    def test_validation_is_deterministic(self) -> None:
        """Validation verdicts use temperature 0."""
        configs = get_default_configs()

        assert configs[TaskType.VALIDATION].temperature == 0.0

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test MODEL_* environment variables select the primary models."""
        monkeypatch.setenv("MODEL_PLANNING", "gpt-4o")
        monkeypatch.setenv("MODEL_DIAGNOSIS", "claude-opus-4-20250514")

        configs = get_default_configs(max_tokens=1024)

        assert configs[TaskType.PLANNING].primary == "gpt-4o"
        assert configs[TaskType.DIAGNOSIS].primary == "claude-opus-4-20250514"
        assert configs[TaskType.PLANNING].max_tokens == 1024


class TestModelRouterAsync:
    """Test async routing functionality."""

    @pytest.fixture
    def router(self) -> ModelRouter:
        """Create a ModelRouter with fixed configs."""
        return ModelRouter(
            configs={
                task: ModelConfig(primary=f"primary-{task.value}", fallback="fallback-model")
                for task in TaskType
            }
        )

    def test_get_model_for_task(self, router: ModelRouter) -> None:
        """Test getting the primary model for a task."""
        assert router.get_model_for_task(TaskType.DIAGNOSIS) == "primary-diagnosis"

    @pytest.mark.asyncio
    async def test_route_uses_primary_model(self, router: ModelRouter) -> None:
        """Test the request sent to the primary model."""
        with patch("probe_agents.models.router.acompletion") as mock_completion:
            mock_completion.return_value = _response('{"passed": true}')

            result = await router.route(
                task_type=TaskType.VALIDATION,
                messages=[{"role": "user", "content": "Was the deal saved?"}],
                metadata={"step": "Save deal"},
            )

            call_kwargs = mock_completion.call_args.kwargs
            assert result == '{"passed": true}'
            assert call_kwargs["model"] == "primary-validation"
            assert call_kwargs["metadata"] == {"step": "Save deal", "task_type": "validation"}

    @pytest.mark.asyncio
    async def test_fallback_when_primary_fails(self, router: ModelRouter) -> None:
        """Test that fallback model is used when primary fails."""
        models: list[str] = []

        async def mock_acompletion(**kwargs: object) -> MagicMock:
            models.append(str(kwargs["model"]))
            if len(models) == 1:
                raise Exception("Primary model unavailable")
            return _response("Fallback response")

        with patch("probe_agents.models.router.acompletion", side_effect=mock_acompletion):
            result = await router.route(
                task_type=TaskType.PLANNING,
                messages=[{"role": "user", "content": "Open settings"}],
            )

        assert result == "Fallback response"
        assert models == ["primary-planning", "fallback-model"]

    @pytest.mark.asyncio
    async def test_raises_primary_error_when_both_fail(self, router: ModelRouter) -> None:
        """Test that the primary error is raised when both models fail."""
        errors = iter([RuntimeError("primary down"), RuntimeError("fallback down")])

        async def mock_acompletion(**kwargs: object) -> MagicMock:
            raise next(errors)

        with patch("probe_agents.models.router.acompletion", side_effect=mock_acompletion):
            with pytest.raises(RuntimeError, match="primary down"):
                await router.route(
                    task_type=TaskType.DIAGNOSIS,
                    messages=[{"role": "user", "content": "Why did it fail?"}],
                )

    @pytest.mark.asyncio
    async def test_empty_reply_falls_back(self, router: ModelRouter) -> None:
        """Test that an empty primary reply counts as a failure."""
        with patch("probe_agents.models.router.acompletion") as mock_completion:
            mock_completion.side_effect = [_response(""), _response("Fallback plan")]
            result = await router.route(
                task_type=TaskType.PLANNING,
                messages=[{"role": "user", "content": "Open settings"}],
            )

        assert result == "Fallback plan"
        assert mock_completion.call_count == 2

    @pytest.mark.asyncio
    async def test_same_primary_and_fallback_called_once(self) -> None:
        """Test a fallback equal to the primary is not retried."""
        router = ModelRouter(
            configs={
                task: ModelConfig(primary="only-model", fallback="only-model")
                for task in TaskType
            }
        )

        with patch("probe_agents.models.router.acompletion") as mock_completion:
            mock_completion.side_effect = RuntimeError("rate limited")
            with pytest.raises(RuntimeError, match="rate limited"):
                await router.route(
                    task_type=TaskType.VALIDATION,
                    messages=[{"role": "user", "content": "Was it saved?"}],
                )

        assert router.model_chain(TaskType.VALIDATION) == ["only-model"]
        assert mock_completion.call_count == 1

    @pytest.mark.asyncio
    async def test_request_carries_task_limits(self, router: ModelRouter) -> None:
        """Test max_tokens, temperature and timeout come from the task config."""
        with patch("probe_agents.models.router.acompletion") as mock_completion:
            mock_completion.return_value = _response("ok")

            await router.route(
                task_type=TaskType.DIAGNOSIS,
                messages=[{"role": "user", "content": "Why did it fail?"}],
            )

        config = router.configs[TaskType.DIAGNOSIS]
        call_kwargs = mock_completion.call_args.kwargs
        assert call_kwargs["max_tokens"] == config.max_tokens
        assert call_kwargs["temperature"] == config.temperature
        assert call_kwargs["timeout"] == 60.0
