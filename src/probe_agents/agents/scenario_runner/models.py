"""Pydantic models for the scenario runner."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from probe_agents.agents.step_runner.models import StepOutcome
from probe_agents.schemas.bug import DetectedBug


class ScenarioOutcome(BaseModel):
    """Result of running a scenario.

    Attributes:
        scenario_name: Scenario that ran
        session_id: Session the run was recorded under
        success: True iff every step passed and no scenario-level error occurred
        total_steps: Steps declared by the scenario
        passed_steps: Steps that passed
        failed_steps: Steps that failed
        skipped_steps: Steps not run (early abort or scenario-level error)
        aborted: Whether the early-abort policy stopped the run
        bugs: Detected bugs across all steps, in step order
        step_outcomes: Per-step outcomes, in step order
        error: Scenario-level error (setup or aggregation), distinct from step bugs
        duration_ms: Wall-clock duration
    """

    model_config = ConfigDict(frozen=True)

    scenario_name: str
    session_id: str = ""
    success: bool
    total_steps: int = Field(ge=0)
    passed_steps: int = Field(default=0, ge=0)
    failed_steps: int = Field(default=0, ge=0)
    skipped_steps: int = Field(default=0, ge=0)
    aborted: bool = False
    bugs: list[DetectedBug] = Field(default_factory=list)
    step_outcomes: list[StepOutcome] = Field(default_factory=list)
    error: str | None = None
    duration_ms: float = Field(default=0.0, ge=0.0)
