"""Pydantic models for step validation."""

from __future__ import annotations

from pydantic import BaseModel, Field

from probe_agents.exceptions import ValidationFailure


class SemanticVerdict(BaseModel):
    """Oracle judgement of whether the expected outcome was reached."""

    passed: bool
    reason: str = ""


class ValidationReport(BaseModel):
    """Result of validating one attempt.

    Attributes:
        passed: Whether the attempt achieved its goal
        reason: Summary explanation
        failures: Individual failure messages (assertions or semantic)
        semantic_checked: Whether the oracle semantic check ran
    """

    passed: bool
    reason: str = ""
    failures: list[str] = Field(default_factory=list)
    semantic_checked: bool = False

    def raise_for_failure(self) -> None:
        """Raise ValidationFailure unless the attempt passed.

        Raises:
            ValidationFailure: With ``reason`` as the message
        """
        if not self.passed:
            raise ValidationFailure(self.reason or "Validation failed")
