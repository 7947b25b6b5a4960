"""Pydantic models for heuristic failure classification."""

from __future__ import annotations

from pydantic import BaseModel, Field

from probe_agents.schemas.bug import BugClassification


class SignalReport(BaseModel):
    """Output of one signal detector.

    Attributes:
        score: Accumulated weight of the signals that fired
        indicators: Human-readable description of each fired signal
    """

    score: int = Field(default=0, ge=0)
    indicators: list[str] = Field(default_factory=list)

    def add(self, weight: int, indicator: str) -> None:
        """Record a fired signal."""
        self.score += weight
        self.indicators.append(indicator)


class HeuristicResult(BaseModel):
    """Combined verdict of the three signal detectors.

    Attributes:
        classification: Category holding the maximum score
        confidence: max / (total + 1), or 0 when nothing fired
        indicators: Indicators from all detectors, app then agent then environment
        scores: Score per category
    """

    classification: BugClassification
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: list[str] = Field(default_factory=list)
    scores: dict[BugClassification, int] = Field(default_factory=dict)
