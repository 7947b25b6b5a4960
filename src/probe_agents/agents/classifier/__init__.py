"""Failure classification package.

Key Components:
- FailureClassifier: heuristic scoring with oracle fallback
- HeuristicResult / SignalReport: scoring outputs
- signals: the application, agent and environment detectors
"""

from probe_agents.agents.classifier.classifier import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    FailureClassifier,
    extract_page_name,
)
from probe_agents.agents.classifier.models import HeuristicResult, SignalReport

__all__ = [
    "CONFIDENCE_HIGH",
    "CONFIDENCE_LOW",
    "FailureClassifier",
    "HeuristicResult",
    "SignalReport",
    "extract_page_name",
]
