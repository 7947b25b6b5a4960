"""Failure classifier: heuristics first, oracle when heuristics are unsure.

Scoring:
    total = app + agent + environment
    total == 0           -> unknown, confidence 0
    otherwise            -> confidence = max / (total + 1)
    classification       -> first of (app_bug, agent_bug, environment_issue)
                            holding the maximum score

Decision:
    confidence >= 0.8    -> bug built from heuristics
    otherwise            -> oracle diagnosis; heuristic indicators appended to its
                            description when confidence >= 0.3
    oracle unusable      -> bug built from heuristics (unknown / low when
                            nothing fired)

Every bug, whatever its origin, is enriched from the triggering observation.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from urllib.parse import urlparse

from probe_agents.agents.classifier.models import HeuristicResult
from probe_agents.agents.classifier.signals import (
    AUTH_STATUSES,
    detect_agent_signals,
    detect_app_signals,
    detect_environment_signals,
)
from probe_agents.schemas.bug import BugClassification, DetectedBug, Severity

if TYPE_CHECKING:
    from probe_agents.interfaces import DecisionOracle
    from probe_agents.schemas.failure import AttemptFailure
    from probe_agents.schemas.observation import Observation
    from probe_agents.schemas.scenario import Step

logger = logging.getLogger(__name__)

CONFIDENCE_HIGH = 0.8
CONFIDENCE_LOW = 0.3

REPRODUCTION_HISTORY = 5
TITLE_DETAIL_LENGTH = 50

# Evaluation order doubles as the tie-break.
# TODO: revisit whether ties should fall back to the oracle instead of app_bug.
CATEGORY_PRIORITY = (
    BugClassification.APP_BUG,
    BugClassification.AGENT_BUG,
    BugClassification.ENVIRONMENT_ISSUE,
)


def extract_page_name(url: str) -> str:
    """Short page identity for titles: last path segment, or "home page" for "/"."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return "page"
    if not parsed.scheme or not parsed.netloc:
        return "page"
    path = parsed.path
    if not path or path == "/":
        return "home page"
    segments = [s for s in path.split("/") if s]
    return segments[-1] if segments else "page"


def truncate(text: str, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` characters, ending in "..." when cut."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class FailureClassifier:
    """Decides whether a failure is an app bug, an agent bug or an environment issue.

    Attributes:
        oracle: Decision oracle used when heuristics are not confident
    """

    def __init__(self, oracle: DecisionOracle) -> None:
        self.oracle = oracle

    def analyze(self, error: str, observation: Observation) -> HeuristicResult:
        """Score a failure against the three hypotheses.

        Args:
            error: Failure text
            observation: Page state at failure time

        Returns:
            HeuristicResult with classification, confidence and indicators
        """
        message = error.lower()
        reports = {
            BugClassification.APP_BUG: detect_app_signals(message, observation),
            BugClassification.AGENT_BUG: detect_agent_signals(message, observation),
            BugClassification.ENVIRONMENT_ISSUE: detect_environment_signals(
                message, observation
            ),
        }
        scores = {category: report.score for category, report in reports.items()}
        indicators = [i for category in CATEGORY_PRIORITY for i in reports[category].indicators]

        total = sum(scores.values())
        if total == 0:
            return HeuristicResult(
                classification=BugClassification.UNKNOWN,
                confidence=0.0,
                indicators=indicators,
                scores=scores,
            )

        best = max(scores.values())
        classification = next(c for c in CATEGORY_PRIORITY if scores[c] == best)
        return HeuristicResult(
            classification=classification,
            confidence=best / (total + 1),
            indicators=indicators,
            scores=scores,
        )

    async def classify(
        self,
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
        session_id: str = "",
    ) -> DetectedBug:
        """Classify a failed step and build its DetectedBug.

        Args:
            step: Step that failed
            failure: Failure of the last attempt
            observation: Page state at failure time
            action_history: Action descriptions recorded so far
            session_id: Owning session

        Returns:
            The enriched DetectedBug
        """
        heuristic = self.analyze(failure.message, observation)
        logger.info(
            "Heuristics for step '%s': %s (confidence %.2f, scores %s)",
            step.name,
            heuristic.classification.value,
            heuristic.confidence,
            {c.value: s for c, s in heuristic.scores.items()},
        )

        if heuristic.confidence >= CONFIDENCE_HIGH:
            bug = self.bug_from_heuristics(step, failure, observation, action_history, heuristic)
        else:
            try:
                bug = await self.oracle.diagnose_bug(
                    step, failure, observation, list(action_history)
                )
            except Exception as e:
                logger.warning(
                    "Oracle diagnosis unusable for step '%s', using heuristics: %s",
                    step.name,
                    e,
                )
                bug = self.bug_from_heuristics(
                    step, failure, observation, action_history, heuristic
                )
            else:
                if heuristic.indicators and heuristic.confidence >= CONFIDENCE_LOW:
                    evidence = "\n".join(f"- {i}" for i in heuristic.indicators)
                    bug = bug.model_copy(
                        update={
                            "description": (
                                f"{bug.description}\n\nHeuristic indicators:\n{evidence}"
                            )
                        }
                    )

        return self.enrich(bug, step, failure, observation, action_history, session_id)

    # =========================================================================
    # Heuristic bug construction
    # =========================================================================

    def bug_from_heuristics(
        self,
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
        heuristic: HeuristicResult,
    ) -> DetectedBug:
        """Build an unenriched DetectedBug from a heuristic result."""
        label = heuristic.classification.value.replace("_", " ")
        if heuristic.indicators:
            listed = "\n".join(f"- {i}" for i in heuristic.indicators)
            description = f"Heuristic analysis detected {label}.\n\nIndicators:\n{listed}"
        else:
            description = f"Heuristic analysis detected {label}.\n\nNo indicators fired."

        return DetectedBug(
            classification=heuristic.classification,
            confidence=heuristic.confidence,
            title=self.generate_title(heuristic.classification, failure.message, observation),
            description=description,
            severity=self.determine_severity(heuristic.classification, heuristic.indicators),
            reproduction_steps=self.reproduction_steps(
                step, failure, observation, action_history
            ),
            expected_behavior=step.goal,
            actual_behavior=failure.message,
        )

    @staticmethod
    def determine_severity(
        classification: BugClassification, indicators: list[str]
    ) -> Severity:
        """Severity from the classification and the indicators that fired."""
        if classification == BugClassification.APP_BUG:
            if any("5xx" in i or "Server error" in i for i in indicators):
                return Severity.CRITICAL
            if any("JavaScript error" in i or "React error" in i for i in indicators):
                return Severity.HIGH
            return Severity.MEDIUM

        if classification == BugClassification.AGENT_BUG:
            if any("Invalid selector" in i for i in indicators):
                return Severity.HIGH
            return Severity.MEDIUM

        if classification == BugClassification.ENVIRONMENT_ISSUE:
            escalating = ("unreachable", "connection", "Authentication")
            if any(word in i for i in indicators for word in escalating):
                return Severity.HIGH
            return Severity.MEDIUM

        return Severity.LOW

    @staticmethod
    def generate_title(
        classification: BugClassification, error: str, observation: Observation
    ) -> str:
        """Issue title from the dominant indicator and the page identity."""
        page = extract_page_name(observation.url)
        detail = truncate(error, TITLE_DETAIL_LENGTH)
        lowered = error.lower()

        if classification == BugClassification.APP_BUG:
            server_errors = [
                e for e in observation.network_errors if e.status and e.status >= 500
            ]
            if server_errors:
                return f"Server error {server_errors[0].status} on {page}"
            if observation.console_errors:
                return f"JavaScript error on {page}"
            return f"Application error on {page}: {detail}"

        if classification == BugClassification.AGENT_BUG:
            if "selector" in lowered:
                return f"Selector issue on {page}"
            if "timeout" in lowered:
                return f"Timing issue on {page}"
            return f"Agent error on {page}: {detail}"

        if classification == BugClassification.ENVIRONMENT_ISSUE:
            if "connection" in lowered:
                return "Network connectivity issue"
            if any(e.status in AUTH_STATUSES for e in observation.network_errors):
                return "Authentication expired"
            return f"Environment issue: {detail}"

        return f"Unknown failure on {page}: {detail}"

    @staticmethod
    def reproduction_steps(
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
    ) -> list[str]:
        """Page location, the last recorded actions, the goal and the raw error."""
        return [
            f"Navigate to {observation.url}",
            *action_history[-REPRODUCTION_HISTORY:],
            f"Attempt: {step.goal}",
            f"Error: {failure.message}",
        ]

    # =========================================================================
    # Enrichment
    # =========================================================================

    def enrich(
        self,
        bug: DetectedBug,
        step: Step,
        failure: AttemptFailure,
        observation: Observation,
        action_history: list[str],
        session_id: str,
    ) -> DetectedBug:
        """Attach observation artifacts, timestamp and session to a bug."""
        update: dict[str, object] = {
            "url": observation.url,
            "screenshots": [observation.screenshot] if observation.screenshot else [],
            "console_errors": list(observation.console_errors),
            "network_errors": list(observation.network_errors),
            "timestamp": datetime.now(UTC),
            "session_id": session_id,
        }
        if not bug.reproduction_steps:
            update["reproduction_steps"] = self.reproduction_steps(
                step, failure, observation, action_history
            )
        if not bug.expected_behavior:
            update["expected_behavior"] = step.goal
        if not bug.actual_behavior:
            update["actual_behavior"] = failure.message
        return bug.model_copy(update=update)
