"""Step validation: assertion checks first, oracle semantic check second.

The semantic check is only requested when every assertion passes, so a
failing assertion never costs an oracle call.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from probe_agents.agents.validator.models import ValidationReport

if TYPE_CHECKING:
    from probe_agents.interfaces import DecisionOracle
    from probe_agents.schemas.observation import Observation
    from probe_agents.schemas.scenario import Step

logger = logging.getLogger(__name__)


class StepValidator:
    """Decides whether an attempt reached its step's goal.

    Attributes:
        oracle: Decision oracle used for the semantic check
    """

    def __init__(self, oracle: DecisionOracle) -> None:
        self.oracle = oracle

    def check_assertions(self, step: Step, observation: Observation) -> list[str]:
        """Evaluate every assertion of ``step`` and return failure messages."""
        failures: list[str] = []
        for assertion in step.assertions:
            result = assertion.check(observation)
            if not result.passed:
                failures.append(result.message)
        return failures

    async def validate(
        self,
        step: Step,
        before: Observation,
        after: Observation,
        expected_outcome: str,
    ) -> ValidationReport:
        """Validate an attempt against the after-observation.

        Args:
            step: Step being validated
            before: Observation taken before the plan ran
            after: Observation taken after the plan ran
            expected_outcome: Expected outcome stated by the plan

        Returns:
            ValidationReport with pass/fail and the reasons
        """
        failures = self.check_assertions(step, after)
        if failures:
            logger.info(
                "Step '%s' failed %d assertion(s)", step.name, len(failures)
            )
            return ValidationReport(
                passed=False,
                reason=f"Assertion checks failed: {'; '.join(failures)}",
                failures=failures,
            )

        verdict = await self.oracle.validate_semantic(
            step, before, after, expected_outcome or step.goal
        )
        logger.debug(
            "Semantic check for step '%s': passed=%s", step.name, verdict.passed
        )
        return ValidationReport(
            passed=verdict.passed,
            reason=verdict.reason,
            failures=[] if verdict.passed else [verdict.reason],
            semantic_checked=True,
        )
