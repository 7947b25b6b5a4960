"""Step validation package.

Key Components:
- StepValidator: assertion checks, then the oracle semantic check
- ValidationReport: result of validating one attempt
- SemanticVerdict: oracle judgement returned by ``validate_semantic``
"""

from probe_agents.agents.validator.models import SemanticVerdict, ValidationReport
from probe_agents.agents.validator.validator import StepValidator

__all__ = ["SemanticVerdict", "StepValidator", "ValidationReport"]
