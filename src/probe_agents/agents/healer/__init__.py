"""Healing package for recovering from failed step attempts.

Key Components:
- HealingController: selects a strategy by attempt number and error text,
  then applies it through the browser driver and decision oracle
- HealingStrategy: the five recovery procedures
- RecoveryContext / RecoveryResult: strategy inputs and outputs
- HealingAttempt: record kept on the step outcome

Example:
    from probe_agents.agents.healer import HealingController, RecoveryContext

    controller = HealingController(browser, page_state, oracle)
    attempt = await controller.heal(
        RecoveryContext(step=step, error="Timeout 5000ms exceeded"),
        attempt=1,
    )
"""

from probe_agents.agents.healer.controller import HEALING_DELAYS_MS, HealingController
from probe_agents.agents.healer.models import (
    HealingAttempt,
    HealingStrategy,
    RecoveryContext,
    RecoveryResult,
)

__all__ = [
    "HEALING_DELAYS_MS",
    "HealingAttempt",
    "HealingController",
    "HealingStrategy",
    "RecoveryContext",
    "RecoveryResult",
]
