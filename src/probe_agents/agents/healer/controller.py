"""Healing controller: escalating recovery after a failed attempt.

Strategy selection is a pure function of the attempt number and the error
text:

    attempt 1  -> wait_and_retry
    attempt 2  -> alternative_selector  (timeout / not found / no element / locator)
               -> refresh_and_retry     (network / loading / hydrat / navigation)
               -> screenshot_analysis   (anything else)
    attempt 3+ -> reset_to_known_state

Applying a strategy drives the browser and, for alternative_selector and
screenshot_analysis, asks the decision oracle for a revised plan. A strategy
never raises: any exception becomes a failed RecoveryResult, which the step
runner answers by classifying the failure.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from probe_agents.agents.healer.models import (
    HealingAttempt,
    HealingStrategy,
    RecoveryContext,
    RecoveryResult,
)

if TYPE_CHECKING:
    from probe_agents.interfaces import BrowserDriver, DecisionOracle, PageStateProvider
    from probe_agents.schemas.observation import Observation

logger = logging.getLogger(__name__)

StrategyHandler = Callable[[RecoveryContext], Awaitable[RecoveryResult]]

# Delays in milliseconds
HEALING_DELAYS_MS: dict[HealingStrategy, dict[str, int]] = {
    HealingStrategy.WAIT_AND_RETRY: {
        "network_idle": 2000,
        "loading_check": 500,
        "animation_buffer": 500,
    },
    HealingStrategy.REFRESH_AND_RETRY: {"stabilization": 500},
    HealingStrategy.ALTERNATIVE_SELECTOR: {"before_analysis": 500},
    HealingStrategy.SCREENSHOT_ANALYSIS: {"before_capture": 500},
    HealingStrategy.RESET_TO_KNOWN_STATE: {
        "after_navigation": 2000,
        "modal_dismiss": 300,
    },
}

MODAL_DISMISS_PRESSES = 3
SCREENSHOT_ANALYSIS_MIN_CONFIDENCE = 0.5

SELECTOR_ERROR_PATTERNS = ("timeout", "not found", "no element", "locator")
LOADING_ERROR_PATTERNS = ("network", "loading", "hydrat", "navigation")


class HealingController:
    """Selects and applies recovery strategies for failed attempts.

    Attributes:
        browser: Browser driver used to reload, navigate and wait
        page_state: Page-state provider for fresh observations
        oracle: Decision oracle for the re-planning strategies
        stable_timeout_ms: Timeout for stability waits
        network_idle_timeout_ms: Timeout for network-idle waits
    """

    def __init__(
        self,
        browser: BrowserDriver,
        page_state: PageStateProvider,
        oracle: DecisionOracle,
        stable_timeout_ms: int = 5000,
        network_idle_timeout_ms: int = 10000,
    ) -> None:
        self.browser = browser
        self.page_state = page_state
        self.oracle = oracle
        self.stable_timeout_ms = stable_timeout_ms
        self.network_idle_timeout_ms = network_idle_timeout_ms

        self._handlers: dict[HealingStrategy, StrategyHandler] = {
            HealingStrategy.WAIT_AND_RETRY: self._wait_and_retry,
            HealingStrategy.ALTERNATIVE_SELECTOR: self._alternative_selector,
            HealingStrategy.REFRESH_AND_RETRY: self._refresh_and_retry,
            HealingStrategy.SCREENSHOT_ANALYSIS: self._screenshot_analysis,
            HealingStrategy.RESET_TO_KNOWN_STATE: self._reset_to_known_state,
        }
        missing = set(HealingStrategy) - set(self._handlers)
        if missing:
            raise ValueError(f"No handler for strategies: {sorted(s.value for s in missing)}")

    @staticmethod
    def select_strategy(error: str, attempt: int) -> HealingStrategy:
        """Pick the recovery strategy for a failed attempt.

        Args:
            error: Failure text of the attempt
            attempt: 1-based number of the attempt that failed

        Returns:
            The strategy to apply
        """
        if attempt <= 1:
            return HealingStrategy.WAIT_AND_RETRY

        if attempt == 2:
            message = error.lower()
            if any(p in message for p in SELECTOR_ERROR_PATTERNS):
                return HealingStrategy.ALTERNATIVE_SELECTOR
            if any(p in message for p in LOADING_ERROR_PATTERNS):
                return HealingStrategy.REFRESH_AND_RETRY
            return HealingStrategy.SCREENSHOT_ANALYSIS

        return HealingStrategy.RESET_TO_KNOWN_STATE

    async def apply_strategy(
        self, strategy: HealingStrategy, context: RecoveryContext
    ) -> RecoveryResult:
        """Run one recovery strategy.

        Exceptions raised while recovering are converted into a failed result.

        Args:
            strategy: Strategy to apply
            context: Details of the failed attempt

        Returns:
            RecoveryResult describing whether the page was recovered
        """
        logger.info(
            "Applying healing strategy %s for step '%s'",
            strategy.value,
            context.step.name,
        )
        try:
            return await self._handlers[strategy](context)
        except Exception as e:
            logger.warning("Healing strategy %s failed: %s", strategy.value, e)
            return RecoveryResult(success=False, message=f"Recovery failed: {e}")

    async def heal(self, context: RecoveryContext, attempt: int) -> HealingAttempt:
        """Select a strategy for ``attempt``, apply it and record the result."""
        strategy = self.select_strategy(context.error, attempt)
        result = await self.apply_strategy(strategy, context)
        return HealingAttempt(
            attempt=attempt,
            strategy=strategy,
            recovered=result.success,
            message=result.message,
            updated_plan=result.updated_plan,
            new_observation=result.new_observation,
        )

    # =========================================================================
    # Strategies
    # =========================================================================

    async def _wait_and_retry(self, context: RecoveryContext) -> RecoveryResult:
        delays = HEALING_DELAYS_MS[HealingStrategy.WAIT_AND_RETRY]

        try:
            await self.browser.wait_for_load_state(
                "networkidle", self.network_idle_timeout_ms
            )
        except Exception as e:
            # Tolerated; loading checks follow
            logger.debug("Network idle wait timed out: %s", e)

        if await self._loading_visible():
            await self.browser.wait_for_timeout(delays["loading_check"])
            if await self._loading_visible():
                await self.browser.wait_for_timeout(delays["network_idle"])

        await self.browser.wait_for_timeout(delays["animation_buffer"])
        observation = await self._observe()

        return RecoveryResult(
            success=True,
            message="Waited for page to stabilize",
            new_observation=observation,
        )

    async def _refresh_and_retry(self, context: RecoveryContext) -> RecoveryResult:
        delays = HEALING_DELAYS_MS[HealingStrategy.REFRESH_AND_RETRY]

        await self.browser.reload()
        await self.browser.wait_for_load_state("networkidle", self.network_idle_timeout_ms)
        await self.browser.wait_for_timeout(delays["stabilization"])
        await self.page_state.wait_for_stable(self.stable_timeout_ms)
        observation = await self._observe()

        return RecoveryResult(
            success=True,
            message="Page refreshed and stabilized",
            new_observation=observation,
        )

    async def _alternative_selector(self, context: RecoveryContext) -> RecoveryResult:
        delays = HEALING_DELAYS_MS[HealingStrategy.ALTERNATIVE_SELECTOR]

        await self.browser.wait_for_timeout(delays["before_analysis"])
        observation = await self._observe()

        failed = context.failed_action
        if failed is not None:
            problem = (
                f'The action "{failed.description}" targeting "{failed.target}" failed.'
            )
        else:
            problem = "An action in the plan failed."
        goal = (
            f"{problem} Find an alternative element or approach to achieve: "
            f"{context.expected_outcome}"
        )
        previous = [f"[FAILED] {failed.description if failed else 'Unknown action'}"]

        plan = await self.oracle.plan_actions(goal, observation, previous)
        if not plan.actions:
            return RecoveryResult(
                success=False,
                message="Oracle could not find an alternative approach",
                new_observation=observation,
            )

        return RecoveryResult(
            success=True,
            message=f"Found alternative approach: {plan.reasoning}",
            updated_plan=plan,
            new_observation=observation,
        )

    async def _screenshot_analysis(self, context: RecoveryContext) -> RecoveryResult:
        delays = HEALING_DELAYS_MS[HealingStrategy.SCREENSHOT_ANALYSIS]

        await self.browser.wait_for_timeout(delays["before_capture"])
        observation = await self._observe()

        goal = (
            "Analyze this page state after an error occurred.\n"
            f"Error: {context.error}\n"
            f"Original goal: {context.expected_outcome}\n\n"
            "Determine:\n"
            "1. What is the current page state?\n"
            "2. Are there any error messages or unexpected elements visible?\n"
            "3. What action should be taken to recover and continue toward the goal?\n\n"
            "Provide a plan to recover from this state."
        )
        previous = [
            f"[ERROR] {context.error}",
            f"[ORIGINAL GOAL] {context.expected_outcome}",
        ]

        plan = await self.oracle.plan_actions(goal, observation, previous)
        if not plan.actions and plan.confidence < SCREENSHOT_ANALYSIS_MIN_CONFIDENCE:
            return RecoveryResult(
                success=False,
                message="Screenshot analysis could not determine recovery path",
                new_observation=observation,
            )

        return RecoveryResult(
            success=True,
            message=f"Screenshot analysis: {plan.reasoning}",
            updated_plan=plan,
            new_observation=observation,
        )

    async def _reset_to_known_state(self, context: RecoveryContext) -> RecoveryResult:
        delays = HEALING_DELAYS_MS[HealingStrategy.RESET_TO_KNOWN_STATE]
        reset_url = context.step.start_location(context.base_url) or context.base_url or "/"

        await self.browser.navigate(reset_url)
        await self.browser.wait_for_load_state("networkidle", self.network_idle_timeout_ms)

        for _ in range(MODAL_DISMISS_PRESSES):
            try:
                await self.browser.press_key("Escape")
                await self.browser.wait_for_timeout(delays["modal_dismiss"])
            except Exception as e:
                logger.debug("Modal dismissal failed: %s", e)

        await self.browser.wait_for_timeout(delays["after_navigation"])
        await self.page_state.wait_for_stable(self.stable_timeout_ms)
        observation = await self._observe()

        return RecoveryResult(
            success=True,
            message=f"Reset to known state: {reset_url}",
            new_observation=observation,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _observe(self) -> Observation:
        return await self.page_state.observe(include_visual=True)

    async def _loading_visible(self) -> bool:
        try:
            return await self.browser.has_loading_indicator()
        except Exception as e:
            logger.debug("Loading indicator check failed: %s", e)
            return False
