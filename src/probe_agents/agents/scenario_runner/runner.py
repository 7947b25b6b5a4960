"""Scenario runner: sequences steps and aggregates their outcomes.

Per scenario:
1. Open a session and start from a fresh ExecutionContext
2. Setup: restore a saved browser session when declared; record each
   precondition into the action history as advisory context
3. Run every step in declared order, clearing accumulated page errors first
   (with ``abort_on_failure``, stop after the first step that used its whole
   attempt budget)
4. Aggregate pass/fail counts and detected bugs

A failure during setup or aggregation ends the scenario with a
scenario-level error instead of a step bug.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from probe_agents.agents.scenario_runner.models import ScenarioOutcome
from probe_agents.agents.step_runner.models import ExecutionContext, StepOutcome
from probe_agents.logging_config import session_id_var
from probe_agents.recording.emitter import EventEmitter
from probe_agents.schemas.scenario import AuthType
from probe_agents.schemas.session import EventKind

if TYPE_CHECKING:
    from probe_agents.agents.step_runner.graph import StepRunner
    from probe_agents.interfaces import BrowserDriver, PageStateProvider, SessionRecorder
    from probe_agents.schemas.scenario import Scenario

logger = logging.getLogger(__name__)


class ScenarioRunner:
    """Runs scenarios step by step on a shared browser session.

    Attributes:
        step_runner: Runner for individual steps
        page_state: Page-state provider (errors are cleared between steps)
        browser: Browser driver used for session restoration
        events: Session event emitter
        base_url: Base location of the application under test
    """

    def __init__(
        self,
        step_runner: StepRunner,
        page_state: PageStateProvider,
        browser: BrowserDriver | None = None,
        recorder: SessionRecorder | None = None,
        base_url: str = "",
    ) -> None:
        self.step_runner = step_runner
        self.page_state = page_state
        self.browser = browser
        self.events = EventEmitter(recorder)
        self.base_url = base_url

    async def run_scenario(
        self, scenario: Scenario, abort_on_failure: bool = False
    ) -> ScenarioOutcome:
        """Run every step of ``scenario``.

        Args:
            scenario: Scenario to run
            abort_on_failure: Stop after the first step that exhausts its budget

        Returns:
            ScenarioOutcome with counts, bugs and per-step outcomes
        """
        started = time.monotonic()
        session_id = await self.events.start_session(scenario.name)
        token = session_id_var.set(session_id)
        logger.info(
            "Starting scenario '%s' (%d steps, session %s)",
            scenario.name,
            len(scenario.steps),
            session_id,
        )
        await self.events.emit(
            session_id,
            EventKind.SESSION_START,
            payload={"scenario": scenario.name, "steps": len(scenario.steps)},
        )

        outcomes: list[StepOutcome] = []
        aborted = False
        error: str | None = None
        try:
            context = ExecutionContext(session_id=session_id, base_url=self.base_url)
            try:
                context = await self._apply_setup(scenario, context)
            except Exception as e:
                logger.error("Setup failed for scenario '%s': %s", scenario.name, e)
                error = f"Setup failed: {e}"
            else:
                for step in scenario.steps:
                    await self._clear_page_errors(step.name)
                    outcome = await self.step_runner.run_step(step, context)
                    outcomes.append(outcome)
                    context = context.with_history(outcome.action_history)

                    if abort_on_failure and outcome.budget_exhausted:
                        logger.warning(
                            "Aborting scenario '%s' after step '%s' exhausted its budget",
                            scenario.name,
                            step.name,
                        )
                        aborted = True
                        break

                self._log_teardown(scenario)
        except Exception as e:
            logger.exception("Scenario '%s' aborted by unexpected error", scenario.name)
            error = f"Scenario error: {e}"

        try:
            outcome = self._aggregate(
                scenario, session_id, outcomes, aborted, error, started
            )
        except Exception as e:
            logger.exception("Aggregation failed for scenario '%s'", scenario.name)
            outcome = ScenarioOutcome(
                scenario_name=scenario.name,
                session_id=session_id,
                success=False,
                total_steps=len(scenario.steps),
                step_outcomes=outcomes,
                error=f"Aggregation failed: {e}",
            )
        await self.events.emit(
            session_id,
            EventKind.SESSION_END,
            payload={
                "success": outcome.success,
                "passed_steps": outcome.passed_steps,
                "failed_steps": outcome.failed_steps,
                "skipped_steps": outcome.skipped_steps,
                "bugs": len(outcome.bugs),
            },
        )
        await self.events.end_session(outcome)
        logger.info(
            "Scenario '%s' %s: %d passed, %d failed, %d skipped, %d bug(s)",
            scenario.name,
            "passed" if outcome.success else "failed",
            outcome.passed_steps,
            outcome.failed_steps,
            outcome.skipped_steps,
            len(outcome.bugs),
        )
        session_id_var.reset(token)
        return outcome

    async def run_all(
        self, scenarios: list[Scenario], abort_on_failure: bool = False
    ) -> list[ScenarioOutcome]:
        """Run several scenarios one after another."""
        results: list[ScenarioOutcome] = []
        for scenario in scenarios:
            results.append(await self.run_scenario(scenario, abort_on_failure))
        return results

    async def _apply_setup(
        self, scenario: Scenario, context: ExecutionContext
    ) -> ExecutionContext:
        setup = scenario.setup
        if setup is None:
            return context

        if setup.auth is not None:
            if setup.auth.type == AuthType.SESSION:
                if not setup.auth.session_file:
                    raise ValueError("Session auth requires a session_file")
                if self.browser is None:
                    raise ValueError("Session auth requires a browser driver")
                await self.browser.load_session(setup.auth.session_file)
                logger.info("Restored browser session from %s", setup.auth.session_file)
            else:
                logger.warning(
                    "Auth type '%s' is not performed automatically; continuing unauthenticated",
                    setup.auth.type.value,
                )

        history = list(context.action_history)
        for precondition in setup.preconditions:
            history.append(f"[Precondition] {precondition}")
        return context.with_history(history)

    async def _clear_page_errors(self, step_name: str) -> None:
        try:
            await self.page_state.clear_errors()
        except Exception as e:
            logger.warning("Could not clear page errors before step '%s': %s", step_name, e)

    def _log_teardown(self, scenario: Scenario) -> None:
        if scenario.teardown is None:
            return
        for item in scenario.teardown.cleanup:
            logger.info("Teardown for '%s' (not executed): %s", scenario.name, item)

    def _aggregate(
        self,
        scenario: Scenario,
        session_id: str,
        outcomes: list[StepOutcome],
        aborted: bool,
        error: str | None,
        started: float,
    ) -> ScenarioOutcome:
        passed = sum(1 for o in outcomes if o.passed)
        failed = len(outcomes) - passed
        total = len(scenario.steps)
        return ScenarioOutcome(
            scenario_name=scenario.name,
            session_id=session_id,
            success=error is None and passed == total,
            total_steps=total,
            passed_steps=passed,
            failed_steps=failed,
            skipped_steps=total - len(outcomes),
            aborted=aborted,
            bugs=[bug for o in outcomes for bug in o.bugs],
            step_outcomes=outcomes,
            error=error,
            duration_ms=(time.monotonic() - started) * 1000,
        )
