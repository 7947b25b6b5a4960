"""Step runner implementation using LangGraph.

This module drives one scenario step through the observe -> plan ->
execute -> validate cycle, healing between attempts and classifying the
failure when the step cannot be completed:

1. Observe: wait for page stability and capture the before-observation
2. Plan: ask the decision oracle for an ActionPlan (last 10 actions as context)
3. Execute: apply planned actions in order, abort at the first failure
4. Validate: assertion checks, then the oracle semantic check
5. Heal: apply the escalating recovery strategy while attempts remain
6. Classify: turn the final failure into exactly one DetectedBug

Workflow Graph:
    START -> observe -> plan -> execute -> validate -> [conditional]
                                                        |-> complete (END)
                                                        |-> heal -> observe (next attempt)
                                                        |        -> classify -> failed (END)
                                                        |-> classify -> failed (END)

    Any phase that fails routes to heal while attempt < budget, and to
    classify on the final attempt.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from langgraph.graph import END, START, StateGraph

from probe_agents.agents.classifier.classifier import FailureClassifier
from probe_agents.agents.healer.controller import HealingController
from probe_agents.agents.step_runner.models import ExecutionContext, StepOutcome, StepPhase
from probe_agents.agents.step_runner.nodes import (
    StepNodes,
    route_after_execute,
    route_after_heal,
    route_after_observe,
    route_after_plan,
    route_after_validate,
)
from probe_agents.agents.step_runner.state import StepState
from probe_agents.agents.validator.validator import StepValidator
from probe_agents.recording.emitter import EventEmitter
from probe_agents.schemas.session import EventKind

if TYPE_CHECKING:
    from probe_agents.interfaces import (
        ActionExecutor,
        BrowserDriver,
        DecisionOracle,
        PageStateProvider,
        SessionRecorder,
    )
    from probe_agents.schemas.scenario import Step

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

# Node visits per attempt (observe, plan, execute, validate, heal) plus classify
_VISITS_PER_ATTEMPT = 5
_RECURSION_HEADROOM = 10


class StepRunner:
    """Runs one scenario step with bounded, self-healing retries.

    The runner builds a LangGraph workflow over StepState. Collaborators are
    injected; healing, classification and validation components are created
    from them unless supplied.

    Attributes:
        page_state: Page-state provider
        executor: Action executor
        oracle: Decision oracle
        browser: Browser driver for navigation and healing
        events: Session event emitter
        default_max_attempts: Attempt budget for steps without an override
        healer: Healing controller
        classifier: Failure classifier
        validator: Step validator
        graph: Compiled LangGraph workflow

    Example:
        runner = StepRunner(page_state, executor, oracle, browser)
        outcome = await runner.run_step(
            step,
            ExecutionContext(session_id="s-1", base_url="http://localhost:5173"),
        )
        if not outcome.passed:
            print(outcome.bugs[0].title)
    """

    def __init__(
        self,
        page_state: PageStateProvider,
        executor: ActionExecutor,
        oracle: DecisionOracle,
        browser: BrowserDriver,
        recorder: SessionRecorder | None = None,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        stable_timeout_ms: int = 5000,
        history_window: int = 10,
        healer: HealingController | None = None,
        classifier: FailureClassifier | None = None,
        validator: StepValidator | None = None,
    ) -> None:
        self.page_state = page_state
        self.executor = executor
        self.oracle = oracle
        self.browser = browser
        self.events = EventEmitter(recorder)
        self.default_max_attempts = max(1, default_max_attempts)
        self.healer = healer or HealingController(
            browser, page_state, oracle, stable_timeout_ms=stable_timeout_ms
        )
        self.classifier = classifier or FailureClassifier(oracle)
        self.validator = validator or StepValidator(oracle)
        self.nodes = StepNodes(
            page_state=page_state,
            executor=executor,
            oracle=oracle,
            validator=self.validator,
            healer=self.healer,
            classifier=self.classifier,
            events=self.events,
            browser=browser,
            stable_timeout_ms=stable_timeout_ms,
            history_window=history_window,
        )
        self.graph = self._build_graph()

        logger.info(
            "Step runner initialized with default attempt budget %d",
            self.default_max_attempts,
        )

    def _build_graph(self) -> Any:
        """Build the LangGraph step workflow.

        Returns:
            Compiled LangGraph workflow
        """
        workflow = StateGraph(StepState)

        workflow.add_node("observe", self.nodes.observe)
        workflow.add_node("plan", self.nodes.plan)
        workflow.add_node("execute", self.nodes.execute)
        workflow.add_node("validate", self.nodes.validate)
        workflow.add_node("heal", self.nodes.heal)
        workflow.add_node("classify", self.nodes.classify)

        workflow.add_edge(START, "observe")

        workflow.add_conditional_edges(
            "observe",
            route_after_observe,
            {"plan": "plan", "heal": "heal", "classify": "classify"},
        )
        workflow.add_conditional_edges(
            "plan",
            route_after_plan,
            {"execute": "execute", "heal": "heal", "classify": "classify"},
        )
        workflow.add_conditional_edges(
            "execute",
            route_after_execute,
            {"validate": "validate", "heal": "heal", "classify": "classify"},
        )
        workflow.add_conditional_edges(
            "validate",
            route_after_validate,
            {"complete": END, "heal": "heal", "classify": "classify"},
        )
        workflow.add_conditional_edges(
            "heal",
            route_after_heal,
            {"observe": "observe", "classify": "classify"},
        )
        workflow.add_edge("classify", END)

        return workflow.compile()

    def budget_for(self, step: Step) -> int:
        """Effective attempt budget for ``step``."""
        return step.attempt_budget(self.default_max_attempts)

    async def run_step(
        self,
        step: Step,
        context: ExecutionContext | None = None,
    ) -> StepOutcome:
        """Run one step to completion or classified failure.

        Args:
            step: Step to run
            context: Session values threaded from earlier steps

        Returns:
            StepOutcome with the pass/fail verdict, healing records, at most
            one bug and the updated action history
        """
        context = context or ExecutionContext()
        budget = self.budget_for(step)
        started = time.monotonic()

        logger.info("Starting step '%s' (budget %d)", step.name, budget)
        await self.events.emit(
            context.session_id,
            EventKind.STEP_START,
            step.name,
            payload={"goal": step.goal, "budget": budget, "start_url": step.start_url},
        )

        initial_state: StepState = {
            "step": step,
            "session_id": context.session_id,
            "base_url": context.base_url,
            "budget": budget,
            "attempt": 0,
            "phase": StepPhase.IDLE.value,
            "action_history": list(context.action_history),
            "before": None,
            "after": None,
            "plan": None,
            "executed": [],
            "failed_action": None,
            "failure": None,
            "validation": None,
            "healing_attempts": [],
            "recovered": False,
            "bug": None,
        }

        final_state = await self.graph.ainvoke(
            initial_state,
            config={"recursion_limit": budget * _VISITS_PER_ATTEMPT + _RECURSION_HEADROOM},
        )

        passed = final_state["phase"] == StepPhase.COMPLETE.value
        attempts = final_state["attempt"]
        failure = final_state["failure"]
        bug = final_state["bug"]

        outcome = StepOutcome(
            step_name=step.name,
            passed=passed,
            attempts=attempts,
            budget=budget,
            budget_exhausted=not passed and attempts >= budget,
            healing_attempts=final_state["healing_attempts"],
            bugs=[bug] if bug is not None and not passed else [],
            error=None if passed or failure is None else failure.message,
            duration_ms=(time.monotonic() - started) * 1000,
            action_history=final_state["action_history"],
        )

        logger.info(
            "Step '%s' %s after %d attempt(s), %d healing attempt(s)",
            step.name,
            "passed" if passed else "failed",
            outcome.attempts,
            len(outcome.healing_attempts),
        )
        return outcome
