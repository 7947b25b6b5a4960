"""Step runner package: the per-step observe/plan/execute/validate state machine.

Key Components:
- StepRunner: main class with the LangGraph workflow
- StepState: TypedDict state for the workflow
- StepPhase: lifecycle phases
- ExecutionContext: session values threaded between steps
- StepOutcome: result of one step

Example:
    from probe_agents.agents.step_runner import ExecutionContext, StepRunner

    runner = StepRunner(page_state, executor, oracle, browser, recorder)
    outcome = await runner.run_step(step, ExecutionContext(session_id=session_id))
"""

from probe_agents.agents.step_runner.graph import DEFAULT_MAX_ATTEMPTS, StepRunner
from probe_agents.agents.step_runner.models import ExecutionContext, StepOutcome, StepPhase
from probe_agents.agents.step_runner.state import StepState

__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "ExecutionContext",
    "StepOutcome",
    "StepPhase",
    "StepRunner",
    "StepState",
]
