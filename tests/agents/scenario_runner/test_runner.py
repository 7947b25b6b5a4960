"""
Tests for the ScenarioRunner.

These tests verify scenario sequencing over a real StepRunner with fakes:
1. Step outcomes aggregate into passed/failed/skipped counts and bugs
2. Action history threads from one step into the next
3. abort_on_failure stops only after a budget-exhausting step
4. Session-file auth restores the browser session before the first step
5. Setup failures become a scenario-level error, not a step bug
6. Accumulated page errors are cleared before every step
7. Recorder failures never change the outcome
8. A failing error reset between steps is isolated, and an aggregation
   failure still ends the session with a scenario-level error
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from conftest import FakeBrowser, FakeExecutor, FakeOracle, FakePageState, FakeRecorder
from probe_agents.agents.scenario_runner.runner import ScenarioRunner
from probe_agents.agents.step_runner.graph import StepRunner
from probe_agents.agents.validator.models import SemanticVerdict
from probe_agents.exceptions import OracleError
from probe_agents.schemas.scenario import (
    AuthConfig,
    AuthType,
    Scenario,
    SetupConfig,
    Step,
    TeardownConfig,
)
from probe_agents.schemas.session import EventKind


@pytest.fixture
def runner(
    page_state: FakePageState,
    executor: FakeExecutor,
    oracle: FakeOracle,
    browser: FakeBrowser,
    recorder: FakeRecorder,
) -> ScenarioRunner:
    step_runner = StepRunner(page_state, executor, oracle, browser, recorder=recorder)
    return ScenarioRunner(
        step_runner,
        page_state,
        browser=browser,
        recorder=recorder,
        base_url="http://localhost:5173",
    )


def _with_setup(scenario: Scenario, setup: SetupConfig) -> Scenario:
    return scenario.model_copy(update={"setup": setup})


# =============================================================================
# Test aggregation
# =============================================================================


class TestAggregation:
    """Test outcome aggregation across steps."""

    @pytest.mark.asyncio
    async def test_all_steps_pass(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        recorder: FakeRecorder,
    ) -> None:
        """Test a fully passing scenario."""
        outcome = await runner.run_scenario(scenario)

        assert outcome.success is True
        assert outcome.session_id == "session-1"
        assert outcome.total_steps == 2
        assert outcome.passed_steps == 2
        assert outcome.failed_steps == 0
        assert outcome.skipped_steps == 0
        assert outcome.bugs == []
        assert outcome.error is None
        assert [o.step_name for o in outcome.step_outcomes] == ["Save record", "Open list"]
        assert recorder.events[0].kind == EventKind.SESSION_START
        assert recorder.events[-1].kind == EventKind.SESSION_END
        assert recorder.events[-1].payload["passed_steps"] == 2
        assert recorder.outcomes == [outcome]

    @pytest.mark.asyncio
    async def test_history_threads_between_steps(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        oracle: FakeOracle,
    ) -> None:
        """Test that step 2 plans with step 1's actions as context."""
        await runner.run_scenario(scenario)

        assert oracle.plan_calls[0][1] == []
        assert oracle.plan_calls[1][1] == ["click on el-1"]

    @pytest.mark.asyncio
    async def test_failures_collect_bugs_without_abort(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        oracle: FakeOracle,
    ) -> None:
        """Test that every failing step contributes exactly one bug."""
        oracle.verdicts = [SemanticVerdict(passed=False, reason="no change")]

        outcome = await runner.run_scenario(scenario)

        assert outcome.success is False
        assert outcome.failed_steps == 2
        assert outcome.skipped_steps == 0
        assert outcome.aborted is False
        assert len(outcome.bugs) == 2

    @pytest.mark.asyncio
    async def test_run_all(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        recorder: FakeRecorder,
    ) -> None:
        """Test running several scenarios in order."""
        other = Scenario(name="Other", steps=[Step(name="Look", goal="Look around")])

        outcomes = await runner.run_all([scenario, other])

        assert [o.scenario_name for o in outcomes] == ["Records", "Other"]
        assert recorder.started == ["Records", "Other"]


# =============================================================================
# Test early abort
# =============================================================================


class TestAbortOnFailure:
    """Test the abort_on_failure policy."""

    @pytest.mark.asyncio
    async def test_stops_after_budget_exhausted(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        oracle: FakeOracle,
    ) -> None:
        """Test that remaining steps are skipped after an exhausted budget."""
        oracle.verdicts = [SemanticVerdict(passed=False, reason="no change")]

        outcome = await runner.run_scenario(scenario, abort_on_failure=True)

        assert outcome.aborted is True
        assert outcome.failed_steps == 1
        assert outcome.skipped_steps == 1
        assert len(outcome.step_outcomes) == 1
        assert len(outcome.bugs) == 1

    @pytest.mark.asyncio
    async def test_unrecovered_healing_does_not_abort(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        oracle: FakeOracle,
    ) -> None:
        """Test that a step ending before its budget does not trigger the abort."""
        oracle.plan_error = OracleError("model unavailable")

        outcome = await runner.run_scenario(scenario, abort_on_failure=True)

        assert outcome.aborted is False
        assert len(outcome.step_outcomes) == 2
        assert all(not o.budget_exhausted for o in outcome.step_outcomes)


# =============================================================================
# Test setup and teardown
# =============================================================================


class TestSetup:
    """Test scenario setup handling."""

    @pytest.mark.asyncio
    async def test_session_auth_and_preconditions(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        browser: FakeBrowser,
        oracle: FakeOracle,
    ) -> None:
        """Test session restoration and advisory preconditions."""
        scenario = _with_setup(
            scenario,
            SetupConfig(
                auth=AuthConfig(type=AuthType.SESSION, session_file=".auth/user.json"),
                preconditions=["User has one contact"],
            ),
        )

        outcome = await runner.run_scenario(scenario)

        assert outcome.success is True
        assert browser.calls[0] == ("load_session", (".auth/user.json",))
        assert oracle.plan_calls[0][1] == ["[Precondition] User has one contact"]

    @pytest.mark.asyncio
    async def test_session_auth_without_file_is_setup_error(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        executor: FakeExecutor,
    ) -> None:
        """Test that a setup failure skips every step."""
        scenario = _with_setup(
            scenario, SetupConfig(auth=AuthConfig(type=AuthType.SESSION))
        )

        outcome = await runner.run_scenario(scenario)

        assert outcome.success is False
        assert outcome.error == "Setup failed: Session auth requires a session_file"
        assert outcome.skipped_steps == 2
        assert outcome.bugs == []
        assert executor.executed == []

    @pytest.mark.asyncio
    async def test_other_auth_types_continue(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        browser: FakeBrowser,
    ) -> None:
        """Test that interactive auth types are skipped with a warning."""
        scenario = _with_setup(
            scenario,
            SetupConfig(auth=AuthConfig(type=AuthType.GOOGLE, email="qa@example.com")),
        )

        outcome = await runner.run_scenario(scenario)

        assert outcome.success is True
        assert "load_session" not in browser.names()

    @pytest.mark.asyncio
    async def test_teardown_is_not_executed(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        executor: FakeExecutor,
    ) -> None:
        """Test that teardown cleanup items cause no actions."""
        scenario = scenario.model_copy(
            update={"teardown": TeardownConfig(cleanup=["Delete test contact"])}
        )

        outcome = await runner.run_scenario(scenario)

        assert outcome.success is True
        assert len(executor.executed) == 2


# =============================================================================
# Test per-step hygiene
# =============================================================================


class TestStepHygiene:
    """Test behaviour around each step."""

    @pytest.mark.asyncio
    async def test_errors_cleared_before_each_step(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        page_state: FakePageState,
    ) -> None:
        """Test clear_errors is called once per step."""
        await runner.run_scenario(scenario)

        assert page_state.clear_calls == 2

    @pytest.mark.asyncio
    async def test_failing_recorder_is_isolated(
        self,
        page_state: FakePageState,
        executor: FakeExecutor,
        oracle: FakeOracle,
        browser: FakeBrowser,
        scenario: Scenario,
    ) -> None:
        """Test a recorder that always raises."""
        recorder = FakeRecorder(fail=True)
        step_runner = StepRunner(page_state, executor, oracle, browser, recorder=recorder)
        runner = ScenarioRunner(step_runner, page_state, browser=browser, recorder=recorder)

        outcome = await runner.run_scenario(scenario)

        assert outcome.success is True
        assert outcome.session_id
        assert outcome.passed_steps == 2

    @pytest.mark.asyncio
    async def test_failing_clear_errors_does_not_end_scenario(
        self,
        executor: FakeExecutor,
        oracle: FakeOracle,
        browser: FakeBrowser,
        recorder: FakeRecorder,
    ) -> None:
        """Test a clear_errors failure between steps is logged and the run continues."""

        class FlakyPageState(FakePageState):
            async def clear_errors(self) -> None:
                await super().clear_errors()
                if self.clear_calls == 2:
                    raise RuntimeError("Target closed")

        page_state = FlakyPageState()
        step_runner = StepRunner(page_state, executor, oracle, browser, recorder=recorder)
        runner = ScenarioRunner(step_runner, page_state, browser=browser, recorder=recorder)
        scenario = Scenario(
            name="Three steps",
            steps=[
                Step(name="One", goal="Open the first page"),
                Step(name="Two", goal="Open the second page"),
                Step(name="Three", goal="Open the third page"),
            ],
        )

        outcome = await runner.run_scenario(scenario)

        assert page_state.clear_calls == 3
        assert outcome.error is None
        assert outcome.success is True
        assert outcome.passed_steps == 3
        assert outcome.skipped_steps == 0

    @pytest.mark.asyncio
    async def test_aggregation_failure_sets_error(
        self,
        runner: ScenarioRunner,
        scenario: Scenario,
        recorder: FakeRecorder,
    ) -> None:
        """Test an aggregation error still yields a recorded, failed outcome."""
        with patch.object(ScenarioRunner, "_aggregate", side_effect=RuntimeError("boom")):
            outcome = await runner.run_scenario(scenario)

        assert outcome.success is False
        assert outcome.error == "Aggregation failed: boom"
        assert outcome.total_steps == 2
        assert len(outcome.step_outcomes) == 2
        assert recorder.outcomes == [outcome]
        assert recorder.events[-1].kind == EventKind.SESSION_END
