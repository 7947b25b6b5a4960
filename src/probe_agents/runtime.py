"""
Wiring for a complete Probe run.

build_step_runner and build_scenario_runner assemble the runners from
ProbeSettings and already-created collaborators. ProbeRuntime owns a live
browser: it launches Chromium, creates the Playwright collaborators, the LLM
oracle and the session recorder, and closes the browser on exit.

Example:
    settings = load_settings()
    configure_logging(settings.logging.level, settings.logging.format)
    async with ProbeRuntime(settings) as runtime:
        outcomes = await runtime.run(tags=["smoke"])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from probe_agents.agents.scenario_runner.runner import ScenarioRunner
from probe_agents.agents.step_runner.graph import StepRunner
from probe_agents.browser.executor import PlaywrightActionExecutor
from probe_agents.browser.page_state import PlaywrightPageState
from probe_agents.browser.playwright_driver import PlaywrightBrowserDriver
from probe_agents.browser.session import BrowserSession
from probe_agents.config.settings import ProbeSettings
from probe_agents.exceptions import EnvironmentIssueError
from probe_agents.oracle.llm_oracle import LLMDecisionOracle
from probe_agents.recording.session_recorder import JsonlSessionRecorder
from probe_agents.scenarios.loader import ScenarioLoader

if TYPE_CHECKING:
    from probe_agents.agents.scenario_runner.models import ScenarioOutcome
    from probe_agents.interfaces import (
        ActionExecutor,
        BrowserDriver,
        DecisionOracle,
        PageStateProvider,
        SessionRecorder,
    )
    from probe_agents.schemas.scenario import Scenario

logger = logging.getLogger(__name__)


def build_step_runner(
    settings: ProbeSettings,
    page_state: PageStateProvider,
    executor: ActionExecutor,
    oracle: DecisionOracle,
    browser: BrowserDriver,
    recorder: SessionRecorder | None = None,
) -> StepRunner:
    """StepRunner using the attempt budget, stability timeout and history window from settings."""
    agent = settings.agent
    return StepRunner(
        page_state,
        executor,
        oracle,
        browser,
        recorder=recorder,
        default_max_attempts=agent.max_attempts,
        stable_timeout_ms=agent.stable_timeout_ms,
        history_window=agent.history_window,
    )


def build_scenario_runner(
    settings: ProbeSettings,
    step_runner: StepRunner,
    page_state: PageStateProvider,
    browser: BrowserDriver,
    recorder: SessionRecorder | None = None,
) -> ScenarioRunner:
    """ScenarioRunner bound to the configured application base URL."""
    return ScenarioRunner(
        step_runner,
        page_state,
        browser=browser,
        recorder=recorder,
        base_url=settings.app.base_url,
    )


class ProbeRuntime:
    """A browser-backed Probe agent built from settings.

    Attributes:
        settings: Run configuration
        oracle: Decision oracle (LLM-backed unless supplied)
        recorder: Session recorder writing under ``settings.logging.directory``
        session: Browser lifecycle owner
        loader: Scenario loader reading ``settings.scenarios.directory``
        driver: Browser driver, set once started
        scenario_runner: Scenario runner, set once started
    """

    def __init__(
        self,
        settings: ProbeSettings | None = None,
        oracle: DecisionOracle | None = None,
        recorder: SessionRecorder | None = None,
        session: BrowserSession | None = None,
    ) -> None:
        self.settings = settings or ProbeSettings()
        self.oracle = oracle or LLMDecisionOracle()
        self.recorder = recorder or JsonlSessionRecorder(self.settings.logging.directory)
        self.session = session or BrowserSession(self.settings.browser)
        self.loader = ScenarioLoader(self.settings.scenarios.directory)
        self.driver: PlaywrightBrowserDriver | None = None
        self.scenario_runner: ScenarioRunner | None = None

    async def start(self) -> ScenarioRunner:
        """Launch the browser and assemble the runners."""
        page = await self.session.launch()
        self.driver = PlaywrightBrowserDriver(page, self.settings.browser.timeout_ms)
        page_state = PlaywrightPageState(self.driver)
        executor = PlaywrightActionExecutor(self.driver)

        step_runner = build_step_runner(
            self.settings, page_state, executor, self.oracle, self.driver, self.recorder
        )
        self.scenario_runner = build_scenario_runner(
            self.settings, step_runner, page_state, self.driver, self.recorder
        )
        logger.info("Probe runtime started against %s", self.settings.app.base_url)
        return self.scenario_runner

    async def run(
        self,
        scenarios: list[Scenario] | None = None,
        tags: list[str] | None = None,
    ) -> list[ScenarioOutcome]:
        """Run scenarios one after another.

        Args:
            scenarios: Scenarios to run; loaded from the scenario directory when None
            tags: Restrict loaded scenarios to these tags

        Returns:
            One ScenarioOutcome per scenario

        Raises:
            EnvironmentIssueError: If the runtime has not been started
        """
        if self.scenario_runner is None or self.driver is None:
            raise EnvironmentIssueError("Probe runtime not started; call start() first")

        if scenarios is None:
            scenarios = self.loader.load_by_tags(tags) if tags else self.loader.load_all()

        results: list[ScenarioOutcome] = []
        for scenario in scenarios:
            await self._open_app(scenario)
            results.append(
                await self.scenario_runner.run_scenario(
                    scenario, abort_on_failure=self.settings.agent.abort_on_failure
                )
            )
        return results

    async def _open_app(self, scenario: Scenario) -> None:
        # Steps with a start location navigate on their own
        if scenario.steps[0].start_url or self.driver is None:
            return
        try:
            await self.driver.navigate(self.settings.app.base_url)
        except Exception as e:
            logger.error(
                "Could not open %s before scenario '%s': %s",
                self.settings.app.base_url,
                scenario.name,
                e,
            )

    async def close(self) -> None:
        await self.session.close()
        self.driver = None
        self.scenario_runner = None

    async def __aenter__(self) -> ProbeRuntime:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
