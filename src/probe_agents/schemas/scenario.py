"""Pydantic models for scenarios and their steps.

Scenarios are loaded once from YAML and never mutated afterwards, so every
model here is frozen.
"""

from __future__ import annotations

from enum import Enum
from urllib.parse import urljoin

from pydantic import BaseModel, ConfigDict, Field

from probe_agents.schemas.assertions import Assertion


class AuthType(str, Enum):
    """How a scenario authenticates before its first step."""

    GOOGLE = "google"
    EMAIL = "email"
    SESSION = "session"


class ScreenshotMode(str, Enum):
    """When a step captures screenshots."""

    ALWAYS = "always"
    ON_ERROR = "on_error"
    NEVER = "never"


class AuthConfig(BaseModel):
    """Authentication reference for scenario setup.

    Attributes:
        type: Authentication mechanism
        session_file: Saved browser storage state, used by ``session``
        email: Account email for ``google`` / ``email`` flows
    """

    model_config = ConfigDict(frozen=True)

    type: AuthType
    session_file: str | None = None
    email: str | None = None


class SetupConfig(BaseModel):
    """Scenario-level setup."""

    model_config = ConfigDict(frozen=True)

    auth: AuthConfig | None = None
    preconditions: list[str] = Field(default_factory=list)


class TeardownConfig(BaseModel):
    """Scenario-level teardown notes."""

    model_config = ConfigDict(frozen=True)

    cleanup: list[str] = Field(default_factory=list)


class Step(BaseModel):
    """One goal-directed step of a scenario.

    Attributes:
        name: Step name
        goal: Natural-language goal handed to the oracle
        start_url: Optional fixed location to start each attempt from
        assertions: Checks evaluated against the after-observation
        max_attempts: Attempt budget override
        timeout_ms: Stability-wait timeout override
        screenshot: Screenshot capture mode
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    goal: str = Field(min_length=1)
    start_url: str | None = None
    assertions: list[Assertion] = Field(default_factory=list)
    max_attempts: int | None = Field(default=None, ge=1)
    timeout_ms: int | None = Field(default=None, gt=0)
    screenshot: ScreenshotMode = ScreenshotMode.ON_ERROR

    def attempt_budget(self, default: int = 3) -> int:
        """Effective attempt budget: the override if set, else ``default``; never below 1."""
        return max(1, self.max_attempts if self.max_attempts is not None else default)

    def start_location(self, base_url: str = "") -> str | None:
        """``start_url`` joined onto ``base_url`` when relative; None if unset."""
        if not self.start_url:
            return None
        return urljoin(base_url, self.start_url) if base_url else self.start_url


class Scenario(BaseModel):
    """An ordered sequence of steps with optional setup and teardown."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    steps: list[Step] = Field(min_length=1)
    setup: SetupConfig | None = None
    teardown: TeardownConfig | None = None
