"""
Run configuration for the Probe agent.

Settings come from three layers, later ones winning:
1. Model defaults
2. A YAML file (``probe.config.yaml`` by default; a missing file is not an error)
3. Environment overrides:
   - PROBE_BASE_URL: app.base_url
   - PROBE_HEADLESS: browser.headless (true/false, 1/0, yes/no, on/off)
   - PROBE_MAX_ATTEMPTS: agent.max_attempts
   - LOG_LEVEL: logging.level
   - LOG_FORMAT: logging.format (text or json)
   - PROBE_LOG_DIR: logging.directory
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from probe_agents.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "probe.config.yaml"

TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
FALSE_VALUES = frozenset({"0", "false", "no", "off"})


# =============================================================================
# Settings Sections
# =============================================================================


class AppSettings(BaseModel):
    """Application under test."""

    base_url: str = Field(default="http://localhost:5173", description="Base URL of the app")
    name: str = Field(default="", description="Display name of the app")


class BrowserSettings(BaseModel):
    """Browser launch options."""

    headless: bool = Field(default=False, description="Run the browser headless")
    timeout_ms: int = Field(default=30000, gt=0, description="Default page timeout")
    slow_mo_ms: int = Field(default=0, ge=0, description="Delay between browser operations")
    viewport_width: int = Field(default=1280, gt=0, description="Viewport width in pixels")
    viewport_height: int = Field(default=720, gt=0, description="Viewport height in pixels")


class AgentSettings(BaseModel):
    """Step execution policy.

    Attributes:
        max_attempts: Default attempt budget for steps without an override
        stable_timeout_ms: Default stability-wait timeout
        history_window: Action-history entries passed to the planner
        abort_on_failure: Stop a scenario after a step exhausts its budget
    """

    max_attempts: int = Field(default=3, ge=1)
    stable_timeout_ms: int = Field(default=5000, gt=0)
    history_window: int = Field(default=10, ge=1)
    abort_on_failure: bool = False


class LoggingSettings(BaseModel):
    """Log output and session recording."""

    level: str = Field(default="INFO", description="Root log level")
    format: str = Field(default="text", description="text or json")
    directory: str = Field(default="./logs", description="Session recording directory")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        level = str(value).upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {value}")
        return level

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, value: str) -> str:
        fmt = str(value).lower()
        if fmt not in ("text", "json"):
            raise ValueError(f"log format must be 'text' or 'json', got: {value}")
        return fmt


class ScenarioSettings(BaseModel):
    """Where scenario files live."""

    directory: str = Field(default="./scenarios", description="Scenario YAML directory")


class ProbeSettings(BaseModel):
    """Complete run configuration."""

    app: AppSettings = Field(default_factory=AppSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    scenarios: ScenarioSettings = Field(default_factory=ScenarioSettings)


# =============================================================================
# Loading
# =============================================================================


def parse_bool(name: str, raw: str) -> bool:
    """Parse a boolean environment value.

    Raises:
        ConfigurationError: If ``raw`` is not a recognised boolean spelling
    """
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got: {raw!r}")


def _env_overrides() -> dict[str, dict[str, Any]]:
    overrides: dict[str, dict[str, Any]] = {}

    def put(section: str, key: str, value: Any) -> None:
        overrides.setdefault(section, {})[key] = value

    if base_url := os.environ.get("PROBE_BASE_URL"):
        put("app", "base_url", base_url)
    if headless := os.environ.get("PROBE_HEADLESS"):
        put("browser", "headless", parse_bool("PROBE_HEADLESS", headless))
    if max_attempts := os.environ.get("PROBE_MAX_ATTEMPTS"):
        try:
            put("agent", "max_attempts", int(max_attempts))
        except ValueError as e:
            raise ConfigurationError(
                f"PROBE_MAX_ATTEMPTS must be an integer, got: {max_attempts!r}"
            ) from e
    if level := os.environ.get("LOG_LEVEL"):
        put("logging", "level", level)
    if fmt := os.environ.get("LOG_FORMAT"):
        put("logging", "format", fmt)
    if log_dir := os.environ.get("PROBE_LOG_DIR"):
        put("logging", "directory", log_dir)

    return overrides


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        logger.warning("Config file not found at %s, using defaults", path)
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def load_settings(path: str | Path | None = None) -> ProbeSettings:
    """Load settings from YAML and the environment.

    Args:
        path: Config file path; defaults to ``probe.config.yaml``

    Returns:
        Validated ProbeSettings

    Raises:
        ConfigurationError: If the file or any override is invalid
    """
    config_path = Path(path) if path is not None else Path(DEFAULT_CONFIG_PATH)
    data = _read_yaml(config_path)

    for section, values in _env_overrides().items():
        current = data.get(section) or {}
        if not isinstance(current, dict):
            raise ConfigurationError(f"Config section '{section}' must be a mapping")
        data[section] = {**current, **values}

    try:
        settings = ProbeSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    logger.debug("Loaded settings for %s", settings.app.base_url)
    return settings
