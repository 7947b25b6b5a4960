"""
YAML scenario loader.

Scenario files are parsed with ``yaml.safe_load`` and validated into the
frozen Scenario model. Keys may be written in snake_case or in the camelCase
spelling used by older scenario files (``startUrl``, ``maxAttempts``,
``timeout``, ``sessionFile``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from probe_agents.exceptions import ScenarioLoadError
from probe_agents.schemas.scenario import Scenario

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")

KEY_ALIASES = {
    "startUrl": "start_url",
    "maxAttempts": "max_attempts",
    "timeout": "timeout_ms",
    "timeoutMs": "timeout_ms",
    "sessionFile": "session_file",
}


def normalize_keys(value: Any) -> Any:
    """Rewrite legacy camelCase keys to their snake_case field names."""
    if isinstance(value, dict):
        return {KEY_ALIASES.get(k, k): normalize_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [normalize_keys(v) for v in value]
    return value


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic errors as ``loc: message`` pairs joined by ``; ``."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


class ScenarioLoader:
    """Loads scenarios from a directory of YAML files.

    Attributes:
        directory: Directory scenario paths are resolved against
    """

    def __init__(self, directory: str | Path = "./scenarios") -> None:
        self.directory = Path(directory)

    def resolve(self, path: str | Path) -> Path:
        """Resolve ``path`` against the scenario directory unless absolute."""
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.directory / candidate

    def load(self, path: str | Path) -> Scenario:
        """Load and validate one scenario file.

        Args:
            path: File path, absolute or relative to the scenario directory

        Returns:
            The validated Scenario

        Raises:
            ScenarioLoadError: If the file is missing, unparsable or invalid
        """
        full_path = self.resolve(path)
        if not full_path.is_file():
            raise ScenarioLoadError(f"Scenario file not found: {full_path}")

        try:
            with open(full_path, encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ScenarioLoadError(f"Failed to parse YAML file {full_path}: {e}") from e

        if not isinstance(raw, dict):
            raise ScenarioLoadError(
                f"Invalid scenario file \"{full_path}\": expected a mapping at the top level"
            )

        try:
            scenario = Scenario.model_validate(normalize_keys(raw))
        except ValidationError as e:
            raise ScenarioLoadError(
                f"Invalid scenario file \"{full_path}\": {format_validation_error(e)}"
            ) from e

        logger.debug("Loaded scenario '%s' with %d steps", scenario.name, len(scenario.steps))
        return scenario

    def scenario_files(self) -> list[Path]:
        """YAML files directly inside the scenario directory, sorted by name."""
        if not self.directory.is_dir():
            raise ScenarioLoadError(f"Scenario directory not found: {self.directory}")
        return sorted(
            p
            for p in self.directory.iterdir()
            if p.is_file() and p.suffix.lower() in YAML_SUFFIXES
        )

    def load_all(self) -> list[Scenario]:
        """Load every scenario in the directory; the first invalid file aborts."""
        scenarios = [self.load(path) for path in self.scenario_files()]
        logger.info("Loaded %d scenarios from %s", len(scenarios), self.directory)
        return scenarios

    def load_by_tags(self, tags: list[str]) -> list[Scenario]:
        """Load the scenarios that carry at least one of ``tags``."""
        wanted = set(tags)
        return [s for s in self.load_all() if wanted.intersection(s.tags)]
