# src/llmregistry/config/models.py
"""
Pydantic models for llmregistry configuration.

The registry is configured from a plain dictionary, typically the
``[llmregistry]`` table of a TOML file:

    [llmregistry]
    fetch_timeout_seconds = 10
    default_cost_per_million_tokens = 5.0

    [llmregistry.default_weights]
    cost = 0.5
    speed = 0.3
    quality = 0.2

    [llmregistry.profiles.cheap]
    cost = 1.0

    [[llmregistry.overrides]]
    model_id = "openai/gpt-4o"
    patch = { context_window = 128000 }

These models validate that dictionary and supply defaults.
"""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import ConfigError

logger = logging.getLogger(__name__)

SCORING_METRICS: tuple[str, ...] = ("cost", "speed", "quality")


class SelectionWeights(BaseModel):
    """
    Relative importance of each scoring metric.

    Weights are non-negative and need not sum to 1. A metric that is not
    given has weight 0 and does not contribute to the score.
    """

    cost: float = Field(0.0, ge=0, description="Weight for low price")
    speed: float = Field(0.0, ge=0, description="Weight for throughput/latency")
    quality: float = Field(0.0, ge=0, description="Weight for output quality")

    model_config = ConfigDict(frozen=True, extra="forbid")

    def is_zero(self) -> bool:
        return all(getattr(self, metric) == 0 for metric in SCORING_METRICS)

    def as_dict(self) -> dict[str, float]:
        return {metric: getattr(self, metric) for metric in SCORING_METRICS}


# Built-in named profiles. User profiles with the same name replace these.
DEFAULT_WEIGHT_PROFILES: dict[str, SelectionWeights] = {
    "balanced": SelectionWeights(cost=0.5, speed=0.3, quality=0.2),
    "cost_priority": SelectionWeights(cost=0.9, speed=0.1),
    "performance": SelectionWeights(cost=0.1, speed=0.5, quality=0.4),
}


class RegistrySettings(BaseModel):
    """
    Complete registry configuration.

    Maps to: [llmregistry]

    Example:
        >>> settings = RegistrySettings(fetch_timeout_seconds=5)
        >>> settings.resolve_profile("balanced").cost
        0.5
    """

    fetch_timeout_seconds: float = Field(
        30.0, gt=0, description="Seconds a single provider or source may take to respond"
    )
    default_cost_per_million_tokens: float | None = Field(
        None,
        ge=0,
        description="Price assumed for provider entries without pricing (None keeps them unknown)",
    )
    default_weights: SelectionWeights | None = Field(
        None, description="Weights used when the selection criteria carry none"
    )
    profiles: dict[str, SelectionWeights] = Field(
        default_factory=dict, description="Named weight profiles, merged over the built-ins"
    )
    overrides: list[dict[str, Any]] = Field(
        default_factory=list, description="Override rules as mappings (see OverrideRule)"
    )
    logging: dict[str, Any] = Field(
        default_factory=dict, description="Options passed to configure_logging()"
    )

    model_config = ConfigDict(extra="forbid")

    def all_profiles(self) -> dict[str, SelectionWeights]:
        return {**DEFAULT_WEIGHT_PROFILES, **self.profiles}

    def resolve_profile(self, name: str) -> SelectionWeights | None:
        """Look up a weight profile by name, user profiles first."""
        if name in self.profiles:
            return self.profiles[name]
        return DEFAULT_WEIGHT_PROFILES.get(name)


# =============================================================================
# LOADING FUNCTIONS
# =============================================================================


def _env_overrides(prefix: str, environ: Mapping[str, str]) -> dict[str, Any]:
    """
    Collect ``<PREFIX>KEY`` environment variables into a nested dict.

    Nested keys use double underscores: ``LLMREGISTRY_DEFAULT_WEIGHTS__COST=0.7``.
    """
    overrides: dict[str, Any] = {}
    for key, value in environ.items():
        if not key.startswith(prefix):
            continue
        path = [part.lower() for part in key[len(prefix):].split("__") if part]
        if not path:
            continue
        target = overrides
        for part in path[:-1]:
            target = target.setdefault(part, {})
            if not isinstance(target, dict):
                break
        else:
            target[path[-1]] = value
    return overrides


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_registry_settings(
    config_dict: dict[str, Any] | None = None,
    section_path: str = "llmregistry",
    env_prefix: str | None = "LLMREGISTRY_",
    environ: Mapping[str, str] | None = None,
) -> RegistrySettings:
    """
    Build RegistrySettings from a nested configuration dictionary.

    Environment variables starting with ``env_prefix`` are layered on top
    of the dictionary section.

    Args:
        config_dict: Full configuration (e.g. parsed TOML). None gives defaults.
        section_path: Dot-separated path to the registry section.
        env_prefix: Prefix of environment overrides, None to disable them.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        RegistrySettings instance.

    Raises:
        ConfigError: If the resulting section does not validate.
    """
    section: Any = config_dict or {}
    for part in section_path.split(".") if (section_path and config_dict is not None) else []:
        if not isinstance(section, dict) or part not in section:
            logger.warning(f"Config path '{section_path}' not found, using defaults")
            section = {}
            break
        section = section[part]

    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{section_path}' must be a table, got {type(section).__name__}")

    if env_prefix:
        env_values = _env_overrides(env_prefix, os.environ if environ is None else environ)
        if env_values:
            logger.debug(f"Applying environment overrides: {sorted(env_values)}")
            section = _deep_merge(section, env_values)

    try:
        return RegistrySettings.model_validate(section)
    except ValidationError as e:
        raise ConfigError(f"Invalid registry configuration in '{section_path}': {e}") from e


def load_registry_settings_file(
    path: str | Path,
    section_path: str = "llmregistry",
    env_prefix: str | None = "LLMREGISTRY_",
) -> RegistrySettings:
    """
    Read a TOML file and build RegistrySettings from it.

    Raises:
        ConfigError: If the file cannot be read or parsed, or is invalid.
    """
    file_path = Path(path).expanduser()
    try:
        with open(file_path, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Configuration file not found: {file_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {file_path}: {e}") from e

    logger.debug(f"Loaded registry configuration from {file_path}")
    return load_registry_settings(data, section_path=section_path, env_prefix=env_prefix)
