# src/llmregistry/config/__init__.py
"""
Configuration module for the llmregistry library.

Settings are validated with pydantic from a plain dictionary (usually the
``[llmregistry]`` table of a TOML file) and may be overridden through
environment variables.

Environment variables:
    - Prefix: LLMREGISTRY_
    - Nested keys use double underscores: LLMREGISTRY_DEFAULT_WEIGHTS__COST
"""

from .models import (
    DEFAULT_WEIGHT_PROFILES,
    SCORING_METRICS,
    RegistrySettings,
    SelectionWeights,
    load_registry_settings,
    load_registry_settings_file,
)

__all__ = [
    "DEFAULT_WEIGHT_PROFILES",
    "SCORING_METRICS",
    "RegistrySettings",
    "SelectionWeights",
    "load_registry_settings",
    "load_registry_settings_file",
]
