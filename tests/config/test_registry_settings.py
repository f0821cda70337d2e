# tests/config/test_registry_settings.py
"""
Tests for registry configuration loading.

Tests cover:
- RegistrySettings defaults and validation
- Weight profiles (built-in and user-defined)
- Loading from nested dictionaries and TOML files
- LLMREGISTRY_ environment overrides
"""

import textwrap
from pathlib import Path

import pytest

from llmregistry.config import (
    DEFAULT_WEIGHT_PROFILES,
    RegistrySettings,
    SelectionWeights,
    load_registry_settings,
    load_registry_settings_file,
)
from llmregistry.exceptions import ConfigError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_toml(path: Path, content: str) -> str:
    path.write_text(textwrap.dedent(content))
    return str(path)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestSelectionWeights:
    def test_defaults_are_zero(self):
        weights = SelectionWeights()
        assert weights.is_zero()
        assert weights.as_dict() == {"cost": 0.0, "speed": 0.0, "quality": 0.0}

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            SelectionWeights(cost=-1)

    def test_unknown_metric_rejected(self):
        with pytest.raises(ValueError):
            SelectionWeights(latency=1.0)

    def test_weights_need_not_sum_to_one(self):
        assert SelectionWeights(cost=3, quality=2).as_dict()["cost"] == 3.0


class TestRegistrySettings:
    def test_defaults(self):
        settings = RegistrySettings()
        assert settings.fetch_timeout_seconds == 30.0
        assert settings.default_cost_per_million_tokens is None
        assert settings.default_weights is None
        assert settings.overrides == []

    def test_builtin_profiles(self):
        assert set(DEFAULT_WEIGHT_PROFILES) == {"balanced", "cost_priority", "performance"}
        assert RegistrySettings().resolve_profile("balanced") == SelectionWeights(cost=0.5, speed=0.3, quality=0.2)

    def test_user_profile_shadows_builtin(self):
        settings = RegistrySettings(profiles={"balanced": {"cost": 1.0}, "mine": {"speed": 1.0}})
        assert settings.resolve_profile("balanced") == SelectionWeights(cost=1.0)
        assert settings.resolve_profile("mine").speed == 1.0
        assert settings.resolve_profile("unknown") is None
        assert set(settings.all_profiles()) == {"balanced", "cost_priority", "performance", "mine"}

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            RegistrySettings(fetch_timeout_seconds=0)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError):
            RegistrySettings(refresh_interval=5)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoadRegistrySettings:
    """Tests for load_registry_settings()."""

    def test_none_gives_defaults(self):
        settings = load_registry_settings(None, environ={})
        assert settings == RegistrySettings()

    def test_navigates_section_path(self):
        config = {"app": {"llmregistry": {"fetch_timeout_seconds": 5}}}
        settings = load_registry_settings(config, section_path="app.llmregistry", environ={})
        assert settings.fetch_timeout_seconds == 5

    def test_missing_section_uses_defaults(self, caplog):
        settings = load_registry_settings({"other": {}}, environ={})
        assert settings == RegistrySettings()
        assert "not found" in caplog.text

    def test_non_table_section_rejected(self):
        with pytest.raises(ConfigError, match="must be a table"):
            load_registry_settings({"llmregistry": "oops"}, environ={})

    def test_validation_error_becomes_config_error(self):
        with pytest.raises(ConfigError, match="Invalid registry configuration"):
            load_registry_settings({"llmregistry": {"fetch_timeout_seconds": -1}}, environ={})

    def test_environment_overrides(self):
        environ = {
            "LLMREGISTRY_FETCH_TIMEOUT_SECONDS": "12.5",
            "LLMREGISTRY_DEFAULT_WEIGHTS__COST": "0.7",
            "UNRELATED": "x",
        }
        config = {"llmregistry": {"fetch_timeout_seconds": 5, "default_weights": {"speed": 0.3}}}
        settings = load_registry_settings(config, environ=environ)

        assert settings.fetch_timeout_seconds == 12.5
        assert settings.default_weights == SelectionWeights(cost=0.7, speed=0.3)

    def test_environment_overrides_disabled(self):
        settings = load_registry_settings(
            {}, env_prefix=None, environ={"LLMREGISTRY_FETCH_TIMEOUT_SECONDS": "1"}
        )
        assert settings.fetch_timeout_seconds == 30.0


class TestLoadRegistrySettingsFile:
    def test_reads_toml(self, tmp_path):
        path = _write_toml(
            tmp_path / "config.toml",
            """\
            [llmregistry]
            fetch_timeout_seconds = 8
            default_cost_per_million_tokens = 4.0

            [llmregistry.profiles.cheap]
            cost = 1.0

            [[llmregistry.overrides]]
            model_id = "openai/gpt-4o"
            patch = { context_window = 64000 }

            [llmregistry.logging]
            console_enabled = true
            """,
        )
        settings = load_registry_settings_file(path, env_prefix=None)

        assert settings.fetch_timeout_seconds == 8
        assert settings.default_cost_per_million_tokens == 4.0
        assert settings.resolve_profile("cheap") == SelectionWeights(cost=1.0)
        assert settings.overrides == [{"model_id": "openai/gpt-4o", "patch": {"context_window": 64000}}]
        assert settings.logging == {"console_enabled": True}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_registry_settings_file(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path):
        path = _write_toml(tmp_path / "broken.toml", "[llmregistry\nfetch = ")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_registry_settings_file(path)
