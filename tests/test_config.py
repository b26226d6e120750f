"""Tests for configuration management."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

import polyquant.core.config as config_module
from polyquant.core.config import ConfigError, ConfigLoader, get_config

EXPECTED_TIMEOUT = 30
EXPECTED_MAX_ATTEMPTS = 5
EXPECTED_INITIAL_DELAY = 3.0
_DEFAULT_CLOB_HOST = "https://clob.polymarket.com"


class TestConfigLoader:
    """Test suite for ConfigLoader."""

    def test_load_default_config(self) -> None:
        """Load the packaged settings.yaml with the documented defaults."""
        loader = ConfigLoader()
        assert loader.get("environment") is not None
        assert loader.get("exchange.clob_host") == _DEFAULT_CLOB_HOST
        assert loader.get("reasoning.api_key") == ""

    def test_default_presets_present(self) -> None:
        """Ship the conservative, optimal and aggressive presets."""
        loader = ConfigLoader()
        assert set(loader.get_section("presets")) == {"conservative", "optimal", "aggressive"}

    def test_get_with_dot_notation(self, tmp_path: Path) -> None:
        """Test getting config values with dot notation."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
reasoning:
  model: test-model
  base_url: https://test.example.com
environment: test
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("reasoning.model") == "test-model"
        assert loader.get("reasoning.base_url") == "https://test.example.com"
        assert loader.get("environment") == "test"

    def test_get_with_default(self, tmp_path: Path) -> None:
        """Test getting non-existent key returns default."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("environment: test")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("nonexistent.key", "default_value") == "default_value"

    def test_env_var_substitution(self, tmp_path: Path) -> None:
        """Test environment variable substitution."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("""
reasoning:
  api_key: ${TEST_API_KEY}
  base_url: ${TEST_BASE_URL:https://default.com}
""")

        with patch.dict(os.environ, {"TEST_API_KEY": "env_key_123"}):
            loader = ConfigLoader(config_dir=tmp_path)
            assert loader.get("reasoning.api_key") == "env_key_123"
            assert loader.get("reasoning.base_url") == "https://default.com"

    def test_local_settings_override(self, tmp_path: Path) -> None:
        """Test that local settings override base settings."""
        (tmp_path / "settings.yaml").write_text("""
exchange:
  clob_host: https://base.com
  timeout: 30
environment: production
""")
        (tmp_path / "settings.local.yaml").write_text("""
exchange:
  clob_host: https://local.com
environment: development
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("exchange.clob_host") == "https://local.com"
        assert loader.get("exchange.timeout") == EXPECTED_TIMEOUT
        assert loader.get("environment") == "development"

    def test_get_section(self, tmp_path: Path) -> None:
        """Return a mapping section as a dict."""
        (tmp_path / "settings.yaml").write_text("""
simulation:
  usdc_balance: 500
  gas_balance: 2
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get_section("simulation") == {"usdc_balance": 500, "gas_balance": 2}

    def test_get_section_missing_returns_empty(self, tmp_path: Path) -> None:
        """Return an empty dict for an absent section."""
        (tmp_path / "settings.yaml").write_text("environment: test")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get_section("presets") == {}

    def test_get_section_rejects_scalar(self, tmp_path: Path) -> None:
        """Raise ConfigError when a section is not a mapping."""
        (tmp_path / "settings.yaml").write_text("presets: fast")

        loader = ConfigLoader(config_dir=tmp_path)
        with pytest.raises(ConfigError, match="presets config must be a dict"):
            loader.get_section("presets")

    def test_full_string_unresolved_env_var_raises_config_error(self, tmp_path: Path) -> None:
        """Raise ConfigError when env var is unset and has no default."""
        (tmp_path / "settings.yaml").write_text("""
reasoning:
  api_key: ${NONEXISTENT_POLYQUANT_VAR}
""")

        with pytest.raises(ConfigError, match="Required environment variable"):
            ConfigLoader(config_dir=tmp_path)

    def test_embedded_env_var_reference_raises_config_error(self, tmp_path: Path) -> None:
        """Raise ConfigError when an env var reference is embedded in a larger string."""
        (tmp_path / "settings.yaml").write_text("""
reasoning:
  base_url: https://api.example.com/${NONEXISTENT_PATH_VAR}/v1
""")

        with pytest.raises(ConfigError, match="Unresolved environment variable reference"):
            ConfigLoader(config_dir=tmp_path)

    def test_empty_default_resolves_to_empty_string(self, tmp_path: Path) -> None:
        """Resolve ``${VAR:}`` to an empty string when the variable is unset."""
        (tmp_path / "settings.yaml").write_text("""
reasoning:
  api_key: ${NONEXISTENT_VAR_WITH_EMPTY_DEFAULT:}
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("reasoning.api_key") == ""

    def test_deep_merge(self, tmp_path: Path) -> None:
        """Test deep merging of nested configurations."""
        (tmp_path / "settings.yaml").write_text("""
reasoning:
  model: base-model
  timeout: 30
  retry:
    max_attempts: 3
    initial_delay: 3.0
""")
        (tmp_path / "settings.local.yaml").write_text("""
reasoning:
  model: local-model
  retry:
    max_attempts: 5
""")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("reasoning.model") == "local-model"
        assert loader.get("reasoning.timeout") == EXPECTED_TIMEOUT
        assert loader.get("reasoning.retry.max_attempts") == EXPECTED_MAX_ATTEMPTS
        assert loader.get("reasoning.retry.initial_delay") == EXPECTED_INITIAL_DELAY


class TestGetConfig:
    """Test suite for the lazy singleton get_config() function."""

    def test_returns_config_loader_instance(self) -> None:
        """Return a ConfigLoader instance on first call."""
        assert isinstance(get_config(), ConfigLoader)

    def test_returns_same_instance(self) -> None:
        """Return the same ConfigLoader on subsequent calls."""
        first = get_config()
        second = get_config()
        assert first is second
        assert config_module._config is first
