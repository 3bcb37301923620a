"""Tests for configuration management."""

from pathlib import Path

import pytest

from .lib import (
    EnvConfig,
    EnvVar,
    get_cache_settings,
    get_environment,
    get_environment_info,
    get_relay_url,
    get_retry_config_values,
    get_settings_path,
    list_environment_variables,
)

# =============================================================================
# Tests for get_environment (main interface)
# =============================================================================


class TestGetEnvironment:
    """Tests for the unified get_environment interface."""

    @pytest.mark.unit
    def test_returns_default_when_not_set(self, monkeypatch):
        """Returns default value when env var is not set."""
        monkeypatch.delenv("GENBRIDGE_CACHE_MAX_SIZE", raising=False)
        assert get_environment(EnvVar.CACHE_MAX_SIZE) == 50

    @pytest.mark.unit
    def test_override_takes_priority(self, monkeypatch):
        """Override parameter takes highest priority."""
        monkeypatch.setenv("GENBRIDGE_CACHE_MAX_SIZE", "99")
        assert get_environment(EnvVar.CACHE_MAX_SIZE, override=5) == 5

    @pytest.mark.unit
    def test_env_var_overrides_default(self, monkeypatch):
        """Environment variable overrides default value."""
        monkeypatch.setenv("GENBRIDGE_RETRY_MAX_ATTEMPTS", "7")
        result = get_environment(EnvVar.RETRY_MAX_ATTEMPTS)
        assert result == 7
        assert isinstance(result, int)

    @pytest.mark.unit
    def test_float_type_conversion(self, monkeypatch):
        """Float type conversion from string."""
        monkeypatch.setenv("GENBRIDGE_CACHE_TTL", "12.5")
        result = get_environment(EnvVar.CACHE_TTL)
        assert result == 12.5
        assert isinstance(result, float)

    @pytest.mark.unit
    def test_invalid_float_returns_default(self, monkeypatch):
        """Invalid float value returns default."""
        monkeypatch.setenv("GENBRIDGE_BATCH_DELAY", "soon")
        assert get_environment(EnvVar.BATCH_DELAY) == 0.2

    @pytest.mark.unit
    def test_invalid_int_returns_default(self, monkeypatch):
        """Invalid integer value returns default."""
        monkeypatch.setenv("GENBRIDGE_RETRY_MAX_ATTEMPTS", "many")
        assert get_environment(EnvVar.RETRY_MAX_ATTEMPTS) == 3

    @pytest.mark.unit
    def test_bool_type_conversion(self, monkeypatch):
        """Boolean type conversion for true and false values."""
        for value in ("true", "1", "yes", "TRUE", "Yes"):
            monkeypatch.setenv("GENBRIDGE_CACHE_ENABLED", value)
            assert get_environment(EnvVar.CACHE_ENABLED) is True
        for value in ("false", "0", "no", "FALSE", "No"):
            monkeypatch.setenv("GENBRIDGE_CACHE_ENABLED", value)
            assert get_environment(EnvVar.CACHE_ENABLED) is False

    @pytest.mark.unit
    def test_unrecognized_bool_returns_default(self, monkeypatch):
        """Unrecognized boolean strings fall back to the default."""
        monkeypatch.setenv("GENBRIDGE_CACHE_ENABLED", "maybe")
        assert get_environment(EnvVar.CACHE_ENABLED) is True

    @pytest.mark.unit
    def test_path_type_conversion(self, monkeypatch, tmp_path):
        """Path type conversion from string."""
        monkeypatch.setenv("GENBRIDGE_SETTINGS_PATH", str(tmp_path / "s.json"))
        assert get_environment(EnvVar.SETTINGS_PATH) == tmp_path / "s.json"

    @pytest.mark.unit
    def test_none_default_for_relay(self, monkeypatch):
        """Relay URL defaults to None when not set."""
        monkeypatch.delenv("GENBRIDGE_RELAY_URL", raising=False)
        assert get_environment(EnvVar.RELAY_URL) is None


class TestGetEnvironmentInfo:
    """Tests for environment variable metadata."""

    @pytest.mark.unit
    def test_returns_env_config(self):
        """Returns EnvConfig dataclass."""
        info = get_environment_info(EnvVar.RETRY_MAX_DELAY)
        assert isinstance(info, EnvConfig)
        assert info.name == "GENBRIDGE_RETRY_MAX_DELAY"
        assert info.default == 10.0
        assert info.var_type is float
        assert info.category == "retry"

    @pytest.mark.unit
    def test_description_present(self):
        """Description field is populated."""
        info = get_environment_info(EnvVar.RELAY_URL)
        assert "relay" in info.description.lower()


class TestListEnvironmentVariables:
    """Tests for listing environment variables."""

    @pytest.mark.unit
    def test_returns_all_variables(self):
        """Returns all EnvVar members when no category."""
        result = list_environment_variables()
        assert len(result) == len(EnvVar)

    @pytest.mark.unit
    def test_filter_by_category(self):
        """Filters by category correctly."""
        retry_vars = list_environment_variables("retry")
        assert EnvVar.RETRY_MAX_ATTEMPTS in retry_vars
        assert EnvVar.RETRY_BACKOFF_MULTIPLIER in retry_vars
        assert EnvVar.CACHE_TTL not in retry_vars


# =============================================================================
# Tests for convenience functions
# =============================================================================


class TestConvenienceFunctions:
    """Tests for grouped configuration helpers."""

    @pytest.mark.unit
    def test_retry_values_defaults(self, monkeypatch):
        """Retry values mirror the documented defaults."""
        for var in list_environment_variables("retry"):
            monkeypatch.delenv(var.value.name, raising=False)
        assert get_retry_config_values() == {
            "max_attempts": 3,
            "initial_delay": 1.0,
            "max_delay": 10.0,
            "backoff_multiplier": 2.0,
        }

    @pytest.mark.unit
    def test_cache_settings_respect_env(self, monkeypatch):
        """Cache settings read environment overrides."""
        monkeypatch.setenv("GENBRIDGE_CACHE_MAX_SIZE", "5")
        monkeypatch.setenv("GENBRIDGE_CACHE_TTL", "60")
        assert get_cache_settings() == {"max_size": 5, "ttl": 60.0}

    @pytest.mark.unit
    def test_relay_url_resolution(self, monkeypatch):
        """Override beats environment, empty values resolve to None."""
        monkeypatch.setenv("GENBRIDGE_RELAY_URL", "https://relay.example.com")
        assert get_relay_url() == "https://relay.example.com"
        assert get_relay_url("https://other.example.com") == "https://other.example.com"
        monkeypatch.setenv("GENBRIDGE_RELAY_URL", "")
        assert get_relay_url() is None

    @pytest.mark.unit
    def test_settings_path_override(self, monkeypatch, tmp_path):
        """Explicit path wins over environment."""
        monkeypatch.setenv("GENBRIDGE_SETTINGS_PATH", str(tmp_path / "env.json"))
        assert get_settings_path(str(tmp_path / "cli.json")) == Path(
            tmp_path / "cli.json"
        )
        assert get_settings_path() == tmp_path / "env.json"
