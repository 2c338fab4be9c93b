"""
Unit Tests for Configuration.

Tests pydantic-settings loading and the dotted-key ConfigProvider.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from storebench.config.provider import DEFAULT_OPTIONS_KEY, ConfigProvider
from storebench.config.settings import BenchmarkSettings, Settings, get_settings


class TestSettings:
    """Test cases for environment-driven settings."""

    def test_defaults(self) -> None:
        settings = BenchmarkSettings()

        assert settings.penalty_multiplier == 2.0
        assert settings.fallback_penalty_ms == 10000.0
        assert settings.tie_breaker == "mongodb"

    def test_environment_overrides(self, test_settings: Settings) -> None:
        assert test_settings.benchmark.iterations == 3
        assert test_settings.benchmark.save_results is False
        assert test_settings.benchmark.seed == 42
        assert test_settings.postgresql.password.get_secret_value() == "postgres123"

    def test_size_is_normalized(self) -> None:
        with patch.dict("os.environ", {"BENCHMARK_SIZE": "MEDIUM"}):
            assert BenchmarkSettings().size == "medium"

    def test_invalid_iterations(self) -> None:
        with patch.dict("os.environ", {"BENCHMARK_ITERATIONS": "0"}):
            with pytest.raises(ValidationError):
                BenchmarkSettings()

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_default_options_cover_both_stores(self) -> None:
        options = BenchmarkSettings().default_options()

        assert set(options["store_options"]) == {"mongodb", "postgresql"}
        assert options["iterations"] >= 1


class TestConfigProvider:
    """Test cases for ConfigProvider."""

    def test_from_settings(self, test_settings: Settings) -> None:
        provider = ConfigProvider.from_settings(test_settings)

        defaults = provider.get(DEFAULT_OPTIONS_KEY)
        assert defaults["iterations"] == 3
        assert defaults["save_results"] is False

    def test_missing_key_returns_default(self) -> None:
        provider = ConfigProvider({"benchmarks": {}})

        assert provider.get("benchmarks.default_options", {"x": 1}) == {"x": 1}
        assert provider.get("nope.deeper") is None
        assert provider.has("benchmarks") is True
        assert provider.has("benchmarks.default_options") is False

    def test_get_returns_copy(self) -> None:
        provider = ConfigProvider({"benchmarks": {"default_options": {"iterations": 2}}})

        provider.get(DEFAULT_OPTIONS_KEY)["iterations"] = 99

        assert provider.get(DEFAULT_OPTIONS_KEY) == {"iterations": 2}

    def test_set_creates_path(self) -> None:
        provider = ConfigProvider().set("benchmarks.default_options", {"iterations": 4})

        assert provider.get_all() == {"benchmarks": {"default_options": {"iterations": 4}}}
