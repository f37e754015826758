"""Unit tests for settings parsing and validation."""

import pytest
from pydantic import ValidationError

from ruleflow.core.config import AppEnvironment, Settings


class TestSettingsDefaults:
    def test_defaults(self, monkeypatch):
        """Test the documented defaults with a clean environment."""
        for name in (
            "APP_ENV",
            "APP_LOG_LEVEL",
            "VALIDATION_DEEP_NESTING_THRESHOLD",
            "VALIDATION_OPERATOR_COUNT_THRESHOLD",
            "EXPORT_SUCCESS_EVENT",
            "EXPORT_JSON_INDENT",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings()
        assert settings.app_env == AppEnvironment.LOCAL
        assert settings.app_log_level == "INFO"
        assert settings.validation_deep_nesting_threshold == 5
        assert settings.validation_operator_count_threshold == 5
        assert settings.export_success_event == "IndividualTarget"
        assert settings.export_json_indent == 2


class TestSettingsFromEnvironment:
    def test_values_read_from_env(self, monkeypatch):
        """Test that environment variables override defaults."""
        monkeypatch.setenv("APP_ENV", "PROD")
        monkeypatch.setenv("VALIDATION_DEEP_NESTING_THRESHOLD", "8")
        monkeypatch.setenv("EXPORT_SUCCESS_EVENT", "TeamTarget")
        monkeypatch.setenv("METRICS_ENABLED", "false")
        settings = Settings()
        assert settings.app_env == AppEnvironment.PROD
        assert settings.validation_deep_nesting_threshold == 8
        assert settings.export_success_event == "TeamTarget"
        assert settings.metrics_enabled is False

    def test_log_level_normalized(self):
        """Test that the log level is upper-cased."""
        assert Settings(app_log_level=" debug ").app_log_level == "DEBUG"


class TestSettingsValidation:
    def test_invalid_app_env(self):
        """Test that an unknown environment name is rejected."""
        with pytest.raises(ValidationError, match="app_env must be one of"):
            Settings(app_env="staging")

    def test_invalid_log_level(self):
        """Test that a non-standard log level is rejected."""
        with pytest.raises(ValidationError):
            Settings(app_log_level="VERBOSE")

    @pytest.mark.parametrize(
        "field", ["validation_deep_nesting_threshold", "validation_operator_count_threshold"]
    )
    def test_threshold_must_be_positive(self, field):
        """Test that thresholds below 1 are rejected."""
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_negative_indent_rejected(self):
        """Test that a negative indent is rejected."""
        with pytest.raises(ValidationError):
            Settings(export_json_indent=-1)
