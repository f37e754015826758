"""Application configuration using Pydantic Settings.

Configuration is loaded from environment variables.

Optionally, point `ENV_FILE` at a local env file (for development). When
`ENV_FILE` is unset or empty, only the process environment is read.
"""

import os
from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppEnvironment(str, Enum):
    """Application environment values."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


class Settings(BaseSettings):
    """
    Compiler and validator settings with type validation.

    Every consumer also accepts an explicit keyword override, so these
    values are defaults rather than hard requirements.
    """

    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE") or None, env_prefix="", extra="ignore"
    )

    # Application
    app_env: AppEnvironment = AppEnvironment.LOCAL
    app_name: str = "ruleflow-compiler"
    app_log_level: str = "INFO"

    # Observability
    observability_structured_logs: bool = True
    metrics_enabled: bool = True

    # Structural validation
    # Traversal depth above this raises an advisory deep-nesting warning
    validation_deep_nesting_threshold: int = 5
    # More operators than this in one group raises an advisory warning
    validation_operator_count_threshold: int = 5

    # Export
    export_success_event: str = "IndividualTarget"
    export_default_description: str = ""
    export_json_indent: int = 2

    @field_validator("app_env", mode="before")
    @classmethod
    def validate_app_env(cls, v: str | AppEnvironment) -> AppEnvironment:
        """Validate and parse app_env to AppEnvironment enum."""
        if isinstance(v, AppEnvironment):
            return v
        try:
            return AppEnvironment(v.lower())
        except ValueError:
            raise ValueError(
                f"app_env must be one of {[e.value for e in AppEnvironment]}, got '{v}'"
            )

    @field_validator("app_log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"app_log_level must be a standard logging level, got '{v}'")
        return level

    @field_validator("validation_deep_nesting_threshold", "validation_operator_count_threshold")
    @classmethod
    def validate_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("validation thresholds must be at least 1")
        return v

    @field_validator("export_json_indent")
    @classmethod
    def validate_indent(cls, v: int) -> int:
        if v < 0:
            raise ValueError("export_json_indent cannot be negative")
        return v


settings = Settings()
