"""Configuration management for flowkit."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowkit.errors import ConfigurationError

DEFAULT_MAX_TURNS = 5


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLOWKIT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generation
    max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1, description="Maximum model turns per generate call")

    # Evaluation
    eval_project_id: str | None = Field(default=None, description="Project used for evaluation requests")
    eval_location: str = Field(default="us-central1", description="Region of the evaluateInstances endpoint")
    eval_concurrency: int = Field(default=8, ge=1, description="Datapoints evaluated concurrently")
    http_timeout_seconds: float = Field(default=60.0, gt=0, description="Timeout for provider HTTP calls")

    # Logging and tracing
    log_level: str = Field(default="INFO", description="Log level")
    log_profile: Literal["default", "console", "json"] = Field(default="default", description="Log output profile")
    trace_file: Path | None = Field(default=None, description="Optional JSONL file receiving span records")
    logfire_send: bool = Field(default=False, description="Send spans to the Logfire backend")
    logfire_console: bool = Field(default=False, description="Print logfire spans to the console")


def get_settings(**overrides: object) -> Settings:
    """Load settings from the environment and configure tracing.

    Args:
        **overrides: Explicit values that take precedence over the environment

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a setting fails validation
    """
    from flowkit.utils.logging import configure_logfire

    try:
        settings = Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

    configure_logfire(settings)
    return settings
