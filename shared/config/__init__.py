"""Shared configuration base classes.

Logging settings live here so every entrypoint configures handlers,
levels and redaction the same way.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseLoggingConfig(BaseSettings):
    """Common logging configuration."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    app_log_level: str = "INFO"
    # no "key" pattern: emission keys are logged under "keys"
    app_log_redaction_patterns: list[str] = [
        "password",
        "token",
        "secret",
        "authorization",
        "cookie",
    ]
    app_environment: str = "production"


__all__ = ["BaseLoggingConfig"]
