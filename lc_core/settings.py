"""Engine settings read from ``LC_*`` environment variables."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from lc_core.errors import CatalogValidationError

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]


class EngineSettings(BaseSettings):
    """Runtime settings for the engine boundary and the CLI.

    ``LC_ENV=production`` hides correlation ids from error messages and
    ``LC_LOG_LEVEL`` picks the root log level.
    """

    model_config = SettingsConfigDict(env_prefix="LC_", extra="ignore", frozen=True)

    env: str = "development"
    log_level: LogLevel = "INFO"

    @field_validator("env", mode="before")
    @classmethod
    def _normalize_env(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() or "development"
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper() or "INFO"
        return value

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def load_settings() -> EngineSettings:
    try:
        return EngineSettings()
    except ValidationError as exc:
        errors = exc.errors()
        detail = errors[0].get("msg", str(exc)) if errors else str(exc)
        raise CatalogValidationError(f"Invalid LC_* setting: {detail}") from exc
