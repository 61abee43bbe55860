"""Quiz server configuration via environment variables."""

from __future__ import annotations

import secrets
from enum import StrEnum
from typing import TYPE_CHECKING, Self

import structlog
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource

logger = structlog.get_logger()

_fallback_secret: str | None = None


def _process_fallback_secret() -> str:
    """One random signing secret per process. Tokens signed with it die on restart."""
    global _fallback_secret  # noqa: PLW0603
    if _fallback_secret is None:
        _fallback_secret = secrets.token_urlsafe(32)
    return _fallback_secret


class Environment(StrEnum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class QuizServerSettings(BaseSettings):
    model_config = {"env_prefix": "QUIZ_"}

    environment: Environment = Environment.DEVELOPMENT
    round_token_secret: str | None = Field(default=None, min_length=16)
    database_path: str = Field(default="backend/storage.db", min_length=1)
    round_ttl_seconds: int = Field(default=1800, ge=60)
    max_clues_allowed: int = Field(default=10, ge=1, le=50)
    cors_origins: list[str] = ["http://localhost:3000"]
    log_dir: str | None = None

    # token bucket per client key: sustained requests/second and burst size
    rate_limit_rate: float = Field(default=5.0, gt=0)
    rate_limit_burst: int = Field(default=20, ge=1)

    session_max_age_days: int = Field(default=30, ge=1)
    cleanup_interval_seconds: int = Field(default=3600, ge=60)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @model_validator(mode="after")
    def _require_secret_in_production(self) -> Self:
        if self.round_token_secret:
            return self
        if self.environment == Environment.PRODUCTION:
            raise ValueError("QUIZ_ROUND_TOKEN_SECRET must be set in production")
        logger.warning("QUIZ_ROUND_TOKEN_SECRET not set, using a random per-process secret")
        self.round_token_secret = _process_fallback_secret()
        return self

    @property
    def signing_secret(self) -> str:
        """The effective round token secret (always set once validated)."""
        if self.round_token_secret is None:  # pragma: no cover
            raise RuntimeError("round token secret missing after validation")
        return self.round_token_secret

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
