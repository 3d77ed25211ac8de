"""Runtime configuration for the caorag services."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from caorag.errors import ConfigurationError


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(
        env_prefix="caorag_",
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    environment: Literal["dev", "test", "prod"] = "dev"
    log_level: str = "INFO"

    # Gemini File Search
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("caorag_gemini_api_key", "gemini_api_key"),
    )
    model: str = "gemini-2.5-flash"
    gemini_timeout_ms: int | None = None
    wait_for_upload: bool = True
    upload_poll_seconds: float = 2.0

    # Document source
    default_store: str = "cao-documents"
    default_joint_committee: int | None = 3180200
    source_base_url: str = "https://public-search.werk.belgie.be"
    source_language: str = "nl"
    http_timeout_seconds: float = 60.0

    # HTTP surface
    port: int = Field(default=8080, validation_alias=AliasChoices("caorag_port", "port"))
    host: str = "0.0.0.0"

    # CORS
    cors_allow_origins: tuple[str, ...] = ()
    cors_allow_credentials: bool = False
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    # Security
    api_key: str | None = None  # if set, required in X-API-Key header
    rate_limit_requests: int = 120  # per window per client
    rate_limit_window_seconds: int = 60

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    def require_api_key(self) -> str:
        if not self.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY environment variable not set")
        return self.gemini_api_key


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
