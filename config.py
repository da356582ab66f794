"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Decision on the signing secret env var: JWT_SECRET is the canonical name, but
SESSION_SECRET is also accepted as an alias because existing deployments of
the office CRM already export it (handled in JWTSettings via AliasChoices).
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "gabinete"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; without Redis the rate limiter stays process-local and the
    # session user cache is disabled
    redis_uri: Optional[str] = None

    # 0 disables the cache: every request re-reads the user record
    user_cache_ttl_seconds: int = 0


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    jwt_issuer: str = "gabinete"
    jwt_audience: str = "gabinete.api"
    session_token_ttl_seconds: int = 2592000  # 30 days

    # RS256 keys (preferred)
    jwt_private_key: str = ""
    jwt_public_key: str = ""

    # HS256 fallback (used when RS256 keys are absent)
    jwt_secret: str = Field(
        default="", validation_alias=AliasChoices("jwt_secret", "session_secret")
    )

    @property
    def use_rs256(self) -> bool:
        return bool(self.jwt_private_key and self.jwt_public_key)


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "redis" only takes effect when REDIS_URI is configured
    rate_limit_backend: Literal["memory", "redis"] = "memory"

    api_read_max_requests: int = 100
    api_window_ms: int = 60000

    # How often stale in-memory windows are evicted
    rate_limit_sweep_interval_seconds: int = 300


class UsageLogSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    usage_log_queue_size: int = 1000
    usage_log_drain_timeout_seconds: float = 5.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "Gabinete"

    # CORS: the SPA is served from a separate origin
    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    jwt: Optional[JWTSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    usage_log: Optional[UsageLogSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.usage_log is None:
            self.usage_log = UsageLogSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
