"""Application settings and configuration."""

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application (hardcoded constants)
    app_name: str = "InfraCheck API"
    app_version: str = "0.1.0"

    # Environment-specific settings
    debug: bool = False
    environment: str  # development, staging, production

    # PostgreSQL
    postgres_url: str
    postgres_pool_size: int = 10
    postgres_max_overflow: int = 20
    postgres_pool_timeout: int = 30
    postgres_pool_recycle: int = 3600
    postgres_echo: bool = False

    # API
    api_prefix: str = "/api"
    cors_allow_origins: str = "*"

    # Security (one independent secret per token class)
    jwt_secret: str
    jwt_refresh_secret: str
    jwt_reset_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    refresh_token_expire_days: int = 7
    reset_token_expire_minutes: int = 15

    # Rate limiting (slowapi syntax)
    auth_rate_limit: str = "10/minute"

    # Twilio Verify
    twilio_account_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_register_verify_service_sid: str | None = None
    twilio_recover_password_verify_service_sid: str | None = None
    twilio_base_url: str = "https://verify.twilio.com/v2"
    twilio_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"development", "staging", "production"}
        env = str(v).lower()
        if env not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}, got {env}")
        return env

    @field_validator("jwt_secret", "jwt_refresh_secret", "jwt_reset_secret")
    @classmethod
    def validate_secret_length(cls, v: str) -> str:
        """Reject signing secrets too short for HS256."""
        if len(v) < 32:
            raise ValueError("JWT secrets must be at least 32 characters long")
        return v

    @model_validator(mode="after")
    def validate_independent_secrets(self) -> "Settings":
        """Each token class must be signed with its own secret."""
        secrets = {self.jwt_secret, self.jwt_refresh_secret, self.jwt_reset_secret}
        if len(secrets) != 3:
            logger.error("JWT secrets are shared between token classes")
            raise ValueError("jwt_secret, jwt_refresh_secret and jwt_reset_secret must all differ")
        return self

    @property
    def cors_origins(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


settings = Settings()  # type: ignore[call-arg]
