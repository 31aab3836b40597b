"""Application settings and configuration."""

import sys

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_INSECURE_JWT_DEFAULTS = {"change-me-in-production", "secret", "your_jwt_secret_key_here_at_least_32_characters"}


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "naikkelas"
    env: str = "development"
    log_level: str = "INFO"
    log_format: str = "console"  # json | console
    allowed_origins: str = "http://localhost:3000"
    site_url: str = "http://localhost:3000"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Identity provider (HS256 session JWT)
    jwt_secret_key: str = "change-me-in-production"
    jwt_audience: str | None = None

    # Database
    database_url: str = "sqlite:///./naikkelas.db"

    # Flip payment provider
    flip_api_url: str = "https://bigflip.id/big_sandbox_api/v2"
    flip_secret_key: str | None = None
    flip_validation_token: str | None = None

    # Generation provider
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash-lite"
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # HTTP Client
    request_timeout_seconds: int = 30

    # Credits
    starting_credits: int = 3000  # Trial tokens for a new user
    minimum_credits_threshold: int = 1000  # Needed to start a chat
    chat_history_limit: int = 10

    @field_validator("flip_validation_token")
    @classmethod
    def _unescape_dollar(cls, value: str | None) -> str | None:
        # Hosting dashboards require "$" to be written as "\$"
        if value is None:
            return None
        return value.replace("\\$", "$")


# Global settings instance
settings = Settings()

# ── Security validation ──────────────────────────────────────────────
if settings.env == "production":
    if settings.jwt_secret_key in _INSECURE_JWT_DEFAULTS or len(settings.jwt_secret_key) < 32:
        print(
            "\n❌  FATAL: JWT_SECRET_KEY is insecure or too short (min 32 chars).\n"
            "   Set the identity provider's JWT signing secret.\n",
            file=sys.stderr,
        )
        sys.exit(1)
    if not settings.flip_validation_token:
        print(
            "\n❌  FATAL: FLIP_VALIDATION_TOKEN is not set.\n"
            "   Payment callbacks cannot be verified without it.\n",
            file=sys.stderr,
        )
        sys.exit(1)
