from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Shepherd Access Service"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True  # Set to False in production

    # Security
    log_principal_emails: bool = False  # Set to False in production for GDPR compliance

    # Database
    database_url: str = "sqlite+aiosqlite:///./shepherd.db"
    database_pool_size: int = 5
    database_max_overflow: int = 10
    store_timeout_seconds: float = 5.0  # Upper bound for one store round trip

    # Shutdown
    shutdown_grace_period: int = 30

    # Invitations
    invite_max_ttl_hours: int = 720  # 30 days
    invite_default_ttl_hours: int = 720
    invite_default_max_uses: int = 10
    invite_max_uses: int = 1000
    invite_code_bytes: int = 24  # 192 bits of entropy
    redeem_rate_limit: str = "10/minute"

    # Notifications
    notification_transport: Literal["log", "email"] = "log"
    notification_queue_size: int = 1000
    notification_send_timeout_seconds: float = 10.0
    notification_dedup_ttl_seconds: int = 86400
    notify_previous_staff_on_reassign: bool = True

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    app_url: str = "http://localhost:3000"  # Frontend URL for invitation links

    # Redis (optional - app works without it)
    redis_url: str | None = None  # e.g., "redis://localhost:6379/0"
    redis_pool_size: int = 10

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Metrics
    metrics_api_key: str | None = None  # If set, /metrics requires this key

    @field_validator("cors_origins")
    @classmethod
    def validate_cors_origins(cls, v: list[str]) -> list[str]:
        """Validate CORS origins - reject wildcards when credentials are used."""
        for origin in v:
            if origin == "*":
                raise ValueError(
                    "CORS wildcard '*' is not allowed when allow_credentials=True. "
                    "Specify explicit origins instead."
                )
        return v

    @field_validator("invite_code_bytes")
    @classmethod
    def validate_invite_code_bytes(cls, v: int) -> int:
        if v < 16:
            raise ValueError("INVITE_CODE_BYTES must be at least 16 (128 bits of entropy)")
        return v

    @field_validator("invite_max_ttl_hours", "invite_max_uses", "notification_queue_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Value must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
