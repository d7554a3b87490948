from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the Karigar API.

    Database connection settings live in karigar.db.config.Settings.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Karigar API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Back office API for jewelry manufacturers: product catalogues, raw material "
            "and finished goods inventory, procurement, Kanban production and orders."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, seed a demo merchant after migrations.",
    )
    SEED_ADMIN_EMAIL: str = Field(default="admin@demo-jewellers.example")
    SEED_ADMIN_PASSWORD: str = Field(default="admin123")

    # Auth
    JWT_SECRET_KEY: str = Field(default="change-me", description="HMAC secret for JWT signing")
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Public catalogue share links are built from this base
    PUBLIC_BASE_URL: str = Field(default="http://localhost:5173")

    # WhatsApp (Twilio) supplier notifications
    WHATSAPP_ENABLED: bool = Field(default=True)
    TWILIO_ACCOUNT_SID: Optional[str] = Field(default=None)
    TWILIO_AUTH_TOKEN: Optional[str] = Field(default=None)
    TWILIO_WHATSAPP_NUMBER: Optional[str] = Field(
        default=None, description="Sender number, e.g. +14155238886"
    )
    TWILIO_API_BASE: str = Field(default="https://api.twilio.com/2010-04-01")
    HTTP_TIMEOUT_SECONDS: float = Field(default=10.0)

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Return a new AppSettings instance populated from environment variables."""
    return AppSettings()
