from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Database settings.

    Either POSTGRES_URL or the POSTGRES_USER / POSTGRES_PASSWORD / POSTGRES_DB trio
    (plus optional host and port) must be provided through the environment or .env.
    """

    POSTGRES_URL: Optional[str] = Field(default=None, description="Full PostgreSQL connection URL.")
    POSTGRES_USER: Optional[str] = Field(default=None)
    POSTGRES_PASSWORD: Optional[str] = Field(default=None)
    POSTGRES_DB: Optional[str] = Field(default=None)
    POSTGRES_HOST: str = Field(default="localhost")
    POSTGRES_PORT: int = Field(default=5432)

    SQL_ECHO: bool = Field(default=False, description="Echo SQL statements for debugging")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """Driver-neutral URL, preferring POSTGRES_URL when set."""
        if self.POSTGRES_URL:
            return self.POSTGRES_URL

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]):
            raise ValueError(
                "Database configuration missing. Set POSTGRES_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD and POSTGRES_DB."
            )
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def async_database_url(self) -> str:
        """URL with the asyncpg driver, required by the AsyncEngine."""
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql+asyncpg://", self.database_url)

    @property
    def sync_database_url(self) -> str:
        """URL without a driver tag, used by Alembic offline mode."""
        return re.sub(r"^postgres(ql)?(\+\w+)?://", "postgresql://", self.database_url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return database settings read from the environment."""
    return Settings()
