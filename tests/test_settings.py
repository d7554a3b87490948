"""
Unit tests for environment-driven settings.
"""

from __future__ import annotations

import pytest

from karigar.core.settings import AppSettings
from karigar.db.config import Settings


class TestAppSettings:
    def test_cors_origins_comma_separated(self) -> None:
        assert AppSettings(CORS_ORIGINS="https://a.example, https://b.example").CORS_ORIGINS == ["https://a.example", "https://b.example"]

    def test_cors_origins_blank_falls_back_to_wildcard(self) -> None:
        assert AppSettings(CORS_ORIGINS=" , ").CORS_ORIGINS == ["*"]

    def test_public_base_url_trailing_slash(self) -> None:
        assert AppSettings(PUBLIC_BASE_URL="https://shop.example/").PUBLIC_BASE_URL == "https://shop.example"


class TestDatabaseSettings:
    def test_parts_build_url(self) -> None:
        s = Settings(
            POSTGRES_URL=None,
            POSTGRES_USER="karigar",
            POSTGRES_PASSWORD="pw",
            POSTGRES_DB="karigar",
            POSTGRES_HOST="db",
            POSTGRES_PORT=5433,
        )
        assert s.database_url == "postgresql://karigar:pw@db:5433/karigar"
        assert s.async_database_url == "postgresql+asyncpg://karigar:pw@db:5433/karigar"

    @pytest.mark.parametrize(
        "url",
        ["postgres://u:p@h/d", "postgresql://u:p@h/d", "postgresql+psycopg2://u:p@h/d"],
    )
    def test_driver_rewrites(self, url) -> None:
        s = Settings(POSTGRES_URL=url)
        assert s.async_database_url == "postgresql+asyncpg://u:p@h/d"
        assert s.sync_database_url == "postgresql://u:p@h/d"

    def test_missing_configuration(self) -> None:
        s = Settings(POSTGRES_URL=None, POSTGRES_USER=None, POSTGRES_PASSWORD=None, POSTGRES_DB=None)
        with pytest.raises(ValueError):
            _ = s.database_url
