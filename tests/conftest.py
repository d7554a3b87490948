"""Shared pytest fixtures for the test suite.

The API fixtures never touch PostgreSQL: the merchant session dependency is
replaced by a stand-in object and services are monkeypatched per test.
Service tests run against FakeSession with repository query methods swapped
for in-memory lookups.

Fixture overview
----------------
merchant_id     : fixed merchant UUID sent as X-Merchant-ID
admin_user      : fake active user holding the admin role
client          : TestClient with session and user dependencies overridden
session         : FakeSession recording added rows and commits, for service tests
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

# Startup must not reach for a database
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "false")
os.environ.setdefault("AUTO_SEED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("WHATSAPP_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from karigar.api.main import app  # noqa: E402
from karigar.core.deps import get_current_active_user, get_merchant_session  # noqa: E402


@pytest.fixture
def merchant_id() -> UUID:
    return UUID("7b0c6c8e-3a51-4f41-9d7e-2f6e2f7a9c10")


def make_user(*roles: str, active: bool = True) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        email="owner@example.com",
        full_name="Shop Owner",
        is_active=active,
        roles=[SimpleNamespace(name=r) for r in roles],
    )


@pytest.fixture
def admin_user() -> SimpleNamespace:
    return make_user("admin")


@pytest.fixture
def client(admin_user):
    """TestClient acting as `admin_user` with a dummy merchant session."""

    async def _session():
        yield SimpleNamespace(info={})

    async def _user():
        return admin_user

    app.dependency_overrides[get_merchant_session] = _session
    app.dependency_overrides[get_current_active_user] = _user
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class FakeSession:
    """AsyncSession stand-in: keeps added rows in memory and counts commits."""

    def __init__(self) -> None:
        self.info: dict = {}
        self.added: list = []
        self.deleted: list = []
        self.commits = 0

    def add(self, entity) -> None:
        # ids normally come from the uuid_generate_v4() server default
        if getattr(entity, "id", None) is None:
            entity.id = uuid4()
        if getattr(entity, "created_at", "") is None:
            entity.created_at = datetime.now(timezone.utc)
        self.added.append(entity)

    def add_all(self, entities) -> None:
        for entity in entities:
            self.add(entity)

    def added_of(self, model) -> list:
        return [e for e in self.added if isinstance(e, model)]

    async def flush(self) -> None:
        return None

    async def commit(self) -> None:
        self.commits += 1

    async def delete(self, entity) -> None:
        self.deleted.append(entity)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()
