from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Union
from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import Session

from .config import get_settings

MERCHANT_INFO_KEY = "merchant_id"

_SET_MERCHANT_SQL = text("SELECT set_config('app.merchant_id', :merchant_id, true)")

_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


@event.listens_for(Session, "after_begin")
def _bind_merchant_on_begin(session: Session, transaction, connection) -> None:
    """
    Re-apply the merchant GUC at the start of every transaction.

    The setting is transaction-local, and a session may get a different pooled
    connection after each commit.
    """
    merchant_id = session.info.get(MERCHANT_INFO_KEY)
    if merchant_id:
        connection.execute(_SET_MERCHANT_SQL, {"merchant_id": merchant_id})


def _ensure_engine_initialized() -> None:
    """Lazily create the AsyncEngine and session maker on first use."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        settings = get_settings()
        _ENGINE = create_async_engine(
            settings.async_database_url,
            echo=settings.SQL_ECHO,
            pool_pre_ping=True,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = async_sessionmaker(
            bind=_ENGINE, expire_on_commit=False, autoflush=False, autocommit=False
        )


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory (used outside request scope, e.g. seeding)."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession suitable for FastAPI dependency injection."""
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
async def set_current_merchant(
    session: AsyncSession, merchant_id: Union[str, UUID]
) -> None:
    """
    Bind the merchant for row-level security on this session.

    RLS policies compare merchant_id against current_setting('app.merchant_id', true).
    """
    session.info[MERCHANT_INFO_KEY] = str(merchant_id)
    await session.execute(_SET_MERCHANT_SQL, {"merchant_id": str(merchant_id)})


# PUBLIC_INTERFACE
@asynccontextmanager
async def merchant_context(
    session: AsyncSession, merchant_id: Union[str, UUID]
) -> AsyncGenerator[AsyncSession, None]:
    """
    Bind the merchant on the session for the duration of the block.

    The GUC is transaction-local, so it disappears with the transaction that is open
    when the block exits; later transactions on the session are no longer bound.

    Usage:
        async with merchant_context(session, merchant_id):
            ...
    """
    await set_current_merchant(session, merchant_id)
    try:
        yield session
    finally:
        session.info.pop(MERCHANT_INFO_KEY, None)
