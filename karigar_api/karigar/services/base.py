from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories,
    and the acting user (if any) for audit and activity rows.

    Services keep business logic and orchestration, delegating data access
    to repositories. Workflow services own their transaction: they add/flush
    through repositories and commit once at the end.
    """

    def __init__(self, session: AsyncSession, user: Optional[Any] = None) -> None:
        self.session = session
        self.user = user

    @property
    def actor_id(self) -> Optional[UUID]:
        return getattr(self.user, "id", None)

    @property
    def actor_name(self) -> Optional[str]:
        if self.user is None:
            return None
        return getattr(self.user, "full_name", None) or getattr(self.user, "email", None)
