from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from karigar.db.models.activity import ActivityLog
from .base import BaseRepository


class ActivityRepository(BaseRepository):
    """Repository for the user activity log."""

    async def list_activity(
        self, *, entity_type: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[ActivityLog]:
        stmt = select(ActivityLog)
        if entity_type:
            stmt = stmt.where(ActivityLog.entity_type == entity_type)
        stmt = stmt.order_by(ActivityLog.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))
