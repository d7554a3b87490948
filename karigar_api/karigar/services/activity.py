from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.db.models.activity import ActivityLog

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def log_activity(
    session: AsyncSession,
    *,
    user: Optional[Any],
    action: str,
    entity_type: str,
    entity_id: Any = None,
    description: Optional[str] = None,
) -> None:
    """
    Queue a user_activity_log row in the caller's transaction.

    The row is committed together with the change it describes. A failure to
    build the row is logged and never aborts the operation.
    """
    try:
        session.add(
            ActivityLog(
                user_id=getattr(user, "id", None),
                user_name=(getattr(user, "full_name", None) or getattr(user, "email", None)) if user else None,
                action=action,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id is not None else None,
                description=description,
            )
        )
    except Exception:
        logger.exception("Failed to record activity %s on %s", action, entity_type)
