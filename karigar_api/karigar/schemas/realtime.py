from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class WsEnvelope(BaseModel):
    """Envelope for WebSocket messages."""
    type: str = Field(..., description="Message type (e.g., 'kanban.card.moved').")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Message payload.")
    at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp (UTC).")
    user_id: Optional[UUID] = Field(default=None, description="Initiating user id, if applicable.")


class KanbanEvent(BaseModel):
    """Kanban board change pushed to subscribers of a merchant."""
    event: str = Field(..., description="'card.moved' or 'card.created'.")
    card_id: UUID = Field(..., description="Card that was created or moved.")
    order_id: UUID = Field(..., description="Manufacturing order of the card.")
    from_stage: Optional[str] = Field(default=None)
    to_stage: str = Field(...)
    quantity: Optional[int] = Field(default=None)
    user_id: Optional[UUID] = Field(default=None)
