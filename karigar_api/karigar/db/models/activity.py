from __future__ import annotations

from typing import Optional
from sqlalchemy import BigInteger, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin


class ActivityLog(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Who did what to which entity."""
    __tablename__ = "user_activity_log"

    user_id: Mapped[Optional[UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    user_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    action: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    entity_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class NumberSequence(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Per-merchant counter behind order, tag and request numbers."""
    __tablename__ = "number_sequences"
    __table_args__ = (
        UniqueConstraint("merchant_id", "name", name="uq_number_sequences_merchant_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    last_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
