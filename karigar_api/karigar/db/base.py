from __future__ import annotations

from datetime import datetime

from sqlalchemy import MetaData, DateTime, Numeric, text, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# Standardized naming convention for alembic-friendly constraints/indexes.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Expression used both as column default and in RLS policies.
CURRENT_MERCHANT_SQL = "current_setting('app.merchant_id', true)::uuid"

# Weights (grams) and material quantities; returned as float for arithmetic.
QTY = Numeric(18, 3, asdecimal=False)
MONEY = Numeric(14, 2, asdecimal=False)


class Base(DeclarativeBase):
    """Declarative base class with metadata naming conventions."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class UUIDPkMixin:
    """UUID primary key generated by Postgres."""
    id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("uuid_generate_v4()"),
    )


class TimestampMixin:
    """created_at / updated_at columns, fetched back with RETURNING after writes."""
    __mapper_args__ = {"eager_defaults": True}

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), onupdate=text("now()"), nullable=False
    )


class MerchantMixin:
    """Merchant scoping column; defaults to the merchant bound on the session."""
    merchant_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("merchants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        server_default=text(CURRENT_MERCHANT_SQL),
    )
