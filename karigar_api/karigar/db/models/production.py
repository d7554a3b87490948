from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from sqlalchemy import Boolean, Date, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin, QTY


class Worker(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Karigar (artisan) who can be assigned Kanban work."""
    __tablename__ = "workers"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    contact_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Active", server_default="Active")
    joined_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class ManufacturingOrder(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Production run of a quantity of one product."""
    __tablename__ = "manufacturing_orders"
    __table_args__ = (
        UniqueConstraint("merchant_id", "order_number", name="uq_manufacturing_orders_merchant_number"),
    )

    order_number: Mapped[str] = mapped_column(Text, nullable=False)
    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    quantity_required: Mapped[int] = mapped_column(Integer, nullable=False)
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="medium", server_default="medium")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", server_default="pending")
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    special_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[Optional[UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)

    # Rework orders point at the order and step whose output is being reworked
    parent_order_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("manufacturing_orders.id", ondelete="SET NULL"), nullable=True
    )
    rework_source_step_id: Mapped[Optional[UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    rework_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rework_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class ManufacturingStep(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """
    One Kanban card: a quantity of a manufacturing order sitting at one stage.

    A card moved forward spawns a child card at the next stage (parent_instance_id),
    so the tree of cards records how the order's quantity flowed through production.
    """
    __tablename__ = "manufacturing_order_step_data"

    order_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("manufacturing_orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    instance_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    parent_instance_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("manufacturing_order_step_data.id", ondelete="CASCADE"), nullable=True, index=True
    )
    origin_step_id: Mapped[Optional[UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", server_default="pending")
    assigned_worker_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("workers.id", ondelete="SET NULL"), nullable=True
    )
    quantity_assigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    quantity_received: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    weight_assigned: Mapped[Optional[float]] = mapped_column(QTY, nullable=True)
    weight_received: Mapped[Optional[float]] = mapped_column(QTY, nullable=True)
    purity: Mapped[Optional[float]] = mapped_column(QTY, nullable=True)
    wastage: Mapped[Optional[float]] = mapped_column(QTY, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_rework: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["ManufacturingOrder"] = relationship("ManufacturingOrder", lazy="selectin")
    worker: Mapped[Optional["Worker"]] = relationship("Worker", lazy="selectin")

    @property
    def order_number(self) -> Optional[str]:
        return self.order.order_number if self.order is not None else None

    @property
    def product_name(self) -> Optional[str]:
        return self.order.product_name if self.order is not None else None

    @property
    def worker_name(self) -> Optional[str]:
        return self.worker.name if self.worker is not None else None
