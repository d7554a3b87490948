from __future__ import annotations

from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, DateTime, Integer, Text, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin, QTY, MONEY


class RawMaterial(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Metal, stone or consumable held in stock (quantities in the material's unit)."""
    __tablename__ = "raw_materials"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(Text, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="grams", server_default="grams")
    current_stock: Mapped[float] = mapped_column(QTY, nullable=False, default=0, server_default="0")
    minimum_stock: Mapped[float] = mapped_column(QTY, nullable=False, default=0, server_default="0")
    # Persisted snapshot of the last requirement calculation
    required: Mapped[float] = mapped_column(QTY, nullable=False, default=0, server_default="0")
    in_procurement: Mapped[float] = mapped_column(QTY, nullable=False, default=0, server_default="0")
    in_manufacturing: Mapped[float] = mapped_column(QTY, nullable=False, default=0, server_default="0")
    cost_per_unit: Mapped[Optional[float]] = mapped_column(MONEY, nullable=True)
    supplier_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True
    )
    request_status: Mapped[str] = mapped_column(Text, nullable=False, default="None", server_default="None")
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )


class FinishedGood(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Stock of a finished product (pieces)."""
    __tablename__ = "finished_goods"
    __table_args__ = (
        UniqueConstraint("merchant_id", "product_config_id", name="uq_finished_goods_merchant_config"),
    )

    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="CASCADE"), nullable=False
    )
    product_code: Mapped[str] = mapped_column(Text, nullable=False)
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    in_manufacturing: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    required_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    tag_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    last_produced: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    product_config: Mapped["ProductConfig"] = relationship("ProductConfig", lazy="selectin")  # noqa: F821

    @property
    def category(self) -> Optional[str]:
        return self.product_config.category if self.product_config is not None else None

    @property
    def is_critical(self) -> bool:
        return (self.current_stock or 0) < (self.threshold or 0)


class InventoryTag(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Physical tag for a quantity of a finished good; active while in stock."""
    __tablename__ = "inventory_tags"
    __table_args__ = (
        UniqueConstraint("merchant_id", "tag_id", name="uq_inventory_tags_merchant_tag"),
    )

    tag_id: Mapped[str] = mapped_column(Text, nullable=False)
    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    net_weight: Mapped[Optional[float]] = mapped_column(QTY, nullable=True)
    gross_weight: Mapped[Optional[float]] = mapped_column(QTY, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active", server_default="active")
    operation_type: Mapped[str] = mapped_column(Text, nullable=False, default="Tag In", server_default="Tag In")
    qr_code_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    order_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )
    order_item_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True
    )
    used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    used_by: Mapped[Optional[UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)

    product_config: Mapped["ProductConfig"] = relationship("ProductConfig", lazy="selectin")  # noqa: F821

    @property
    def product_code(self) -> Optional[str]:
        return self.product_config.product_code if self.product_config is not None else None


class TagAuditLog(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Stock movement caused by a tag operation."""
    __tablename__ = "tag_audit_log"

    tag_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    previous_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    new_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[Optional[UUID]] = mapped_column(UUID(as_uuid=True), nullable=True)
    user_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
