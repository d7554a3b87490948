from __future__ import annotations

from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin, MONEY


class Catalogue(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Shareable, customer-facing selection of products."""
    __tablename__ = "catalogues"
    __table_args__ = (
        # Slugs are global because public links carry no merchant
        UniqueConstraint("public_url_slug", name="uq_catalogues_public_url_slug"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cover_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    public_url_slug: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    items: Mapped[list["CatalogueItem"]] = relationship(
        "CatalogueItem",
        back_populates="catalogue",
        order_by="CatalogueItem.display_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class CatalogueItem(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    __tablename__ = "catalogue_items"
    __table_args__ = (
        UniqueConstraint("catalogue_id", "product_config_id", name="uq_catalogue_items_catalogue_product"),
    )

    catalogue_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("catalogues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="CASCADE"), nullable=False
    )
    custom_price: Mapped[Optional[float]] = mapped_column(MONEY, nullable=True)
    custom_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    catalogue: Mapped["Catalogue"] = relationship("Catalogue", back_populates="items")
    product_config: Mapped["ProductConfig"] = relationship("ProductConfig", lazy="selectin")  # noqa: F821


class CatalogueOrder(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Order request placed by a visitor on a public catalogue."""
    __tablename__ = "catalogue_orders"

    catalogue_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("catalogues.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # [{product_config_id, product_code, quantity, unit_price, line_total}]
    order_items: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    total_amount: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pending", server_default="pending")
    order_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="SET NULL"), nullable=True
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
