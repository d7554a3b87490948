from __future__ import annotations

from typing import Optional
from sqlalchemy import Boolean, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin, QTY


class ProductConfig(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Sellable product definition identified by its product code."""
    __tablename__ = "product_configs"
    __table_args__ = (
        UniqueConstraint("merchant_id", "product_code", name="uq_product_configs_merchant_code"),
    )

    product_code: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    size_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    weight_range: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    materials: Mapped[list["ProductConfigMaterial"]] = relationship(
        "ProductConfigMaterial",
        back_populates="product_config",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ProductConfigMaterial(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Bill of materials line: raw material consumed per unit of product."""
    __tablename__ = "product_config_materials"
    __table_args__ = (
        UniqueConstraint("product_config_id", "raw_material_id", name="uq_product_config_materials_config_material"),
    )

    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    raw_material_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("raw_materials.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quantity_required: Mapped[float] = mapped_column(QTY, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False, default="grams", server_default="grams")

    product_config: Mapped["ProductConfig"] = relationship("ProductConfig", back_populates="materials")
    raw_material: Mapped["RawMaterial"] = relationship("RawMaterial", lazy="selectin")  # noqa: F821

    @property
    def raw_material_name(self) -> Optional[str]:
        return self.raw_material.name if self.raw_material is not None else None
