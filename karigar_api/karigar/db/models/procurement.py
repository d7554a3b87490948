from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from sqlalchemy import Boolean, Date, DateTime, Text, ForeignKey, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin, QTY


class Supplier(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Raw material supplier, optionally reachable over WhatsApp."""
    __tablename__ = "suppliers"

    company_name: Mapped[str] = mapped_column(Text, nullable=False)
    contact_person: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    whatsapp_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    whatsapp_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    payment_terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    materials_supplied: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default=text("'{}'::text[]")
    )


class ProcurementRequest(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Replenishment request for a raw material."""
    __tablename__ = "procurement_requests"
    __table_args__ = (
        UniqueConstraint("merchant_id", "request_number", name="uq_procurement_requests_merchant_number"),
    )

    request_number: Mapped[str] = mapped_column(Text, nullable=False)
    raw_material_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("raw_materials.id", ondelete="CASCADE"), nullable=False, index=True
    )
    supplier_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True
    )
    quantity_requested: Mapped[float] = mapped_column(QTY, nullable=False)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Pending", server_default="Pending")
    date_requested: Mapped[date] = mapped_column(Date, nullable=False, server_default=text("CURRENT_DATE"))
    eta: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    raw_material: Mapped["RawMaterial"] = relationship("RawMaterial", lazy="selectin")  # noqa: F821
    supplier: Mapped[Optional["Supplier"]] = relationship("Supplier", lazy="selectin")

    @property
    def raw_material_name(self) -> Optional[str]:
        return self.raw_material.name if self.raw_material is not None else None

    @property
    def raw_material_type(self) -> Optional[str]:
        return self.raw_material.type if self.raw_material is not None else None

    @property
    def supplier_name(self) -> Optional[str]:
        return self.supplier.company_name if self.supplier is not None else None


class WhatsAppNotification(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Outcome of one WhatsApp message sent to a supplier."""
    __tablename__ = "whatsapp_notifications"

    procurement_request_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("procurement_requests.id", ondelete="SET NULL"), nullable=True, index=True
    )
    supplier_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True
    )
    recipient: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    message_content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_status: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    provider_message_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
