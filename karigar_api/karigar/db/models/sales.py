from __future__ import annotations

from datetime import date
from typing import Optional
from sqlalchemy import Date, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from karigar.db.base import Base, UUIDPkMixin, TimestampMixin, MerchantMixin, MONEY


class Customer(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    __tablename__ = "customers"

    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Order(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Customer order; one order item (suborder) per product line."""
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("merchant_id", "order_number", name="uq_orders_merchant_number"),
    )

    order_number: Mapped[str] = mapped_column(Text, nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Created", server_default="Created")
    total_amount: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    expected_delivery: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.suborder_id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def customer_name(self) -> Optional[str]:
        return self.customer.name if self.customer is not None else None


class OrderItem(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    __tablename__ = "order_items"
    __table_args__ = (
        UniqueConstraint("merchant_id", "suborder_id", name="uq_order_items_merchant_suborder"),
    )

    order_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    suborder_id: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    fulfilled_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    unit_price: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    total_price: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Created", server_default="Created")

    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product_config: Mapped["ProductConfig"] = relationship("ProductConfig", lazy="selectin")  # noqa: F821

    @property
    def product_code(self) -> Optional[str]:
        return self.product_config.product_code if self.product_config is not None else None


class Invoice(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    """Bill raised against one order; line amounts are copied from its items."""
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("merchant_id", "invoice_number", name="uq_invoices_merchant_number"),
        UniqueConstraint("merchant_id", "order_id", name="uq_invoices_merchant_order"),
    )

    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    order_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    customer_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    subtotal: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    tax_amount: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    discount_amount: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    total_amount: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Draft", server_default="Draft")

    order: Mapped["Order"] = relationship("Order", lazy="selectin")
    customer: Mapped["Customer"] = relationship("Customer", lazy="selectin")
    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def order_number(self) -> Optional[str]:
        return self.order.order_number if self.order is not None else None

    @property
    def customer_name(self) -> Optional[str]:
        return self.customer.name if self.customer is not None else None


class InvoiceItem(UUIDPkMixin, MerchantMixin, TimestampMixin, Base):
    __tablename__ = "invoice_items"

    invoice_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_item_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True
    )
    product_config_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_configs.id", ondelete="RESTRICT"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")
    total_price: Mapped[float] = mapped_column(MONEY, nullable=False, default=0, server_default="0")

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")
    product_config: Mapped["ProductConfig"] = relationship("ProductConfig", lazy="selectin")  # noqa: F821

    @property
    def product_code(self) -> Optional[str]:
        return self.product_config.product_code if self.product_config is not None else None
