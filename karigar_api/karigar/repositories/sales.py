from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from karigar.db.models.sales import Customer, Invoice, Order, OrderItem
from .base import BaseRepository


class CustomerRepository(BaseRepository):
    """Repository for customers."""

    async def list_customers(self, *, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Customer]:
        stmt = select(Customer)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))
        stmt = stmt.order_by(Customer.name).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_customer(self, customer_id: UUID) -> Optional[Customer]:
        return await self.get_by_id(Customer, customer_id)

    async def find_by_name(self, name: str) -> Optional[Customer]:
        stmt = select(Customer).where(Customer.name == name).order_by(Customer.created_at).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def create_customer(self, values: dict) -> Customer:
        customer = Customer(**values)
        await self.add(customer)
        await self.commit()
        return await self.get_customer(customer.id)  # type: ignore

    async def update_customer(self, customer: Customer, values: dict) -> Customer:
        for key, value in values.items():
            setattr(customer, key, value)
        await self.commit()
        return await self.get_customer(customer.id)  # type: ignore


class OrderRepository(BaseRepository):
    """Repository for orders and order items."""

    async def list_orders(
        self,
        *,
        status: Optional[str] = None,
        customer_id: Optional[UUID] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Order]:
        stmt = select(Order)
        if status:
            stmt = stmt.where(Order.status == status)
        if customer_id:
            stmt = stmt.where(Order.customer_id == customer_id)
        if search:
            stmt = stmt.where(Order.order_number.ilike(f"%{search}%"))
        stmt = stmt.order_by(Order.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_order(self, order_id: UUID) -> Optional[Order]:
        return await self.get_by_id(Order, order_id)

    async def get_order_item(self, order_item_id: UUID, *, lock: bool = False) -> Optional[OrderItem]:
        stmt = select(OrderItem).where(OrderItem.id == order_item_id)
        if lock:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def list_items_for_order(self, order_id: UUID) -> List[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.suborder_id)
            .execution_options(populate_existing=True)
        )
        return list(await self.scalars(stmt))

    async def list_all_items(self) -> List[OrderItem]:
        return list(await self.scalars(select(OrderItem)))


class InvoiceRepository(BaseRepository):
    """Repository for invoices."""

    async def list_invoices(self, *, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Invoice]:
        stmt = select(Invoice)
        if status:
            stmt = stmt.where(Invoice.status == status)
        stmt = stmt.order_by(Invoice.invoice_date.desc(), Invoice.invoice_number.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_for_order(self, order_id: UUID) -> Optional[Invoice]:
        stmt = select(Invoice).where(Invoice.order_id == order_id).execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)
