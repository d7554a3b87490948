"""
Customer order submission and fulfilment.

Item status follows its fulfilled quantity; order status is derived from its items:
every item Delivered -> Delivered, any item (partly) fulfilled -> Partially Fulfilled,
otherwise the order keeps its status.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.errors import NotFoundError, ValidationFailed
from karigar.db.models.sales import Customer, Order, OrderItem
from karigar.repositories.master_data import ProductConfigRepository
from karigar.repositories.sales import CustomerRepository, OrderRepository
from karigar.schemas.sales import OrderSubmit, OrderUpdate
from karigar.services import numbering
from karigar.services.activity import log_activity
from karigar.services.base import BaseService

logger = logging.getLogger(__name__)

STATUS_CREATED = "Created"
STATUS_PARTIAL = "Partially Fulfilled"
STATUS_DELIVERED = "Delivered"

CENT = Decimal("0.01")


# PUBLIC_INTERFACE
def derive_item_status(quantity: int, fulfilled: int, current: str) -> str:
    """Status of an order item after its fulfilled quantity changed."""
    if fulfilled >= quantity > 0:
        return STATUS_DELIVERED
    if fulfilled > 0:
        return STATUS_PARTIAL
    return current


# PUBLIC_INTERFACE
def derive_order_status(item_statuses: Sequence[str], current: str) -> str:
    """Order status implied by its items' statuses."""
    if item_statuses and all(s == STATUS_DELIVERED for s in item_statuses):
        return STATUS_DELIVERED
    if any(s in (STATUS_PARTIAL, STATUS_DELIVERED) for s in item_statuses):
        return STATUS_PARTIAL
    return current


# PUBLIC_INTERFACE
def line_total(price: float, quantity: int) -> float:
    """Unit price x quantity, rounded half up to cents."""
    return float((Decimal(str(price)) * int(quantity)).quantize(CENT, rounding=ROUND_HALF_UP))


# PUBLIC_INTERFACE
def order_total(lines: Iterable[Tuple[float, int]]) -> float:
    """Sum of unit price x quantity over (price, quantity) pairs, rounded half up to cents."""
    total = sum((Decimal(str(price)) * int(qty) for price, qty in lines), Decimal(0))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))


class OrderService(BaseService):
    """Order submission, updates and fulfilment."""

    def __init__(self, session: AsyncSession, user=None) -> None:
        super().__init__(session, user)
        self.orders = OrderRepository(session)
        self.customers = CustomerRepository(session)
        self.products = ProductConfigRepository(session)

    async def _resolve_customer(self, name: str, phone: Optional[str]) -> Customer:
        customer = await self.customers.find_by_name(name)
        if customer is None:
            customer = Customer(name=name, phone=phone)
            await self.customers.add(customer)
            await self.customers.flush()
        elif phone and customer.phone != phone:
            customer.phone = phone
        return customer

    # PUBLIC_INTERFACE
    async def create_order(self, payload: OrderSubmit, *, commit: bool = True) -> Order:
        """
        Create an order with one suborder per line in a single transaction.

        Raises:
            ValidationFailed: empty item list or blank customer name.
            NotFoundError: a line names an unknown product code.
        """
        if not payload.items:
            raise ValidationFailed("An order needs at least one item")
        if not payload.customer_name.strip():
            raise ValidationFailed("Customer name is required")

        codes = [line.product_code for line in payload.items]
        configs = {pc.product_code: pc for pc in await self.products.get_by_codes(codes)}
        for code in codes:
            if code not in configs:
                raise NotFoundError("Product config", code)

        customer = await self._resolve_customer(payload.customer_name.strip(), payload.customer_phone)
        order_number = await numbering.next_number(self.session, numbering.ORDER)
        order = Order(
            order_number=order_number,
            customer_id=customer.id,
            status=STATUS_CREATED,
            expected_delivery=payload.expected_delivery,
            total_amount=order_total((line.price, line.quantity) for line in payload.items),
        )
        await self.orders.add(order)
        await self.orders.flush()

        items: List[OrderItem] = []
        for index, line in enumerate(payload.items, start=1):
            items.append(
                OrderItem(
                    order_id=order.id,
                    product_config_id=configs[line.product_code].id,
                    suborder_id=numbering.format_suborder_id(order_number, index),
                    quantity=line.quantity,
                    unit_price=line.price,
                    total_price=line_total(line.price, line.quantity),
                    status=STATUS_CREATED,
                )
            )
        await self.orders.add_all(items)
        log_activity(
            self.session,
            user=self.user,
            action="order.created",
            entity_type="order",
            entity_id=order.id,
            description=f"Order {order_number} for {customer.name} ({len(items)} items)",
        )
        if not commit:
            await self.orders.flush()
            return order
        await self.orders.commit()
        logger.info("Created order %s with %d items", order_number, len(items))
        return await self.orders.get_order(order.id)  # type: ignore

    # PUBLIC_INTERFACE
    async def update_order(self, order_id: UUID, payload: OrderUpdate) -> Order:
        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        changes = payload.model_dump(exclude_unset=True)
        if "status" in changes and changes["status"] is not None and changes["status"] != order.status:
            log_activity(
                self.session,
                user=self.user,
                action="order.status_changed",
                entity_type="order",
                entity_id=order.id,
                description=f"{order.order_number}: {order.status} -> {changes['status']}",
            )
            order.status = changes["status"]
        if "expected_delivery" in changes:
            order.expected_delivery = changes["expected_delivery"]
        await self.orders.commit()
        return await self.orders.get_order(order.id)  # type: ignore

    # PUBLIC_INTERFACE
    async def apply_fulfilment(self, item: OrderItem, quantity: int) -> Order:
        """
        Add `quantity` delivered pieces to an order item and re-derive both statuses.

        Does not commit; the caller owns the transaction.
        """
        if quantity <= 0:
            raise ValidationFailed("Fulfilled quantity must be positive")
        item.fulfilled_quantity = int(item.fulfilled_quantity or 0) + quantity
        item.status = derive_item_status(item.quantity, item.fulfilled_quantity, item.status)
        # autoflush is off; the reload below must see the new item status
        await self.orders.flush()

        items = await self.orders.list_items_for_order(item.order_id)
        order = await self.orders.get_order(item.order_id)
        if order is None:
            raise NotFoundError("Order", item.order_id)
        order.status = derive_order_status([i.status for i in items], order.status)
        return order

    # PUBLIC_INTERFACE
    async def fulfil_item(self, order_item_id: UUID, quantity: int) -> Order:
        item = await self.orders.get_order_item(order_item_id, lock=True)
        if item is None:
            raise NotFoundError("Order item", order_item_id)
        order = await self.apply_fulfilment(item, quantity)
        log_activity(
            self.session,
            user=self.user,
            action="order.fulfilled",
            entity_type="order",
            entity_id=order.id,
            description=f"{item.suborder_id}: +{quantity} ({item.status})",
        )
        await self.orders.commit()
        return await self.orders.get_order(order.id)  # type: ignore
