"""
Invoices raised against customer orders.

An order gets at most one invoice. Its lines copy the order items' quantities and
prices; total = subtotal + tax - discount, all rounded half up to cents.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.errors import ConflictError, NotFoundError, ValidationFailed
from karigar.db.models.sales import Invoice, InvoiceItem
from karigar.repositories.sales import InvoiceRepository, OrderRepository
from karigar.schemas.sales import InvoiceCreate
from karigar.services import numbering
from karigar.services.activity import log_activity
from karigar.services.base import BaseService
from karigar.services.orders import CENT, line_total

logger = logging.getLogger(__name__)

STATUS_DRAFT = "Draft"


# PUBLIC_INTERFACE
def invoice_totals(
    lines: Iterable[Tuple[float, int]], tax_amount: float = 0, discount_amount: float = 0
) -> Tuple[float, float]:
    """
    (subtotal, total) for (unit price, quantity) lines.

    Raises:
        ValidationFailed: the discount exceeds subtotal plus tax.
    """
    subtotal = sum((Decimal(str(line_total(price, qty))) for price, qty in lines), Decimal(0))
    tax = Decimal(str(tax_amount))
    discount = Decimal(str(discount_amount))
    total = subtotal + tax - discount
    if total < 0:
        raise ValidationFailed(
            "Discount exceeds the invoice amount",
            details={"subtotal": float(subtotal), "tax_amount": float(tax), "discount_amount": float(discount)},
        )
    return (
        float(subtotal.quantize(CENT, rounding=ROUND_HALF_UP)),
        float(total.quantize(CENT, rounding=ROUND_HALF_UP)),
    )


class InvoiceService(BaseService):
    """Create and look up order invoices."""

    def __init__(self, session: AsyncSession, user=None) -> None:
        super().__init__(session, user)
        self.invoices = InvoiceRepository(session)
        self.orders = OrderRepository(session)

    # PUBLIC_INTERFACE
    async def create_for_order(self, order_id: UUID, payload: InvoiceCreate) -> Invoice:
        """
        Raise the invoice for an order from its items.

        Raises:
            NotFoundError: unknown order.
            ConflictError: the order already has an invoice.
            ValidationFailed: the order has no items, or the discount exceeds the amount.
        """
        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        existing = await self.invoices.get_for_order(order_id)
        if existing is not None:
            raise ConflictError(
                "Order already has an invoice",
                details={"invoice_number": existing.invoice_number},
            )
        items = await self.orders.list_items_for_order(order_id)
        if not items:
            raise ValidationFailed("Order has no items to invoice", details={"order_id": str(order_id)})

        subtotal, total = invoice_totals(
            ((item.unit_price, item.quantity) for item in items), payload.tax_amount, payload.discount_amount
        )
        invoice_number = await numbering.next_number(self.session, numbering.INVOICE)
        invoice = Invoice(
            invoice_number=invoice_number,
            order_id=order.id,
            customer_id=order.customer_id,
            invoice_date=payload.invoice_date or date.today(),
            due_date=payload.due_date,
            subtotal=subtotal,
            tax_amount=payload.tax_amount,
            discount_amount=payload.discount_amount,
            total_amount=total,
            notes=payload.notes,
            status=STATUS_DRAFT,
        )
        await self.invoices.add(invoice)
        await self.invoices.flush()

        lines: List[InvoiceItem] = [
            InvoiceItem(
                invoice_id=invoice.id,
                order_item_id=item.id,
                product_config_id=item.product_config_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=line_total(item.unit_price, item.quantity),
            )
            for item in items
        ]
        await self.invoices.add_all(lines)
        log_activity(
            self.session,
            user=self.user,
            action="invoice.created",
            entity_type="order",
            entity_id=order.id,
            description=f"Invoice {invoice_number} for {order.order_number}: {total:.2f}",
        )
        await self.invoices.commit()
        logger.info("Created invoice %s for order %s", invoice_number, order.order_number)
        return await self.get_for_order(order_id)

    # PUBLIC_INTERFACE
    async def get_for_order(self, order_id: UUID) -> Invoice:
        invoice = await self.invoices.get_for_order(order_id)
        if invoice is None:
            raise NotFoundError("Invoice for order", order_id)
        return invoice

    # PUBLIC_INTERFACE
    async def list_invoices(self, *, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Invoice]:
        return await self.invoices.list_invoices(status=status, limit=limit, offset=offset)
