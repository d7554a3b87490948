from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.core.errors import NotFoundError
from karigar.repositories.sales import CustomerRepository, OrderRepository
from karigar.schemas.sales import (
    CustomerCreate,
    CustomerRead,
    CustomerUpdate,
    FulfilmentRequest,
    InvoiceCreate,
    InvoiceRead,
    OrderRead,
    OrderStatus,
    OrderSubmit,
    OrderUpdate,
)
from karigar.services.invoices import InvoiceService
from karigar.services.orders import OrderService

router = APIRouter(tags=["Orders"])


# PUBLIC_INTERFACE
@router.get(
    "/customers",
    response_model=List[CustomerRead],
    summary="List customers",
    description="Customers ordered by name; search matches name or phone.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_customers(
    session: AsyncSession = Depends(get_merchant_session),
    search: Optional[str] = Query(None, description="Substring of name or phone"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[CustomerRead]:
    customers = await CustomerRepository(session).list_customers(search=search, limit=limit, offset=offset)
    return [CustomerRead.model_validate(c) for c in customers]


# PUBLIC_INTERFACE
@router.post(
    "/customers",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def create_customer(
    payload: CustomerCreate,
    session: AsyncSession = Depends(get_merchant_session),
) -> CustomerRead:
    created = await CustomerRepository(session).create_customer(payload.model_dump())
    return CustomerRead.model_validate(created)


# PUBLIC_INTERFACE
@router.patch(
    "/customers/{customer_id}",
    response_model=CustomerRead,
    summary="Update customer",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def update_customer(
    payload: CustomerUpdate,
    customer_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> CustomerRead:
    repo = CustomerRepository(session)
    customer = await repo.get_customer(customer_id)
    if customer is None:
        raise NotFoundError("Customer", customer_id)
    updated = await repo.update_customer(customer, payload.model_dump(exclude_unset=True))
    return CustomerRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.get(
    "/orders",
    response_model=List[OrderRead],
    summary="List orders",
    description="Orders newest first with their items.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_orders(
    session: AsyncSession = Depends(get_merchant_session),
    status: Optional[OrderStatus] = Query(None),
    customer_id: Optional[UUID] = Query(None),
    search: Optional[str] = Query(None, description="Substring of the order number"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[OrderRead]:
    orders = await OrderRepository(session).list_orders(
        status=status, customer_id=customer_id, search=search, limit=limit, offset=offset
    )
    return [OrderRead.model_validate(o) for o in orders]


# PUBLIC_INTERFACE
@router.post(
    "/orders",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit order",
    description="Create an order with one item per line. The customer is matched by exact name or "
    "created; unknown product codes are rejected and nothing is written.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def submit_order(
    payload: OrderSubmit,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> OrderRead:
    order = await OrderService(session, user).create_order(payload)
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.get(
    "/orders/{order_id}",
    response_model=OrderRead,
    summary="Get order",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_order(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> OrderRead:
    order = await OrderRepository(session).get_order(order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.patch(
    "/orders/{order_id}",
    response_model=OrderRead,
    summary="Update order",
    description="Change the order status and/or expected delivery date.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_order(
    payload: OrderUpdate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> OrderRead:
    order = await OrderService(session, user).update_order(order_id, payload)
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.post(
    "/orders/items/{order_item_id}/fulfil",
    response_model=OrderRead,
    summary="Fulfil order item",
    description="Record delivered pieces against an order item; item and order statuses are re-derived.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def fulfil_order_item(
    payload: FulfilmentRequest,
    order_item_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> OrderRead:
    order = await OrderService(session, user).fulfil_item(order_item_id, payload.quantity)
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.post(
    "/orders/{order_id}/invoice",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
    description="Raise the order's invoice from its items with optional tax and discount. "
    "An order has at most one invoice; a second request is a conflict.",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_invoice(
    payload: InvoiceCreate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> InvoiceRead:
    invoice = await InvoiceService(session, user).create_for_order(order_id, payload)
    return InvoiceRead.model_validate(invoice)


# PUBLIC_INTERFACE
@router.get(
    "/orders/{order_id}/invoice",
    response_model=InvoiceRead,
    summary="Get order invoice",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_order_invoice(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> InvoiceRead:
    invoice = await InvoiceService(session).get_for_order(order_id)
    return InvoiceRead.model_validate(invoice)


# PUBLIC_INTERFACE
@router.get(
    "/invoices",
    response_model=List[InvoiceRead],
    summary="List invoices",
    description="Invoices newest first.",
    dependencies=[Depends(require_roles("admin"))],
)
async def list_invoices(
    session: AsyncSession = Depends(get_merchant_session),
    invoice_status: Optional[str] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[InvoiceRead]:
    invoices = await InvoiceService(session).list_invoices(status=invoice_status, limit=limit, offset=offset)
    return [InvoiceRead.model_validate(i) for i in invoices]
