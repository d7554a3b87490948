"""
Invoice totals, invoice creation from order items and the invoice routes.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from types import SimpleNamespace as NS
from uuid import uuid4

import pytest
from pydantic import ValidationError

from karigar.api.main import app
from karigar.api.routes import orders as order_routes
from karigar.core.deps import get_current_active_user
from karigar.core.errors import ConflictError, NotFoundError, ValidationFailed
from karigar.db.models.sales import Invoice, InvoiceItem
from karigar.schemas.sales import InvoiceCreate
from karigar.services import numbering
from karigar.services.invoices import STATUS_DRAFT, InvoiceService, invoice_totals

from conftest import make_user


class TestInvoiceTotals:
    def test_subtotal_tax_and_discount(self) -> None:
        assert invoice_totals([(1500.0, 2), (250.5, 1)], tax_amount=97.52, discount_amount=50) == (3250.5, 3298.02)

    def test_line_amounts_round_half_up(self) -> None:
        assert invoice_totals([(0.125, 1), (0.125, 1)]) == (0.26, 0.26)

    def test_discount_above_amount(self) -> None:
        with pytest.raises(ValidationFailed) as exc:
            invoice_totals([(100.0, 1)], tax_amount=3, discount_amount=103.01)
        assert exc.value.details["subtotal"] == 100.0

    def test_due_date_before_invoice_date(self) -> None:
        with pytest.raises(ValidationError):
            InvoiceCreate(invoice_date=date(2024, 3, 9), due_date=date(2024, 3, 1))


@pytest.fixture
def invoicing(session, monkeypatch):
    """InvoiceService over one order whose items are held in memory."""

    async def _next_number(_session, sequence):
        return numbering.format_number(sequence, 1)

    monkeypatch.setattr(numbering, "next_number", _next_number)

    order = NS(id=uuid4(), order_number="OD000012", customer_id=uuid4())
    items = [
        NS(id=uuid4(), product_config_id=uuid4(), quantity=2, unit_price=1500.0),
        NS(id=uuid4(), product_config_id=uuid4(), quantity=3, unit_price=0.125),
    ]

    async def _get_order(order_id):
        return order if order_id == order.id else None

    async def _list_items(order_id):
        return items if order_id == order.id else []

    async def _get_for_order(order_id):
        return next((i for i in session.added_of(Invoice) if i.order_id == order_id), None)

    service = InvoiceService(session, make_user("admin"))
    service.orders.get_order = _get_order
    service.orders.list_items_for_order = _list_items
    service.invoices.get_for_order = _get_for_order
    return service, order, items


class TestCreateInvoice:
    def test_invoice_copies_order_items(self, session, invoicing) -> None:
        service, order, items = invoicing

        invoice = asyncio.run(
            service.create_for_order(order.id, InvoiceCreate(tax_amount=90.0, discount_amount=10.0, notes="Net 15"))
        )

        assert invoice.invoice_number == "INV000001"
        assert invoice.customer_id == order.customer_id
        assert invoice.subtotal == 3000.38
        assert invoice.total_amount == 3080.38
        assert invoice.status == STATUS_DRAFT
        assert invoice.invoice_date == date.today()
        lines = session.added_of(InvoiceItem)
        assert [(line.order_item_id, line.quantity, line.total_price) for line in lines] == [
            (items[0].id, 2, 3000.0),
            (items[1].id, 3, 0.38),
        ]
        assert all(line.invoice_id == invoice.id for line in lines)
        assert session.commits == 1

    def test_second_invoice_conflicts(self, session, invoicing) -> None:
        service, order, _ = invoicing
        asyncio.run(service.create_for_order(order.id, InvoiceCreate()))

        with pytest.raises(ConflictError) as exc:
            asyncio.run(service.create_for_order(order.id, InvoiceCreate()))

        assert exc.value.details == {"invoice_number": "INV000001"}
        assert len(session.added_of(Invoice)) == 1
        assert session.commits == 1

    def test_unknown_order(self, invoicing) -> None:
        service, _, _ = invoicing
        with pytest.raises(NotFoundError):
            asyncio.run(service.create_for_order(uuid4(), InvoiceCreate()))

    def test_missing_invoice(self, invoicing) -> None:
        service, order, _ = invoicing
        with pytest.raises(NotFoundError) as exc:
            asyncio.run(service.get_for_order(order.id))
        assert exc.value.status_code == 404


def _headers(merchant_id) -> dict:
    return {"X-Merchant-ID": str(merchant_id), "Authorization": "Bearer test"}


def _invoice_row(order_id) -> NS:
    return NS(
        id=uuid4(),
        invoice_number="INV000001",
        order_id=order_id,
        order_number="OD000012",
        customer_id=uuid4(),
        customer_name="Anita Sharma",
        invoice_date=date(2024, 3, 9),
        due_date=None,
        subtotal=3000.0,
        tax_amount=90.0,
        discount_amount=0.0,
        total_amount=3090.0,
        notes=None,
        status=STATUS_DRAFT,
        items=[],
        created_at=datetime.now(timezone.utc),
    )


class TestInvoiceRoutes:
    def test_create_returns_201(self, client, merchant_id, monkeypatch) -> None:
        order_id = uuid4()

        async def _create(self, oid, payload):
            assert payload.tax_amount == 90.0
            return _invoice_row(oid)

        monkeypatch.setattr(order_routes.InvoiceService, "create_for_order", _create)
        resp = client.post(f"/api/v1/orders/{order_id}/invoice", json={"tax_amount": 90}, headers=_headers(merchant_id))

        assert resp.status_code == 201
        body = resp.json()
        assert body["invoice_number"] == "INV000001"
        assert body["order_id"] == str(order_id)
        assert body["total_amount"] == 3090.0

    def test_second_create_is_409(self, client, merchant_id, monkeypatch) -> None:
        async def _create(self, oid, payload):
            raise ConflictError("Order already has an invoice", details={"invoice_number": "INV000001"})

        monkeypatch.setattr(order_routes.InvoiceService, "create_for_order", _create)
        resp = client.post(f"/api/v1/orders/{uuid4()}/invoice", json={}, headers=_headers(merchant_id))

        assert resp.status_code == 409
        assert resp.json()["error"]["details"] == {"invoice_number": "INV000001"}

    def test_get_by_order(self, client, merchant_id, monkeypatch) -> None:
        order_id = uuid4()

        async def _get(self, oid):
            return _invoice_row(oid)

        monkeypatch.setattr(order_routes.InvoiceService, "get_for_order", _get)
        resp = client.get(f"/api/v1/orders/{order_id}/invoice", headers=_headers(merchant_id))
        assert resp.status_code == 200
        assert resp.json()["order_number"] == "OD000012"

    def test_negative_tax_rejected(self, client, merchant_id) -> None:
        resp = client.post(f"/api/v1/orders/{uuid4()}/invoice", json={"tax_amount": -1}, headers=_headers(merchant_id))
        assert resp.status_code == 422

    def test_worker_cannot_create(self, client, merchant_id) -> None:
        async def _worker():
            return make_user("worker")

        app.dependency_overrides[get_current_active_user] = _worker
        resp = client.post(f"/api/v1/orders/{uuid4()}/invoice", json={}, headers=_headers(merchant_id))
        assert resp.status_code == 403
