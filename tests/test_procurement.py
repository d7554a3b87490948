from __future__ import annotations

import asyncio
from types import SimpleNamespace as NS
from uuid import uuid4

import pytest

from karigar.core.errors import InvalidTransition, NotFoundError
from karigar.db.models.procurement import WhatsAppNotification
from karigar.services.notifications import SendResult
from karigar.services.procurement import (
    APPROVED,
    PENDING,
    RECEIVED,
    ProcurementService,
    check_procurement_transition,
)

from conftest import make_user


@pytest.mark.parametrize("current, target", [(PENDING, APPROVED), (APPROVED, RECEIVED)])
def test_allowed_transitions(current, target) -> None:
    check_procurement_transition(current, target)


@pytest.mark.parametrize(
    "current, target",
    [(PENDING, RECEIVED), (APPROVED, PENDING), (RECEIVED, APPROVED), (RECEIVED, RECEIVED), ("None", APPROVED)],
)
def test_refused_transitions(current, target) -> None:
    with pytest.raises(InvalidTransition) as exc:
        check_procurement_transition(current, target)
    assert exc.value.details["from"] == current
    assert exc.value.details["to"] == target


def _supplier(number="+91 98111 11111", enabled=True) -> NS:
    return NS(
        id=uuid4(),
        company_name="Shree Bullion Traders",
        contact_person="Mahesh",
        whatsapp_enabled=enabled,
        whatsapp_number=number,
    )


class _RecordingClient:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent = []

    async def send(self, to, body) -> SendResult:
        if self.fail:
            raise RuntimeError("provider unreachable")
        self.sent.append((to, body))
        return SendResult(ok=True, provider_message_id="SM1", delivery_status="queued")


@pytest.fixture
def procurement(session):
    """ProcurementService over one in-memory request and its raw material."""

    def _build(status=PENDING, supplier=None, whatsapp=None, stock=10.0):
        material = NS(id=uuid4(), name="Gold 22K", current_stock=stock, request_status=status, last_updated=None)
        request = NS(
            id=uuid4(),
            request_number="PR000004",
            status=status,
            raw_material_id=material.id,
            raw_material=material,
            quantity_requested=50.0,
            unit="grams",
            eta=None,
            supplier=supplier,
        )

        async def _get_request(request_id):
            return request if request_id == request.id else None

        async def _get_material(material_id):
            return material if material_id == material.id else None

        service = ProcurementService(session, make_user("manager"), whatsapp=whatsapp or _RecordingClient())
        service.requests.get_for_update = _get_request
        service.requests.get_request = _get_request
        service.materials.get_for_update = _get_material
        return service, request, material

    return _build


class TestUpdateStatus:
    def test_approval_mirrors_status_and_notifies_supplier(self, session, procurement) -> None:
        client = _RecordingClient()
        service, request, material = procurement(supplier=_supplier(), whatsapp=client)

        asyncio.run(service.update_status(request.id, APPROVED))

        assert request.status == APPROVED
        assert material.request_status == APPROVED
        assert material.current_stock == 10.0
        assert client.sent[0][0] == "+919811111111"
        [notification] = session.added_of(WhatsAppNotification)
        assert notification.status == "sent"
        assert notification.procurement_request_id == request.id
        assert session.commits == 1

    def test_receipt_adds_requested_quantity_to_stock(self, procurement) -> None:
        service, request, material = procurement(status=APPROVED, stock=12.5)

        asyncio.run(service.update_status(request.id, RECEIVED))

        assert material.current_stock == pytest.approx(62.5)
        assert material.request_status == RECEIVED

    def test_failed_notification_does_not_block_approval(self, session, procurement) -> None:
        service, request, _ = procurement(supplier=_supplier(), whatsapp=_RecordingClient(fail=True))

        asyncio.run(service.update_status(request.id, APPROVED))

        assert request.status == APPROVED
        assert session.added_of(WhatsAppNotification) == []
        assert session.commits == 1

    @pytest.mark.parametrize("supplier", [_supplier(number=None), _supplier(number=""), _supplier(enabled=False), None])
    def test_no_message_without_reachable_supplier(self, session, procurement, supplier) -> None:
        client = _RecordingClient()
        service, request, _ = procurement(supplier=supplier, whatsapp=client)

        asyncio.run(service.update_status(request.id, APPROVED))

        assert request.status == APPROVED
        assert client.sent == []
        assert session.added_of(WhatsAppNotification) == []

    def test_skipping_approval_is_refused(self, session, procurement) -> None:
        service, request, material = procurement()

        with pytest.raises(InvalidTransition):
            asyncio.run(service.update_status(request.id, RECEIVED))
        assert material.current_stock == 10.0
        assert session.commits == 0

    def test_unknown_request(self, procurement) -> None:
        service, _, _ = procurement()
        with pytest.raises(NotFoundError):
            asyncio.run(service.update_status(uuid4(), APPROVED))
