from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.errors import ConflictError, InvalidTransition, NotFoundError
from karigar.db.models.procurement import ProcurementRequest
from karigar.repositories.inventory import RawMaterialRepository
from karigar.repositories.procurement import ProcurementRequestRepository, SupplierRepository
from karigar.schemas.procurement import ProcurementRequestCreate
from karigar.services import numbering
from karigar.services.activity import log_activity
from karigar.services.base import BaseService
from karigar.services.notifications import WhatsAppClient, notify_supplier_of_approval

logger = logging.getLogger(__name__)

PENDING = "Pending"
APPROVED = "Approved"
RECEIVED = "Received"

# current status -> statuses it may move to
PROCUREMENT_TRANSITIONS = {
    PENDING: {APPROVED},
    APPROVED: {RECEIVED},
    RECEIVED: set(),
}


# PUBLIC_INTERFACE
def check_procurement_transition(current: str, target: str) -> None:
    """Raise InvalidTransition unless `target` is allowed after `current`."""
    if target not in PROCUREMENT_TRANSITIONS.get(current, set()):
        raise InvalidTransition("Procurement request", current, target)


class ProcurementService(BaseService):
    """Procurement request workflow: create, approve (notify supplier), receive (add stock)."""

    def __init__(self, session: AsyncSession, user=None, whatsapp: Optional[WhatsAppClient] = None) -> None:
        super().__init__(session, user)
        self.requests = ProcurementRequestRepository(session)
        self.suppliers = SupplierRepository(session)
        self.materials = RawMaterialRepository(session)
        self.whatsapp = whatsapp or WhatsAppClient()

    def _requester_names(self) -> tuple[Optional[str], Optional[str]]:
        name = getattr(self.user, "full_name", None)
        if not name:
            return None, None
        first, _, last = name.strip().partition(" ")
        return first or None, last.strip() or None

    async def _build(self, payload: ProcurementRequestCreate) -> ProcurementRequest:
        material = await self.materials.get_for_update(payload.raw_material_id)
        if material is None:
            raise NotFoundError("Raw material", payload.raw_material_id)
        supplier_id = payload.supplier_id or material.supplier_id
        if payload.supplier_id is not None and await self.suppliers.get_supplier(payload.supplier_id) is None:
            raise NotFoundError("Supplier", payload.supplier_id)

        first_name, last_name = self._requester_names()
        request = ProcurementRequest(
            request_number=await numbering.next_number(self.session, numbering.PROCUREMENT_REQUEST),
            raw_material_id=material.id,
            supplier_id=supplier_id,
            quantity_requested=payload.quantity_requested,
            unit=payload.unit or material.unit,
            status=PENDING,
            eta=payload.eta,
            notes=payload.notes,
            first_name=first_name,
            last_name=last_name,
        )
        await self.requests.add(request)
        material.request_status = PENDING
        material.last_updated = datetime.now(timezone.utc)
        log_activity(
            self.session,
            user=self.user,
            action="procurement.requested",
            entity_type="procurement_request",
            entity_id=request.request_number,
            description=f"{request.request_number}: {payload.quantity_requested} {request.unit} of {material.name}",
        )
        return request

    # PUBLIC_INTERFACE
    async def create_request(self, payload: ProcurementRequestCreate) -> ProcurementRequest:
        request = await self._build(payload)
        await self.requests.commit()
        return await self.requests.get_request(request.id)  # type: ignore

    # PUBLIC_INTERFACE
    async def create_bulk(self, payloads: List[ProcurementRequestCreate]) -> List[ProcurementRequest]:
        """Create several requests in one transaction; any failure creates none."""
        built = [await self._build(p) for p in payloads]
        await self.requests.commit()
        logger.info("Created %d procurement requests", len(built))
        return [await self.requests.get_request(r.id) for r in built]  # type: ignore

    # PUBLIC_INTERFACE
    async def update_status(self, request_id: UUID, target: str) -> ProcurementRequest:
        """
        Move a request along Pending -> Approved -> Received.

        The raw material's request_status mirrors the request. Received adds the
        requested quantity to stock. Approved notifies a WhatsApp-enabled supplier
        that has a number on file;
        a failed notification is recorded and does not block the approval.
        """
        request = await self.requests.get_for_update(request_id)
        if request is None:
            raise NotFoundError("Procurement request", request_id)
        check_procurement_transition(request.status, target)

        material = await self.materials.get_for_update(request.raw_material_id)
        if material is None:
            raise NotFoundError("Raw material", request.raw_material_id)

        previous = request.status
        request.status = target
        material.request_status = target
        material.last_updated = datetime.now(timezone.utc)
        if target == RECEIVED:
            material.current_stock = round(float(material.current_stock or 0) + float(request.quantity_requested), 3)

        log_activity(
            self.session,
            user=self.user,
            action="procurement.status_changed",
            entity_type="procurement_request",
            entity_id=request.request_number,
            description=f"{request.request_number}: {previous} -> {target}",
        )

        supplier = request.supplier
        if target == APPROVED and supplier is not None and supplier.whatsapp_enabled and supplier.whatsapp_number:
            try:
                notification = await notify_supplier_of_approval(self.whatsapp, request, supplier)
                await self.requests.add(notification)
            except Exception:
                logger.exception("WhatsApp notification failed for %s", request.request_number)

        await self.requests.commit()
        return await self.requests.get_request(request.id)  # type: ignore

    # PUBLIC_INTERFACE
    async def delete_request(self, request_id: UUID) -> None:
        request = await self.requests.get_for_update(request_id)
        if request is None:
            raise NotFoundError("Procurement request", request_id)
        if request.status != PENDING:
            raise ConflictError(
                f"Only pending requests can be deleted (request is {request.status})",
                details={"status": request.status},
            )
        material = await self.materials.get_for_update(request.raw_material_id)
        await self.requests.delete(request)
        if material is not None and material.request_status == PENDING:
            material.request_status = "None"
        log_activity(
            self.session,
            user=self.user,
            action="procurement.deleted",
            entity_type="procurement_request",
            entity_id=request.request_number,
        )
        await self.requests.commit()
