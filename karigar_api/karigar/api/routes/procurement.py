from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.core.errors import NotFoundError
from karigar.repositories.procurement import ProcurementRequestRepository, SupplierRepository
from karigar.schemas.procurement import (
    ProcurementRequestBulkCreate,
    ProcurementRequestCreate,
    ProcurementRequestRead,
    ProcurementStatus,
    ProcurementStatusUpdate,
    SupplierCreate,
    SupplierRead,
    SupplierUpdate,
    WhatsAppNotificationRead,
)
from karigar.services.notifications import WhatsAppClient
from karigar.services.procurement import ProcurementService

router = APIRouter(prefix="/procurement", tags=["Procurement"])


# PUBLIC_INTERFACE
def get_whatsapp_client() -> WhatsAppClient:
    """Notification gateway used when a request is approved."""
    return WhatsAppClient()


# PUBLIC_INTERFACE
@router.get(
    "/suppliers",
    response_model=List[SupplierRead],
    summary="List suppliers",
    description="Return suppliers ordered by company name.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_suppliers(
    session: AsyncSession = Depends(get_merchant_session),
    search: Optional[str] = Query(None, description="Substring of the company name"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[SupplierRead]:
    items = await SupplierRepository(session).list_suppliers(search=search, limit=limit, offset=offset)
    return [SupplierRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "/suppliers",
    response_model=SupplierRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create supplier",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_supplier(
    payload: SupplierCreate,
    session: AsyncSession = Depends(get_merchant_session),
) -> SupplierRead:
    created = await SupplierRepository(session).create_supplier(payload.model_dump())
    return SupplierRead.model_validate(created)


# PUBLIC_INTERFACE
@router.patch(
    "/suppliers/{supplier_id}",
    response_model=SupplierRead,
    summary="Update supplier",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_supplier(
    payload: SupplierUpdate,
    supplier_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> SupplierRead:
    repo = SupplierRepository(session)
    supplier = await repo.get_supplier(supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    updated = await repo.update_supplier(supplier, payload.model_dump(exclude_unset=True))
    return SupplierRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.get(
    "/requests",
    response_model=List[ProcurementRequestRead],
    summary="List procurement requests",
    description="Requests newest first with material and supplier names.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_requests(
    session: AsyncSession = Depends(get_merchant_session),
    status: Optional[ProcurementStatus] = Query(None),
    raw_material_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ProcurementRequestRead]:
    items = await ProcurementRequestRepository(session).list_requests(
        status=status, raw_material_id=raw_material_id, limit=limit, offset=offset
    )
    return [ProcurementRequestRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "/requests",
    response_model=ProcurementRequestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create procurement request",
    description="Create a Pending request; the material's request status becomes Pending.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def create_request(
    payload: ProcurementRequestCreate,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> ProcurementRequestRead:
    created = await ProcurementService(session, user).create_request(payload)
    return ProcurementRequestRead.model_validate(created)


# PUBLIC_INTERFACE
@router.post(
    "/requests/bulk",
    response_model=List[ProcurementRequestRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create procurement requests in bulk",
    description="All requests are created in one transaction; one failure creates none.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def create_requests_bulk(
    payload: ProcurementRequestBulkCreate,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> List[ProcurementRequestRead]:
    created = await ProcurementService(session, user).create_bulk(payload.requests)
    return [ProcurementRequestRead.model_validate(x) for x in created]


# PUBLIC_INTERFACE
@router.patch(
    "/requests/{request_id}/status",
    response_model=ProcurementRequestRead,
    summary="Change procurement request status",
    description="Pending -> Approved -> Received. Approval notifies a WhatsApp-enabled supplier; "
    "receipt adds the requested quantity to raw material stock.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_request_status(
    payload: ProcurementStatusUpdate,
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
    whatsapp: WhatsAppClient = Depends(get_whatsapp_client),
) -> ProcurementRequestRead:
    updated = await ProcurementService(session, user, whatsapp).update_status(request_id, payload.status)
    return ProcurementRequestRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/requests/{request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete procurement request",
    description="Only Pending requests can be deleted.",
    dependencies=[Depends(require_roles("admin"))],
)
async def delete_request(
    request_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> None:
    await ProcurementService(session, user).delete_request(request_id)


# PUBLIC_INTERFACE
@router.get(
    "/notifications",
    response_model=List[WhatsAppNotificationRead],
    summary="List supplier notifications",
    description="WhatsApp messages sent (or attempted) on approval, newest first.",
    dependencies=[Depends(require_roles("admin"))],
)
async def list_notifications(
    session: AsyncSession = Depends(get_merchant_session),
    procurement_request_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[WhatsAppNotificationRead]:
    rows = await ProcurementRequestRepository(session).list_notifications(
        procurement_request_id=procurement_request_id, limit=limit, offset=offset
    )
    return [WhatsAppNotificationRead.model_validate(r) for r in rows]
