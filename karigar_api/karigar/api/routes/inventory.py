from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.core.errors import NotFoundError
from karigar.repositories.inventory import FinishedGoodRepository, RawMaterialRepository, TagRepository
from karigar.repositories.procurement import SupplierRepository
from karigar.schemas.inventory import (
    FinishedGoodRead,
    FinishedGoodUpdate,
    RawMaterialCreate,
    RawMaterialRead,
    RawMaterialUpdate,
    RecalculateResult,
    TagAuditRead,
    TagInRequest,
    TagLookup,
    TagOperationResult,
    TagOutRequest,
    TagRead,
    TagScanRequest,
)
from karigar.services.activity import log_activity
from karigar.services.inventory import RequirementsService, TagService

router = APIRouter(prefix="/inventory", tags=["Inventory"])


# PUBLIC_INTERFACE
@router.get(
    "/raw-materials",
    response_model=List[RawMaterialRead],
    summary="List raw materials",
    description="Raw materials with live in-procurement, production requirement, required quantity and shortfall.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_raw_materials(
    session: AsyncSession = Depends(get_merchant_session),
    type: Optional[str] = Query(None, description="Filter by material type"),
    search: Optional[str] = Query(None, description="Substring of the material name"),
    critical_only: bool = Query(False, description="Only materials with a positive shortfall"),
) -> List[RawMaterialRead]:
    """
    Return raw materials with requirement figures computed in one pass over
    live orders, bills of materials and open procurement requests.
    """
    return await RequirementsService(session).list_raw_materials(
        type=type, search=search, critical_only=critical_only
    )


# PUBLIC_INTERFACE
@router.post(
    "/raw-materials",
    response_model=RawMaterialRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create raw material",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_raw_material(
    payload: RawMaterialCreate,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> RawMaterialRead:
    if payload.supplier_id and await SupplierRepository(session).get_supplier(payload.supplier_id) is None:
        raise NotFoundError("Supplier", payload.supplier_id)
    log_activity(
        session, user=user, action="raw_material.created", entity_type="raw_material", description=payload.name
    )
    created = await RawMaterialRepository(session).create_raw_material(payload.model_dump())
    return await RequirementsService(session).get_raw_material(created.id)


# PUBLIC_INTERFACE
@router.post(
    "/raw-materials/recalculate",
    response_model=RecalculateResult,
    summary="Recalculate requirements",
    description="Persist the computed required quantities on raw materials and finished goods.",
    dependencies=[Depends(require_roles("admin"))],
)
async def recalculate_requirements(
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> RecalculateResult:
    return await RequirementsService(session, user).recalculate()


# PUBLIC_INTERFACE
@router.get(
    "/raw-materials/{raw_material_id}",
    response_model=RawMaterialRead,
    summary="Get raw material",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_raw_material(
    raw_material_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> RawMaterialRead:
    return await RequirementsService(session).get_raw_material(raw_material_id)


# PUBLIC_INTERFACE
@router.patch(
    "/raw-materials/{raw_material_id}",
    response_model=RawMaterialRead,
    summary="Update raw material",
    description="Partial update of a raw material; touches last_updated.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_raw_material(
    payload: RawMaterialUpdate,
    raw_material_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> RawMaterialRead:
    repo = RawMaterialRepository(session)
    material = await repo.get_raw_material(raw_material_id)
    if material is None:
        raise NotFoundError("Raw material", raw_material_id)
    await repo.update_raw_material(material, payload.model_dump(exclude_unset=True))
    return await RequirementsService(session).get_raw_material(raw_material_id)


# PUBLIC_INTERFACE
@router.get(
    "/finished-goods",
    response_model=List[FinishedGoodRead],
    summary="List finished goods",
    description="Finished goods stock with demand from live orders, shortfall and the critical flag.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_finished_goods(
    session: AsyncSession = Depends(get_merchant_session),
    search: Optional[str] = Query(None, description="Substring of the product code"),
    critical_only: bool = Query(False, description="Only goods below their threshold"),
) -> List[FinishedGoodRead]:
    return await RequirementsService(session).list_finished_goods(search=search, critical_only=critical_only)


# PUBLIC_INTERFACE
@router.patch(
    "/finished-goods/{finished_good_id}",
    response_model=FinishedGoodRead,
    summary="Update finished good",
    description="Change the threshold or the tag-enabled flag.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_finished_good(
    payload: FinishedGoodUpdate,
    finished_good_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> FinishedGoodRead:
    repo = FinishedGoodRepository(session)
    fg = await repo.get_finished_good(finished_good_id)
    if fg is None:
        raise NotFoundError("Finished good", finished_good_id)
    updated = await repo.update_finished_good(fg, payload.model_dump(exclude_unset=True, exclude_none=True))
    return FinishedGoodRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.post(
    "/tags/in",
    response_model=TagOperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Manual tag in",
    description="Create an active tag for new pieces and add them to finished goods stock.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def tag_in(
    payload: TagInRequest,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> TagOperationResult:
    return await TagService(session, user).tag_in(payload)


# PUBLIC_INTERFACE
@router.post(
    "/tags/out",
    response_model=TagOperationResult,
    status_code=status.HTTP_201_CREATED,
    summary="Manual tag out",
    description="Remove pieces from finished goods stock; refused when stock is insufficient.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def tag_out(
    payload: TagOutRequest,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> TagOperationResult:
    return await TagService(session, user).tag_out(payload)


# PUBLIC_INTERFACE
@router.post(
    "/tags/scan",
    response_model=TagOperationResult,
    summary="Scan tag",
    description="Apply Tag In or Tag Out to an existing tag. Tag Out may fulfil an order item.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def scan_tag(
    payload: TagScanRequest,
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> TagOperationResult:
    return await TagService(session, user).scan(payload)


# PUBLIC_INTERFACE
@router.get(
    "/tags",
    response_model=List[TagRead],
    summary="List tags",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_tags(
    session: AsyncSession = Depends(get_merchant_session),
    product_config_id: Optional[UUID] = Query(None),
    status: Optional[str] = Query(None, description="active or inactive"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[TagRead]:
    tags = await TagRepository(session).list_tags(
        product_config_id=product_config_id, status=status, limit=limit, offset=offset
    )
    return [TagRead.model_validate(t) for t in tags]


# PUBLIC_INTERFACE
@router.get(
    "/tags/audit",
    response_model=List[TagAuditRead],
    summary="Tag audit trail",
    description="Every tag movement with stock before and after, newest first.",
    dependencies=[Depends(require_roles("admin"))],
)
async def list_tag_audit(
    session: AsyncSession = Depends(get_merchant_session),
    tag_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[TagAuditRead]:
    rows = await TagRepository(session).list_audit(tag_id=tag_id, limit=limit, offset=offset)
    return [TagAuditRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.get(
    "/tags/{tag_id}",
    response_model=TagLookup,
    summary="Look up tag",
    description="Product and quantity for a scanned tag id.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def lookup_tag(
    tag_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_merchant_session),
) -> TagLookup:
    tag, fg = await TagService(session).lookup(tag_id)
    return TagLookup(
        tag_id=tag.tag_id,
        product_config_id=tag.product_config_id,
        product_code=fg.product_code,
        quantity=abs(int(tag.quantity)),
        status=tag.status,
        current_stock=fg.current_stock,
    )
