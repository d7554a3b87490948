from __future__ import annotations

import logging
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, get_session_no_merchant, require_roles
from karigar.core.errors import NotFoundError
from karigar.core.logging import merchant_id_var
from karigar.db.session import merchant_context
from karigar.repositories.catalogue import CatalogueRepository
from karigar.schemas.catalogue import (
    CatalogueCreate,
    CatalogueItemCreate,
    CatalogueItemRead,
    CatalogueItemUpdate,
    CatalogueOrderCreate,
    CatalogueOrderRead,
    CatalogueRead,
    CatalogueUpdate,
    PublicCatalogueRead,
    PublicOrderReceipt,
)
from karigar.schemas.sales import OrderRead
from karigar.services.catalogue import CatalogueService, catalogue_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalogues", tags=["Catalogues"])
public_router = APIRouter(prefix="/public/catalogues", tags=["Public Catalogues"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[CatalogueRead],
    summary="List catalogues",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_catalogues(
    session: AsyncSession = Depends(get_merchant_session),
    is_active: Optional[bool] = Query(None),
) -> List[CatalogueRead]:
    catalogues = await CatalogueRepository(session).list_catalogues(is_active=is_active)
    return [catalogue_view(c) for c in catalogues]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=CatalogueRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create catalogue",
    description="Create a catalogue; its public slug is derived from the name and unique across merchants.",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_catalogue(
    payload: CatalogueCreate,
    session: AsyncSession = Depends(get_merchant_session),
) -> CatalogueRead:
    return catalogue_view(await CatalogueService(session).create_catalogue(payload))


# PUBLIC_INTERFACE
@router.get(
    "/orders",
    response_model=List[CatalogueOrderRead],
    summary="List catalogue order requests",
    description="Order requests placed by visitors, newest first.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_catalogue_orders(
    session: AsyncSession = Depends(get_merchant_session),
    catalogue_id: Optional[UUID] = Query(None),
    status: Optional[Literal["pending", "processed"]] = Query(None),
) -> List[CatalogueOrderRead]:
    rows = await CatalogueRepository(session).list_orders(catalogue_id=catalogue_id, status=status)
    return [CatalogueOrderRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/orders/{catalogue_order_id}/convert",
    response_model=OrderRead,
    summary="Convert catalogue order request",
    description="Submit the request as a regular order and mark it processed. A processed request "
    "cannot be converted again.",
    dependencies=[Depends(require_roles("admin"))],
)
async def convert_catalogue_order(
    catalogue_order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> OrderRead:
    order = await CatalogueService(session, user).convert_order(catalogue_order_id)
    return OrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.get(
    "/{catalogue_id}",
    response_model=CatalogueRead,
    summary="Get catalogue",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_catalogue(
    catalogue_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> CatalogueRead:
    catalogue = await CatalogueRepository(session).get_catalogue(catalogue_id)
    if catalogue is None:
        raise NotFoundError("Catalogue", catalogue_id)
    return catalogue_view(catalogue)


# PUBLIC_INTERFACE
@router.patch(
    "/{catalogue_id}",
    response_model=CatalogueRead,
    summary="Update catalogue",
    description="The slug is kept when the name changes so shared links stay valid.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_catalogue(
    payload: CatalogueUpdate,
    catalogue_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> CatalogueRead:
    return catalogue_view(await CatalogueService(session).update_catalogue(catalogue_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{catalogue_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete catalogue",
    dependencies=[Depends(require_roles("admin"))],
)
async def delete_catalogue(
    catalogue_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> None:
    await CatalogueService(session).delete_catalogue(catalogue_id)


# PUBLIC_INTERFACE
@router.post(
    "/{catalogue_id}/items",
    response_model=CatalogueItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add catalogue item",
    dependencies=[Depends(require_roles("admin"))],
)
async def add_catalogue_item(
    payload: CatalogueItemCreate,
    catalogue_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> CatalogueItemRead:
    item = await CatalogueService(session).add_item(catalogue_id, payload)
    return CatalogueItemRead.model_validate(item)


# PUBLIC_INTERFACE
@router.patch(
    "/{catalogue_id}/items/{item_id}",
    response_model=CatalogueItemRead,
    summary="Update catalogue item",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_catalogue_item(
    payload: CatalogueItemUpdate,
    catalogue_id: UUID = Path(...),
    item_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> CatalogueItemRead:
    item = await CatalogueService(session).update_item(catalogue_id, item_id, payload)
    return CatalogueItemRead.model_validate(item)


# PUBLIC_INTERFACE
@router.delete(
    "/{catalogue_id}/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove catalogue item",
    dependencies=[Depends(require_roles("admin"))],
)
async def remove_catalogue_item(
    catalogue_id: UUID = Path(...),
    item_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> None:
    await CatalogueService(session).remove_item(catalogue_id, item_id)


async def _bind_slug_owner(session: AsyncSession, slug: str) -> UUID:
    merchant_id = await CatalogueRepository(session).merchant_for_slug(slug)
    if merchant_id is None:
        raise NotFoundError("Catalogue", slug)
    merchant_id_var.set(str(merchant_id))
    return merchant_id


# PUBLIC_INTERFACE
@public_router.get(
    "/{slug}",
    response_model=PublicCatalogueRead,
    summary="View public catalogue",
    description="Unauthenticated view of an active catalogue by its slug.",
)
async def view_public_catalogue(
    slug: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session_no_merchant),
) -> PublicCatalogueRead:
    merchant_id = await _bind_slug_owner(session, slug)
    async with merchant_context(session, merchant_id):
        return await CatalogueService(session).public_view(slug)


# PUBLIC_INTERFACE
@public_router.post(
    "/{slug}/orders",
    response_model=PublicOrderReceipt,
    status_code=status.HTTP_201_CREATED,
    summary="Place catalogue order request",
    description="Unauthenticated order request from a public catalogue. Prices come from the catalogue.",
)
async def place_public_order(
    payload: CatalogueOrderCreate,
    slug: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session_no_merchant),
) -> PublicOrderReceipt:
    merchant_id = await _bind_slug_owner(session, slug)
    async with merchant_context(session, merchant_id):
        order = await CatalogueService(session).place_public_order(slug, payload)
        return PublicOrderReceipt(id=order.id, total_amount=order.total_amount, status=order.status)
