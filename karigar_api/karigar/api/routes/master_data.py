from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.core.errors import ConflictError, NotFoundError
from karigar.repositories.inventory import RawMaterialRepository
from karigar.repositories.master_data import ProductConfigRepository
from karigar.schemas.master_data import (
    MaterialLineCreate,
    MaterialLineRead,
    MaterialLineUpdate,
    ProductConfigCreate,
    ProductConfigRead,
    ProductConfigUpdate,
)

router = APIRouter(prefix="/master-data", tags=["Master Data"])


async def _get_config(repo: ProductConfigRepository, product_config_id: UUID):
    config = await repo.get_product_config(product_config_id)
    if config is None:
        raise NotFoundError("Product config", product_config_id)
    return config


# PUBLIC_INTERFACE
@router.get(
    "/product-configs",
    response_model=List[ProductConfigRead],
    summary="List product configs",
    description="List product configurations ordered by product code, with their bills of materials.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_product_configs(
    session: AsyncSession = Depends(get_merchant_session),
    search: Optional[str] = Query(None, description="Substring of product code or description"),
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ProductConfigRead]:
    repo = ProductConfigRepository(session)
    configs = await repo.list_product_configs(
        search=search, category=category, is_active=is_active, limit=limit, offset=offset
    )
    return [ProductConfigRead.model_validate(c) for c in configs]


# PUBLIC_INTERFACE
@router.post(
    "/product-configs",
    response_model=ProductConfigRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create product config",
    description="Create a product configuration and its finished goods stock row.",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_product_config(
    payload: ProductConfigCreate,
    session: AsyncSession = Depends(get_merchant_session),
) -> ProductConfigRead:
    repo = ProductConfigRepository(session)
    if await repo.get_by_code(payload.product_code):
        raise ConflictError(f"Product code {payload.product_code} already exists")
    created = await repo.create_product_config(payload.model_dump())
    return ProductConfigRead.model_validate(created)


# PUBLIC_INTERFACE
@router.get(
    "/product-configs/{product_config_id}",
    response_model=ProductConfigRead,
    summary="Get product config",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_product_config(
    product_config_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> ProductConfigRead:
    config = await _get_config(ProductConfigRepository(session), product_config_id)
    return ProductConfigRead.model_validate(config)


# PUBLIC_INTERFACE
@router.patch(
    "/product-configs/{product_config_id}",
    response_model=ProductConfigRead,
    summary="Update product config",
    description="Partial update; threshold and product code changes are mirrored on the finished good.",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_product_config(
    payload: ProductConfigUpdate,
    product_config_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> ProductConfigRead:
    repo = ProductConfigRepository(session)
    config = await _get_config(repo, product_config_id)
    values = payload.model_dump(exclude_unset=True)
    code = values.get("product_code")
    if code and code != config.product_code and await repo.get_by_code(code):
        raise ConflictError(f"Product code {code} already exists")
    updated = await repo.update_product_config(config, values)
    return ProductConfigRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/product-configs/{product_config_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete product config",
    dependencies=[Depends(require_roles("admin"))],
)
async def delete_product_config(
    product_config_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> None:
    repo = ProductConfigRepository(session)
    await repo.delete_product_config(await _get_config(repo, product_config_id))


# PUBLIC_INTERFACE
@router.post(
    "/product-configs/{product_config_id}/materials",
    response_model=MaterialLineRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add bill of materials line",
    description="Add a raw material consumed per piece of the product. The unit defaults to the material's unit.",
    dependencies=[Depends(require_roles("admin"))],
)
async def add_material_line(
    payload: MaterialLineCreate,
    product_config_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> MaterialLineRead:
    repo = ProductConfigRepository(session)
    config = await _get_config(repo, product_config_id)
    material = await RawMaterialRepository(session).get_raw_material(payload.raw_material_id)
    if material is None:
        raise NotFoundError("Raw material", payload.raw_material_id)
    if await repo.find_material_line(config.id, material.id):
        raise ConflictError(f"{material.name} is already in the bill of materials")
    line = await repo.add_material_line(
        product_config_id=config.id,
        raw_material_id=material.id,
        quantity_required=payload.quantity_required,
        unit=payload.unit or material.unit,
    )
    return MaterialLineRead.model_validate(line)


async def _get_line(repo: ProductConfigRepository, product_config_id: UUID, line_id: UUID):
    line = await repo.get_material_line(line_id)
    if line is None or line.product_config_id != product_config_id:
        raise NotFoundError("Bill of materials line", line_id)
    return line


# PUBLIC_INTERFACE
@router.patch(
    "/product-configs/{product_config_id}/materials/{line_id}",
    response_model=MaterialLineRead,
    summary="Update bill of materials line",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_material_line(
    payload: MaterialLineUpdate,
    product_config_id: UUID = Path(...),
    line_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> MaterialLineRead:
    repo = ProductConfigRepository(session)
    line = await _get_line(repo, product_config_id, line_id)
    updated = await repo.update_material_line(line, payload.model_dump(exclude_unset=True, exclude_none=True))
    return MaterialLineRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.delete(
    "/product-configs/{product_config_id}/materials/{line_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove bill of materials line",
    dependencies=[Depends(require_roles("admin"))],
)
async def delete_material_line(
    product_config_id: UUID = Path(...),
    line_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> None:
    repo = ProductConfigRepository(session)
    await repo.delete_material_line(await _get_line(repo, product_config_id, line_id))
