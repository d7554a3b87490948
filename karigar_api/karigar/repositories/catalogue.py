from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, text

from karigar.db.models.catalogue import Catalogue, CatalogueItem, CatalogueOrder
from .base import BaseRepository


class CatalogueRepository(BaseRepository):
    """Repository for catalogues, their items and visitor order requests."""

    async def merchant_for_slug(self, slug: str) -> Optional[UUID]:
        """
        Merchant owning the catalogue with `slug`, across all merchants.

        Uses the SECURITY DEFINER function from the initial migration, so it works on
        a session with no merchant bound.
        """
        result = await self.execute(text("SELECT catalogue_merchant_for_slug(:slug)"), {"slug": slug})
        return result.scalar_one_or_none()

    async def list_catalogues(self, *, is_active: Optional[bool] = None) -> List[Catalogue]:
        stmt = select(Catalogue)
        if is_active is not None:
            stmt = stmt.where(Catalogue.is_active == is_active)
        return list(await self.scalars(stmt.order_by(Catalogue.created_at.desc())))

    async def get_catalogue(self, catalogue_id: UUID) -> Optional[Catalogue]:
        return await self.get_by_id(Catalogue, catalogue_id)

    async def get_by_slug(self, slug: str) -> Optional[Catalogue]:
        stmt = (
            select(Catalogue)
            .where(Catalogue.public_url_slug == slug)
            .execution_options(populate_existing=True)
        )
        return await self.scalar_one_or_none(stmt)

    async def create_catalogue(self, values: dict) -> Catalogue:
        catalogue = Catalogue(**values)
        await self.add(catalogue)
        await self.commit()
        return await self.get_catalogue(catalogue.id)  # type: ignore

    async def update_catalogue(self, catalogue: Catalogue, values: dict) -> Catalogue:
        for key, value in values.items():
            setattr(catalogue, key, value)
        await self.commit()
        return await self.get_catalogue(catalogue.id)  # type: ignore

    async def delete_catalogue(self, catalogue: Catalogue) -> None:
        await self.delete(catalogue)
        await self.commit()

    # Items
    async def get_item(self, item_id: UUID) -> Optional[CatalogueItem]:
        return await self.get_by_id(CatalogueItem, item_id)

    async def add_item(self, values: dict) -> CatalogueItem:
        item = CatalogueItem(**values)
        await self.add(item)
        await self.commit()
        return await self.get_item(item.id)  # type: ignore

    async def update_item(self, item: CatalogueItem, values: dict) -> CatalogueItem:
        for key, value in values.items():
            setattr(item, key, value)
        await self.commit()
        return await self.get_item(item.id)  # type: ignore

    async def delete_item(self, item: CatalogueItem) -> None:
        await self.delete(item)
        await self.commit()

    # Visitor order requests
    async def list_orders(
        self, *, catalogue_id: Optional[UUID] = None, status: Optional[str] = None
    ) -> List[CatalogueOrder]:
        stmt = select(CatalogueOrder)
        if catalogue_id:
            stmt = stmt.where(CatalogueOrder.catalogue_id == catalogue_id)
        if status:
            stmt = stmt.where(CatalogueOrder.status == status)
        return list(await self.scalars(stmt.order_by(CatalogueOrder.created_at.desc())))

    async def get_order(self, catalogue_order_id: UUID, *, lock: bool = False) -> Optional[CatalogueOrder]:
        stmt = select(CatalogueOrder).where(CatalogueOrder.id == catalogue_order_id)
        if lock:
            stmt = stmt.with_for_update()
        return await self.scalar_one_or_none(stmt.execution_options(populate_existing=True))

    async def create_order(self, values: dict) -> CatalogueOrder:
        order = CatalogueOrder(**values)
        await self.add(order)
        await self.commit()
        return await self.get_order(order.id)  # type: ignore
