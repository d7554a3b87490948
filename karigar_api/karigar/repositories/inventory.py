from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from karigar.db.models.inventory import FinishedGood, InventoryTag, RawMaterial, TagAuditLog
from .base import BaseRepository


class RawMaterialRepository(BaseRepository):
    """Raw material stock rows."""

    async def list_raw_materials(
        self, *, type: Optional[str] = None, search: Optional[str] = None
    ) -> List[RawMaterial]:
        stmt = select(RawMaterial)
        if type:
            stmt = stmt.where(RawMaterial.type == type)
        if search:
            stmt = stmt.where(RawMaterial.name.ilike(f"%{search}%"))
        stmt = stmt.order_by(RawMaterial.type, RawMaterial.name)
        return list(await self.scalars(stmt))

    async def get_raw_material(self, raw_material_id: UUID) -> Optional[RawMaterial]:
        return await self.get_by_id(RawMaterial, raw_material_id)

    async def get_for_update(self, raw_material_id: UUID) -> Optional[RawMaterial]:
        """Lock the row for a stock change inside the current transaction."""
        stmt = (
            select(RawMaterial)
            .where(RawMaterial.id == raw_material_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.scalar_one_or_none(stmt)

    async def create_raw_material(self, values: dict) -> RawMaterial:
        material = RawMaterial(**values)
        await self.add(material)
        await self.commit()
        return await self.get_raw_material(material.id)  # type: ignore

    async def update_raw_material(self, material: RawMaterial, values: dict) -> RawMaterial:
        for key, value in values.items():
            setattr(material, key, value)
        material.last_updated = datetime.now(timezone.utc)
        await self.commit()
        return await self.get_raw_material(material.id)  # type: ignore


class FinishedGoodRepository(BaseRepository):
    """Finished goods stock rows."""

    async def list_finished_goods(self, *, search: Optional[str] = None) -> List[FinishedGood]:
        stmt = select(FinishedGood)
        if search:
            stmt = stmt.where(FinishedGood.product_code.ilike(f"%{search}%"))
        stmt = stmt.order_by(FinishedGood.product_code)
        return list(await self.scalars(stmt))

    async def get_finished_good(self, finished_good_id: UUID) -> Optional[FinishedGood]:
        return await self.get_by_id(FinishedGood, finished_good_id)

    async def get_by_product_config(self, product_config_id: UUID, *, lock: bool = False) -> Optional[FinishedGood]:
        stmt = select(FinishedGood).where(FinishedGood.product_config_id == product_config_id)
        if lock:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def update_finished_good(self, fg: FinishedGood, values: dict) -> FinishedGood:
        for key, value in values.items():
            setattr(fg, key, value)
        await self.commit()
        return await self.get_finished_good(fg.id)  # type: ignore


class TagRepository(BaseRepository):
    """Inventory tags and their audit trail."""

    async def get_by_tag_id(self, tag_id: str, *, lock: bool = False) -> Optional[InventoryTag]:
        stmt = select(InventoryTag).where(InventoryTag.tag_id == tag_id)
        if lock:
            stmt = stmt.with_for_update()
        stmt = stmt.execution_options(populate_existing=True)
        return await self.scalar_one_or_none(stmt)

    async def list_tags(
        self,
        *,
        product_config_id: Optional[UUID] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[InventoryTag]:
        stmt = select(InventoryTag)
        if product_config_id:
            stmt = stmt.where(InventoryTag.product_config_id == product_config_id)
        if status:
            stmt = stmt.where(InventoryTag.status == status)
        stmt = stmt.order_by(InventoryTag.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def list_audit(
        self, *, tag_id: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[TagAuditLog]:
        stmt = select(TagAuditLog)
        if tag_id:
            stmt = stmt.where(TagAuditLog.tag_id == tag_id)
        stmt = stmt.order_by(TagAuditLog.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))
