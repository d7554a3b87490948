from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from karigar.db.models.procurement import ProcurementRequest, Supplier, WhatsAppNotification
from .base import BaseRepository


class SupplierRepository(BaseRepository):
    """Repository for suppliers."""

    async def list_suppliers(self, *, search: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[Supplier]:
        stmt = select(Supplier)
        if search:
            stmt = stmt.where(Supplier.company_name.ilike(f"%{search}%"))
        stmt = stmt.order_by(Supplier.company_name).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_supplier(self, supplier_id: UUID) -> Optional[Supplier]:
        return await self.get_by_id(Supplier, supplier_id)

    async def create_supplier(self, values: dict) -> Supplier:
        supplier = Supplier(**values)
        await self.add(supplier)
        await self.commit()
        return await self.get_supplier(supplier.id)  # type: ignore

    async def update_supplier(self, supplier: Supplier, values: dict) -> Supplier:
        for key, value in values.items():
            setattr(supplier, key, value)
        await self.commit()
        return await self.get_supplier(supplier.id)  # type: ignore


class ProcurementRequestRepository(BaseRepository):
    """Repository for procurement requests and supplier notifications."""

    async def list_requests(
        self,
        *,
        status: Optional[str] = None,
        raw_material_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProcurementRequest]:
        stmt = select(ProcurementRequest).where(ProcurementRequest.status != "None")
        if status:
            stmt = stmt.where(ProcurementRequest.status == status)
        if raw_material_id:
            stmt = stmt.where(ProcurementRequest.raw_material_id == raw_material_id)
        stmt = stmt.order_by(ProcurementRequest.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def list_all(self) -> List[ProcurementRequest]:
        return list(await self.scalars(select(ProcurementRequest)))

    async def get_request(self, request_id: UUID) -> Optional[ProcurementRequest]:
        return await self.get_by_id(ProcurementRequest, request_id)

    async def get_for_update(self, request_id: UUID) -> Optional[ProcurementRequest]:
        stmt = (
            select(ProcurementRequest)
            .where(ProcurementRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.scalar_one_or_none(stmt)

    async def list_notifications(
        self, *, procurement_request_id: Optional[UUID] = None, limit: int = 100, offset: int = 0
    ) -> List[WhatsAppNotification]:
        stmt = select(WhatsAppNotification)
        if procurement_request_id:
            stmt = stmt.where(WhatsAppNotification.procurement_request_id == procurement_request_id)
        stmt = stmt.order_by(WhatsAppNotification.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))
