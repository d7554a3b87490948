from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select

from karigar.db.models.production import ManufacturingOrder, ManufacturingStep, Worker
from .base import BaseRepository


class WorkerRepository(BaseRepository):
    """Repository for workers."""

    async def list_workers(self, *, status: Optional[str] = None) -> List[Worker]:
        stmt = select(Worker)
        if status:
            stmt = stmt.where(Worker.status == status)
        return list(await self.scalars(stmt.order_by(Worker.name)))

    async def get_worker(self, worker_id: UUID) -> Optional[Worker]:
        return await self.get_by_id(Worker, worker_id)

    async def create_worker(self, values: dict) -> Worker:
        worker = Worker(**values)
        await self.add(worker)
        await self.commit()
        return await self.get_worker(worker.id)  # type: ignore

    async def update_worker(self, worker: Worker, values: dict) -> Worker:
        for key, value in values.items():
            setattr(worker, key, value)
        await self.commit()
        return await self.get_worker(worker.id)  # type: ignore


class ManufacturingOrderRepository(BaseRepository):
    """Repository for manufacturing orders."""

    async def list_orders(
        self,
        *,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ManufacturingOrder]:
        stmt = select(ManufacturingOrder)
        if status:
            stmt = stmt.where(ManufacturingOrder.status == status)
        if priority:
            stmt = stmt.where(ManufacturingOrder.priority == priority)
        stmt = stmt.order_by(ManufacturingOrder.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_order(self, order_id: UUID, *, lock: bool = False) -> Optional[ManufacturingOrder]:
        stmt = select(ManufacturingOrder).where(ManufacturingOrder.id == order_id)
        if lock:
            stmt = stmt.with_for_update()
        return await self.scalar_one_or_none(stmt.execution_options(populate_existing=True))


class ManufacturingStepRepository(BaseRepository):
    """Repository for Kanban cards (manufacturing step instances)."""

    async def list_cards(
        self, *, order_id: Optional[UUID] = None, step_name: Optional[str] = None
    ) -> List[ManufacturingStep]:
        stmt = select(ManufacturingStep)
        if order_id:
            stmt = stmt.where(ManufacturingStep.order_id == order_id)
        if step_name:
            stmt = stmt.where(ManufacturingStep.step_name == step_name)
        stmt = stmt.order_by(ManufacturingStep.created_at)
        return list(await self.scalars(stmt))

    async def list_open_cards(self) -> List[ManufacturingStep]:
        """Cards still on the board: everything not fully handed on, plus finished output."""
        stmt = (
            select(ManufacturingStep)
            .where(
                or_(
                    ManufacturingStep.status != "completed",
                    ManufacturingStep.step_name == "completed",
                )
            )
            .order_by(ManufacturingStep.created_at)
        )
        return list(await self.scalars(stmt))

    async def get_card(self, step_id: UUID, *, lock: bool = False) -> Optional[ManufacturingStep]:
        stmt = select(ManufacturingStep).where(ManufacturingStep.id == step_id)
        if lock:
            stmt = stmt.with_for_update()
        return await self.scalar_one_or_none(stmt.execution_options(populate_existing=True))

    async def list_children(self, step_id: UUID) -> List[ManufacturingStep]:
        stmt = select(ManufacturingStep).where(ManufacturingStep.parent_instance_id == step_id)
        return list(await self.scalars(stmt))

    async def next_instance_number(self, order_id: UUID, step_name: str) -> int:
        stmt = select(func.coalesce(func.max(ManufacturingStep.instance_number), 0)).where(
            ManufacturingStep.order_id == order_id,
            ManufacturingStep.step_name == step_name,
        )
        result = await self.execute(stmt)
        return int(result.scalar_one()) + 1

    async def completed_quantity(self, order_id: UUID) -> int:
        stmt = select(func.coalesce(func.sum(ManufacturingStep.quantity_assigned), 0)).where(
            ManufacturingStep.order_id == order_id,
            ManufacturingStep.step_name == "completed",
        )
        result = await self.execute(stmt)
        return int(result.scalar_one())
