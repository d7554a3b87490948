from __future__ import annotations

from typing import Dict

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.db.models.procurement import ProcurementRequest
from karigar.db.models.production import ManufacturingOrder
from karigar.db.models.sales import Order
from karigar.repositories.production import ManufacturingStepRepository
from karigar.schemas.dashboard import CriticalFinishedGood, CriticalLists, CriticalMaterial, DashboardSummary
from karigar.services.base import BaseService
from karigar.services.inventory import RequirementsService
from karigar.services.kanban import STAGES, group_by_stage


class DashboardService(BaseService):
    """Aggregates for the home screen."""

    def __init__(self, session: AsyncSession, user=None) -> None:
        super().__init__(session, user)
        self.requirements = RequirementsService(session, user)
        self.steps = ManufacturingStepRepository(session)

    async def _count_by(self, column) -> Dict[str, int]:
        result = await self.session.execute(select(column, func.count()).group_by(column))
        return {str(key): int(n) for key, n in result.all()}

    # PUBLIC_INTERFACE
    async def summary(self) -> DashboardSummary:
        total = await self.session.execute(select(func.coalesce(func.sum(Order.total_amount), 0)))
        materials = await self.requirements.list_raw_materials()
        goods = await self.requirements.list_finished_goods()
        procurement = await self._count_by(ProcurementRequest.status)
        procurement.pop("None", None)
        open_cards = group_by_stage(await self.steps.list_open_cards())
        return DashboardSummary(
            orders_by_status=await self._count_by(Order.status),
            total_order_value=round(float(total.scalar_one() or 0), 2),
            finished_goods_below_threshold=sum(1 for fg in goods if fg.is_critical),
            raw_materials_with_shortfall=sum(1 for m in materials if m.shortfall > 0),
            procurement_by_status=procurement,
            kanban_load={stage: len(open_cards.get(stage, [])) for stage in STAGES},
            manufacturing_orders_by_status=await self._count_by(ManufacturingOrder.status),
        )

    # PUBLIC_INTERFACE
    async def critical(self, limit: int = 10) -> CriticalLists:
        """Raw materials with a shortfall (largest first) and finished goods below threshold."""
        materials = await self.requirements.list_raw_materials(critical_only=True)
        materials.sort(key=lambda m: m.shortfall, reverse=True)
        goods = await self.requirements.list_finished_goods(critical_only=True)
        goods.sort(key=lambda g: g.current_stock - g.threshold)
        return CriticalLists(
            raw_materials=[
                CriticalMaterial(
                    id=m.id,
                    name=m.name,
                    type=m.type,
                    unit=m.unit,
                    current_stock=m.current_stock,
                    required_quantity=m.required_quantity,
                    in_procurement=m.in_procurement,
                    shortfall=m.shortfall,
                    request_status=m.request_status,
                )
                for m in materials[:limit]
            ],
            finished_goods=[
                CriticalFinishedGood(
                    id=g.id,
                    product_code=g.product_code,
                    current_stock=g.current_stock,
                    threshold=g.threshold,
                    in_manufacturing=g.in_manufacturing,
                    shortfall=g.shortfall,
                )
                for g in goods[:limit]
            ],
        )

