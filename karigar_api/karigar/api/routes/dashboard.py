from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_session, require_roles
from karigar.repositories.activity import ActivityRepository
from karigar.schemas.dashboard import ActivityRead, CriticalLists, DashboardSummary
from karigar.services.dashboard import DashboardService

router = APIRouter(tags=["Dashboard"])


# PUBLIC_INTERFACE
@router.get(
    "/dashboard/summary",
    response_model=DashboardSummary,
    summary="Dashboard summary",
    description="Order counts and value, critical stock counts, procurement by status and Kanban load per stage.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def dashboard_summary(session: AsyncSession = Depends(get_merchant_session)) -> DashboardSummary:
    return await DashboardService(session).summary()


# PUBLIC_INTERFACE
@router.get(
    "/dashboard/critical",
    response_model=CriticalLists,
    summary="Critical stock",
    description="Raw materials with a shortfall (largest first) and finished goods below threshold.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def dashboard_critical(
    session: AsyncSession = Depends(get_merchant_session),
    limit: int = Query(10, ge=1, le=100),
) -> CriticalLists:
    return await DashboardService(session).critical(limit=limit)


# PUBLIC_INTERFACE
@router.get(
    "/activity",
    response_model=List[ActivityRead],
    summary="Activity log",
    description="Who did what, newest first.",
    dependencies=[Depends(require_roles("admin"))],
)
async def list_activity(
    session: AsyncSession = Depends(get_merchant_session),
    entity_type: Optional[str] = Query(None, description="e.g. order, procurement_request, manufacturing_order"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ActivityRead]:
    rows = await ActivityRepository(session).list_activity(entity_type=entity_type, limit=limit, offset=offset)
    return [ActivityRead.model_validate(r) for r in rows]
