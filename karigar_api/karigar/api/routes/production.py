from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.deps import get_merchant_id, get_merchant_session, require_roles
from karigar.core.errors import NotFoundError
from karigar.repositories.production import ManufacturingOrderRepository, WorkerRepository
from karigar.schemas.production import (
    BoardRead,
    ChildTaskRequest,
    ManufacturingOrderCreate,
    ManufacturingOrderRead,
    ManufacturingOrderUpdate,
    MoveRequest,
    MoveResult,
    OrderStatus,
    Priority,
    StepHistoryEntry,
    StepRead,
    WorkerCreate,
    WorkerRead,
    WorkerStatus,
    WorkerUpdate,
)
from karigar.services.production import ManufacturingService

router = APIRouter(prefix="/production", tags=["Production"])


# PUBLIC_INTERFACE
@router.get(
    "/workers",
    response_model=List[WorkerRead],
    summary="List workers",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_workers(
    session: AsyncSession = Depends(get_merchant_session),
    status: Optional[WorkerStatus] = Query(None),
) -> List[WorkerRead]:
    workers = await WorkerRepository(session).list_workers(status=status)
    return [WorkerRead.model_validate(w) for w in workers]


# PUBLIC_INTERFACE
@router.post(
    "/workers",
    response_model=WorkerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create worker",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_worker(
    payload: WorkerCreate,
    session: AsyncSession = Depends(get_merchant_session),
) -> WorkerRead:
    created = await WorkerRepository(session).create_worker(payload.model_dump())
    return WorkerRead.model_validate(created)


# PUBLIC_INTERFACE
@router.patch(
    "/workers/{worker_id}",
    response_model=WorkerRead,
    summary="Update worker",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_worker(
    payload: WorkerUpdate,
    worker_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> WorkerRead:
    repo = WorkerRepository(session)
    worker = await repo.get_worker(worker_id)
    if worker is None:
        raise NotFoundError("Worker", worker_id)
    updated = await repo.update_worker(worker, payload.model_dump(exclude_unset=True))
    return WorkerRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.get(
    "/manufacturing-orders",
    response_model=List[ManufacturingOrderRead],
    summary="List manufacturing orders",
    description="Manufacturing orders newest first, filterable by status and priority.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def list_manufacturing_orders(
    session: AsyncSession = Depends(get_merchant_session),
    status: Optional[OrderStatus] = Query(None),
    priority: Optional[Priority] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ManufacturingOrderRead]:
    orders = await ManufacturingOrderRepository(session).list_orders(
        status=status, priority=priority, limit=limit, offset=offset
    )
    return [ManufacturingOrderRead.model_validate(o) for o in orders]


# PUBLIC_INTERFACE
@router.post(
    "/manufacturing-orders",
    response_model=ManufacturingOrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create manufacturing order",
    description="Create an order (MO number) with its first card in the pending stage; the quantity "
    "is added to the finished good's in-manufacturing count.",
    dependencies=[Depends(require_roles("admin"))],
)
async def create_manufacturing_order(
    payload: ManufacturingOrderCreate,
    merchant_id: UUID = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> ManufacturingOrderRead:
    order = await ManufacturingService(session, user, merchant_id).create_order(payload)
    return ManufacturingOrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.get(
    "/manufacturing-orders/{order_id}",
    response_model=ManufacturingOrderRead,
    summary="Get manufacturing order",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_manufacturing_order(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> ManufacturingOrderRead:
    order = await ManufacturingOrderRepository(session).get_order(order_id)
    if order is None:
        raise NotFoundError("Manufacturing order", order_id)
    return ManufacturingOrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.patch(
    "/manufacturing-orders/{order_id}",
    response_model=ManufacturingOrderRead,
    summary="Update manufacturing order",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_manufacturing_order(
    payload: ManufacturingOrderUpdate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> ManufacturingOrderRead:
    order = await ManufacturingService(session, user).update_order(order_id, payload)
    return ManufacturingOrderRead.model_validate(order)


# PUBLIC_INTERFACE
@router.delete(
    "/manufacturing-orders/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete manufacturing order",
    description="Delete the order and its cards; unfinished quantity is released from in-manufacturing.",
    dependencies=[Depends(require_roles("admin"))],
)
async def delete_manufacturing_order(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin")),
) -> None:
    await ManufacturingService(session, user).delete_order(order_id)


# PUBLIC_INTERFACE
@router.get(
    "/manufacturing-orders/{order_id}/history",
    response_model=List[StepHistoryEntry],
    summary="Step history",
    description="Cards of an order in stage order with the weight loss against the previous stage.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def step_history(
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> List[StepHistoryEntry]:
    return await ManufacturingService(session).history(order_id)


# PUBLIC_INTERFACE
@router.get(
    "/board",
    response_model=BoardRead,
    summary="Kanban board",
    description="Cards grouped by stage in sequence order; every stage is present even when empty.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def kanban_board(
    session: AsyncSession = Depends(get_merchant_session),
    order_id: Optional[UUID] = Query(None, description="Only cards of this manufacturing order"),
) -> BoardRead:
    return await ManufacturingService(session).board(order_id=order_id)


# PUBLIC_INTERFACE
@router.get(
    "/steps/{step_id}",
    response_model=StepRead,
    summary="Get card",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def get_step(
    step_id: UUID = Path(...),
    session: AsyncSession = Depends(get_merchant_session),
) -> StepRead:
    return await ManufacturingService(session).get_card(step_id)


# PUBLIC_INTERFACE
@router.post(
    "/steps/{step_id}/move",
    response_model=MoveResult,
    summary="Move card",
    description="Move (part of) a card to the next stage. Worker stages need an assignment; without "
    "one the move is refused with 409 assignment_required naming the stage.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def move_step(
    payload: MoveRequest,
    step_id: UUID = Path(...),
    merchant_id: UUID = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> MoveResult:
    return await ManufacturingService(session, user, merchant_id).move_card(step_id, payload)


# PUBLIC_INTERFACE
@router.post(
    "/steps/{step_id}/child-tasks",
    response_model=StepRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create child task",
    description="Split work at the same stage onto a new card with the next instance number.",
    dependencies=[Depends(require_roles("admin", "worker"))],
)
async def create_child_task(
    payload: ChildTaskRequest,
    step_id: UUID = Path(...),
    merchant_id: UUID = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_merchant_session),
    user=Depends(require_roles("admin", "worker")),
) -> StepRead:
    return await ManufacturingService(session, user, merchant_id).create_child_task(step_id, payload)
