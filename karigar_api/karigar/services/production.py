from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.errors import ConflictError, NotFoundError, ValidationFailed
from karigar.db.models.production import ManufacturingOrder, ManufacturingStep, Worker
from karigar.repositories.inventory import FinishedGoodRepository
from karigar.repositories.master_data import ProductConfigRepository
from karigar.repositories.production import (
    ManufacturingOrderRepository,
    ManufacturingStepRepository,
    WorkerRepository,
)
from karigar.schemas.production import (
    BoardColumn,
    BoardRead,
    ChildTaskRequest,
    ManufacturingOrderCreate,
    ManufacturingOrderUpdate,
    MoveRequest,
    MoveResult,
    StepHistoryEntry,
    StepRead,
)
from karigar.schemas.realtime import KanbanEvent
from karigar.services import kanban, numbering
from karigar.services.activity import log_activity
from karigar.services.base import BaseService
from karigar.services.realtime import broadcast_manager

logger = logging.getLogger(__name__)

MO_PENDING = "pending"
MO_IN_PROGRESS = "in_progress"
MO_COMPLETED = "completed"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _card_weight(card: ManufacturingStep) -> Optional[float]:
    return card.weight_received if card.weight_received is not None else card.weight_assigned


# PUBLIC_INTERFACE
def step_view(card: ManufacturingStep, children: Iterable[ManufacturingStep]) -> StepRead:
    """Card read model with remaining quantity and weight."""
    kids = list(children)
    return StepRead.model_validate(card).model_copy(
        update={
            "remaining_quantity": kanban.remaining_quantity(card, kids),
            "remaining_weight": kanban.remaining_weight(card, kids),
        }
    )


def _children_index(cards: Iterable[ManufacturingStep]) -> Dict[UUID, List[ManufacturingStep]]:
    index: Dict[UUID, List[ManufacturingStep]] = {}
    for card in cards:
        if card.parent_instance_id is not None:
            index.setdefault(card.parent_instance_id, []).append(card)
    return index


def _on_board(card: ManufacturingStep) -> bool:
    return card.status != kanban.CARD_COMPLETED or card.step_name == kanban.STAGES[-1]


class ManufacturingService(BaseService):
    """
    Manufacturing orders and their Kanban cards.

    Every order starts with one pending card. Moving a card hands (part of) its
    quantity to a new child card at the next stage; the source card is completed
    once nothing remains on it.
    """

    def __init__(self, session: AsyncSession, user=None, merchant_id: Optional[UUID] = None) -> None:
        super().__init__(session, user)
        self.merchant_id = merchant_id
        self.orders = ManufacturingOrderRepository(session)
        self.steps = ManufacturingStepRepository(session)
        self.workers = WorkerRepository(session)
        self.products = ProductConfigRepository(session)
        self.finished = FinishedGoodRepository(session)

    async def _publish(self, event: str, card: ManufacturingStep, from_stage: Optional[str] = None) -> None:
        if self.merchant_id is None:
            return
        try:
            await broadcast_manager.publish_kanban_event(
                self.merchant_id,
                KanbanEvent(
                    event=event,
                    card_id=card.id,
                    order_id=card.order_id,
                    from_stage=from_stage,
                    to_stage=card.step_name,
                    quantity=card.quantity_assigned,
                    user_id=self.actor_id,
                ),
            )
        except Exception:
            logger.exception("Failed to publish kanban %s event", event)

    async def _active_worker(self, worker_id: UUID) -> Worker:
        worker = await self.workers.get_worker(worker_id)
        if worker is None:
            raise NotFoundError("Worker", worker_id)
        if worker.status != "Active":
            raise ValidationFailed(f"Worker {worker.name} is not active", details={"status": worker.status})
        return worker

    async def _get_card(self, step_id: UUID, *, lock: bool = False) -> ManufacturingStep:
        card = await self.steps.get_card(step_id, lock=lock)
        if card is None:
            raise NotFoundError("Manufacturing step", step_id)
        return card

    # PUBLIC_INTERFACE
    async def create_order(self, payload: ManufacturingOrderCreate) -> ManufacturingOrder:
        """
        Create a manufacturing order with its first pending card.

        The ordered quantity is added to the finished good's in_manufacturing.
        """
        config = await self.products.get_product_config(payload.product_config_id)
        if config is None:
            raise NotFoundError("Product config", payload.product_config_id)
        fg = await self.finished.get_by_product_config(config.id, lock=True)
        if fg is None:
            raise NotFoundError("Finished good", config.id)
        if payload.parent_order_id is not None and await self.orders.get_order(payload.parent_order_id) is None:
            raise NotFoundError("Manufacturing order", payload.parent_order_id)
        is_rework = payload.parent_order_id is not None

        order = ManufacturingOrder(
            order_number=await numbering.next_number(self.session, numbering.MANUFACTURING_ORDER),
            product_config_id=config.id,
            product_name=config.product_code,
            quantity_required=payload.quantity_required,
            priority=payload.priority,
            status=MO_PENDING,
            due_date=payload.due_date,
            special_instructions=payload.special_instructions,
            created_by=self.actor_id,
            parent_order_id=payload.parent_order_id,
            rework_source_step_id=payload.rework_source_step_id,
            rework_reason=payload.rework_reason,
            rework_quantity=payload.quantity_required if is_rework else None,
        )
        await self.orders.add(order)
        await self.orders.flush()

        card = ManufacturingStep(
            order_id=order.id,
            step_name=kanban.STAGES[0],
            instance_number=1,
            status=kanban.CARD_PENDING,
            quantity_assigned=payload.quantity_required,
            weight_assigned=payload.weight,
            due_date=payload.due_date,
            is_rework=is_rework,
        )
        await self.steps.add(card)
        fg.in_manufacturing = int(fg.in_manufacturing or 0) + payload.quantity_required

        log_activity(
            self.session,
            user=self.user,
            action="manufacturing_order.created",
            entity_type="manufacturing_order",
            entity_id=order.id,
            description=f"{order.order_number}: {payload.quantity_required} x {config.product_code}",
        )
        await self.orders.commit()
        logger.info("Created manufacturing order %s", order.order_number)
        await self._publish("card.created", card)
        return await self.orders.get_order(order.id)  # type: ignore

    # PUBLIC_INTERFACE
    async def update_order(self, order_id: UUID, payload: ManufacturingOrderUpdate) -> ManufacturingOrder:
        order = await self.orders.get_order(order_id)
        if order is None:
            raise NotFoundError("Manufacturing order", order_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(order, key, value)
        await self.orders.commit()
        return await self.orders.get_order(order.id)  # type: ignore

    # PUBLIC_INTERFACE
    async def delete_order(self, order_id: UUID) -> None:
        """Delete an order and its cards, releasing its unfinished quantity from in_manufacturing."""
        order = await self.orders.get_order(order_id, lock=True)
        if order is None:
            raise NotFoundError("Manufacturing order", order_id)
        if order.status != MO_COMPLETED:
            unfinished = max(0, order.quantity_required - await self.steps.completed_quantity(order.id))
            fg = await self.finished.get_by_product_config(order.product_config_id, lock=True)
            if fg is not None:
                fg.in_manufacturing = max(0, int(fg.in_manufacturing or 0) - unfinished)
        log_activity(
            self.session,
            user=self.user,
            action="manufacturing_order.deleted",
            entity_type="manufacturing_order",
            entity_id=order.id,
            description=order.order_number,
        )
        await self.orders.delete(order)
        await self.orders.commit()

    # PUBLIC_INTERFACE
    async def move_card(self, step_id: UUID, payload: MoveRequest) -> MoveResult:
        """
        Move (part of) a card to the next stage.

        Raises:
            InvalidTransition: target is not the next stage.
            AssignmentRequired: target is a worker stage and no assignment was sent.
            ValidationFailed: quantity exceeds what remains on the card,
                or quantity_received exceeds the quantity assigned to it.
        """
        card = await self._get_card(step_id, lock=True)
        kanban.check_move(card.step_name, payload.target_stage, payload.assignment is not None)
        assignment = payload.assignment
        worker = await self._active_worker(assignment.worker_id) if assignment else None

        if payload.quantity_received is not None:
            if payload.quantity_received > int(card.quantity_assigned or 0):
                raise ValidationFailed(
                    "Quantity received exceeds quantity assigned",
                    details={"assigned": card.quantity_assigned, "received": payload.quantity_received},
                )
            card.quantity_received = payload.quantity_received
        if payload.weight_received is not None:
            card.weight_received = payload.weight_received
        if payload.wastage is not None:
            card.wastage = payload.wastage

        children = await self.steps.list_children(card.id)
        remaining = kanban.remaining_quantity(card, children)
        if remaining <= 0:
            raise ConflictError("Nothing left on this card to move", details={"step_id": str(card.id)})
        quantity = (assignment.quantity if assignment and assignment.quantity else None) or payload.quantity or remaining
        if quantity > remaining:
            raise ValidationFailed(
                "Quantity exceeds what remains on the card",
                details={"remaining": remaining, "requested": quantity},
            )

        if assignment and assignment.weight is not None:
            weight: Optional[float] = assignment.weight
        else:
            remaining_w = kanban.remaining_weight(card, children)
            weight = round(remaining_w * quantity / remaining, 3) if remaining_w > 0 else None

        now = _now()
        target = payload.target_stage
        reached_end = target == kanban.STAGES[-1]
        if reached_end:
            status = kanban.CARD_COMPLETED
        elif worker is not None:
            status = kanban.CARD_IN_PROGRESS
        else:
            status = kanban.CARD_PENDING
        created = ManufacturingStep(
            order_id=card.order_id,
            step_name=target,
            instance_number=await self.steps.next_instance_number(card.order_id, target),
            parent_instance_id=card.id,
            origin_step_id=card.origin_step_id or card.id,
            status=status,
            assigned_worker_id=worker.id if worker else None,
            quantity_assigned=quantity,
            weight_assigned=weight,
            purity=(assignment.purity if assignment and assignment.purity else None) or card.purity,
            due_date=(assignment.due_date if assignment else None) or card.due_date,
            started_at=now if worker is not None else None,
            completed_at=now if reached_end else None,
            is_rework=card.is_rework,
            notes=assignment.notes if assignment else None,
        )
        await self.steps.add(created)

        card.started_at = card.started_at or now
        if quantity == remaining:
            card.status = kanban.CARD_COMPLETED
            card.completed_at = now
        else:
            card.status = kanban.CARD_PARTIAL

        order = await self.orders.get_order(card.order_id, lock=True)
        if order is None:
            raise NotFoundError("Manufacturing order", card.order_id)
        if order.status == MO_PENDING:
            order.status = MO_IN_PROGRESS
            order.started_at = now

        if reached_end:
            fg = await self.finished.get_by_product_config(order.product_config_id, lock=True)
            if fg is not None:
                fg.in_manufacturing = max(0, int(fg.in_manufacturing or 0) - quantity)
            await self.steps.flush()
            if await self.steps.completed_quantity(order.id) >= order.quantity_required:
                order.status = MO_COMPLETED
                order.completed_at = now

        log_activity(
            self.session,
            user=self.user,
            action="kanban.card_moved",
            entity_type="manufacturing_order",
            entity_id=order.id,
            description=f"{order.order_number}: {quantity} from {card.step_name} to {target}",
        )
        await self.steps.commit()
        logger.info("Moved %d of card %s from %s to %s", quantity, card.id, card.step_name, target)

        source_card = await self._get_card(card.id)
        new_card = await self._get_card(created.id)
        await self._publish("card.moved", new_card, from_stage=source_card.step_name)
        return MoveResult(
            source=step_view(source_card, await self.steps.list_children(source_card.id)),
            created=step_view(new_card, []),
            order_status=order.status,
        )

    # PUBLIC_INTERFACE
    async def create_child_task(self, step_id: UUID, payload: ChildTaskRequest) -> StepRead:
        """
        Split part of a card's remaining quantity into a new card at the same stage.

        Order, stage, due date, purity and rework flag are copied from the source card.
        """
        card = await self._get_card(step_id, lock=True)
        if card.step_name == kanban.STAGES[-1]:
            raise ConflictError("Completed output cannot be split")
        children = await self.steps.list_children(card.id)
        remaining = kanban.remaining_quantity(card, children)
        if payload.quantity > remaining:
            raise ValidationFailed(
                "Quantity exceeds what remains on the card",
                details={"remaining": remaining, "requested": payload.quantity},
            )
        worker = await self._active_worker(payload.worker_id) if payload.worker_id else None
        now = _now()

        child = ManufacturingStep(
            order_id=card.order_id,
            step_name=card.step_name,
            instance_number=await self.steps.next_instance_number(card.order_id, card.step_name),
            parent_instance_id=card.id,
            origin_step_id=card.origin_step_id or card.id,
            status=kanban.CARD_IN_PROGRESS if worker else kanban.CARD_PENDING,
            assigned_worker_id=worker.id if worker else None,
            quantity_assigned=payload.quantity,
            weight_assigned=payload.weight,
            due_date=card.due_date,
            purity=card.purity,
            is_rework=card.is_rework,
            started_at=now if worker else None,
            notes=payload.notes,
        )
        await self.steps.add(child)
        if payload.quantity == remaining:
            card.status = kanban.CARD_COMPLETED
            card.completed_at = now
        else:
            card.status = kanban.CARD_PARTIAL

        log_activity(
            self.session,
            user=self.user,
            action="kanban.child_task_created",
            entity_type="manufacturing_order",
            entity_id=card.order_id,
            description=f"{payload.quantity} split from {card.step_name} #{card.instance_number}",
        )
        await self.steps.commit()
        stored = await self._get_card(child.id)
        await self._publish("card.created", stored)
        return step_view(stored, [])

    # PUBLIC_INTERFACE
    async def get_card(self, step_id: UUID) -> StepRead:
        card = await self._get_card(step_id)
        return step_view(card, await self.steps.list_children(card.id))

    # PUBLIC_INTERFACE
    async def board(self, order_id: Optional[UUID] = None) -> BoardRead:
        """Open cards grouped by stage in sequence order; every stage is present."""
        cards = await self.steps.list_cards(order_id=order_id)
        children = _children_index(cards)
        grouped = kanban.group_by_stage(c for c in cards if _on_board(c))
        columns = [
            BoardColumn(
                stage=stage,
                label=kanban.STAGE_LABELS.get(stage, stage),
                count=len(stage_cards),
                cards=[step_view(c, children.get(c.id, [])) for c in stage_cards],
            )
            for stage, stage_cards in grouped.items()
        ]
        return BoardRead(columns=columns, totals={col.stage: col.count for col in columns})

    # PUBLIC_INTERFACE
    async def history(self, order_id: UUID) -> List[StepHistoryEntry]:
        """
        Cards of an order in stage order, each with its weight loss against the card it came from.
        """
        if await self.orders.get_order(order_id) is None:
            raise NotFoundError("Manufacturing order", order_id)
        cards = await self.steps.list_cards(order_id=order_id)
        by_id = {c.id: c for c in cards}
        children = _children_index(cards)
        cards.sort(key=lambda c: (kanban.stage_index(c.step_name), c.instance_number))

        entries: List[StepHistoryEntry] = []
        for card in cards:
            parent = by_id.get(card.parent_instance_id) if card.parent_instance_id else None
            loss = None
            if parent is not None and parent.step_name != card.step_name:
                share = kanban.weight_share(parent, card.quantity_assigned or 0)
                loss = kanban.weight_loss_percent(share, _card_weight(card))
            entries.append(StepHistoryEntry(step=step_view(card, children.get(card.id, [])), loss_percent=loss))
        return entries
