"""
ManufacturingService card moves, splits and history against in-memory cards.
"""

from __future__ import annotations

import asyncio
from datetime import date
from uuid import uuid4

import pytest

from karigar.core.errors import (
    AssignmentRequired,
    ConflictError,
    InvalidTransition,
    NotFoundError,
    ValidationFailed,
)
from karigar.db.models.inventory import FinishedGood
from karigar.db.models.production import ManufacturingOrder, ManufacturingStep, Worker
from karigar.schemas.production import Assignment, ChildTaskRequest, MoveRequest
from karigar.services import kanban
from karigar.services.production import MO_COMPLETED, MO_IN_PROGRESS, MO_PENDING, ManufacturingService

from conftest import make_user


def _order(quantity: int = 10, status: str = MO_PENDING) -> ManufacturingOrder:
    return ManufacturingOrder(
        id=uuid4(),
        order_number="MO000001",
        product_config_id=uuid4(),
        product_name="Kundan Ring",
        quantity_required=quantity,
        status=status,
    )


def _card(order, step_name, quantity, weight=None, parent=None, status=kanban.CARD_PENDING, **extra):
    values = dict(
        id=uuid4(),
        order_id=order.id,
        step_name=step_name,
        instance_number=1,
        parent_instance_id=parent.id if parent is not None else None,
        origin_step_id=None,
        status=status,
        quantity_assigned=quantity,
        quantity_received=None,
        weight_assigned=weight,
        weight_received=None,
        is_rework=False,
    )
    values.update(extra)
    return ManufacturingStep(**values)


class _Floor:
    """Cards of one order served to a ManufacturingService from memory."""

    def __init__(self, session, order, cards, finished=None, worker=None) -> None:
        self.session = session
        self.order = order
        self.cards = list(cards)
        self.finished = finished
        self.worker = worker

    def all_cards(self) -> list:
        return self.cards + [c for c in self.session.added_of(ManufacturingStep) if c not in self.cards]

    async def get_card(self, step_id, lock=False):
        return next((c for c in self.all_cards() if c.id == step_id), None)

    async def list_children(self, step_id):
        return [c for c in self.all_cards() if c.parent_instance_id == step_id]

    async def list_cards(self, order_id=None, step_name=None):
        return [c for c in self.all_cards() if step_name is None or c.step_name == step_name]

    async def next_instance_number(self, order_id, step_name):
        return 1 + sum(1 for c in self.all_cards() if c.step_name == step_name)

    async def completed_quantity(self, order_id):
        return sum(c.quantity_assigned for c in self.all_cards() if c.step_name == kanban.STAGES[-1])

    async def get_order(self, order_id, lock=False):
        return self.order if order_id == self.order.id else None

    async def get_by_product_config(self, product_config_id, lock=False):
        return self.finished

    async def get_worker(self, worker_id):
        if self.worker is not None and self.worker.id == worker_id:
            return self.worker
        return None

    def service(self) -> ManufacturingService:
        svc = ManufacturingService(self.session, make_user("manager"))
        for name in ("get_card", "list_children", "list_cards", "next_instance_number", "completed_quantity"):
            setattr(svc.steps, name, getattr(self, name))
        svc.orders.get_order = self.get_order
        svc.finished.get_by_product_config = self.get_by_product_config
        svc.workers.get_worker = self.get_worker
        return svc


@pytest.fixture
def worker() -> Worker:
    return Worker(id=uuid4(), name="Ramesh", status="Active")


class TestMoveCard:
    def test_moves_whole_remainder_by_default(self, session, worker) -> None:
        order = _order()
        pending = _card(order, "pending", 10, weight=20.0)
        floor = _Floor(session, order, [pending], worker=worker)

        result = asyncio.run(
            floor.service().move_card(
                pending.id, MoveRequest(target_stage="jhalai", assignment=Assignment(worker_id=worker.id))
            )
        )

        assert result.created.step_name == "jhalai"
        assert result.created.quantity_assigned == 10
        assert result.created.weight_assigned == pytest.approx(20.0)
        assert result.created.status == kanban.CARD_IN_PROGRESS
        assert result.created.assigned_worker_id == worker.id
        assert result.created.parent_instance_id == pending.id
        assert result.source.status == kanban.CARD_COMPLETED
        assert result.source.remaining_quantity == 0
        assert result.order_status == MO_IN_PROGRESS
        assert session.commits == 1

    def test_partial_move_splits_weight_by_pieces(self, session, worker) -> None:
        order = _order()
        pending = _card(order, "pending", 10, weight=20.0)
        floor = _Floor(session, order, [pending], worker=worker)

        result = asyncio.run(
            floor.service().move_card(
                pending.id,
                MoveRequest(target_stage="jhalai", assignment=Assignment(worker_id=worker.id, quantity=4)),
            )
        )

        assert result.created.quantity_assigned == 4
        assert result.created.weight_assigned == pytest.approx(8.0)
        assert result.source.status == kanban.CARD_PARTIAL
        assert result.source.remaining_quantity == 6
        assert result.source.remaining_weight == pytest.approx(12.0)

    def test_quantity_above_remainder(self, session, worker) -> None:
        order = _order()
        pending = _card(order, "pending", 10)
        floor = _Floor(session, order, [pending], worker=worker)

        with pytest.raises(ValidationFailed) as exc:
            asyncio.run(
                floor.service().move_card(
                    pending.id,
                    MoveRequest(target_stage="jhalai", assignment=Assignment(worker_id=worker.id, quantity=11)),
                )
            )
        assert exc.value.details == {"remaining": 10, "requested": 11}
        assert session.commits == 0
        assert session.added_of(ManufacturingStep) == []

    def test_nothing_left_to_move(self, session, worker) -> None:
        order = _order()
        pending = _card(order, "pending", 10, status=kanban.CARD_COMPLETED)
        moved = _card(order, "jhalai", 10, parent=pending)
        floor = _Floor(session, order, [pending, moved], worker=worker)

        with pytest.raises(ConflictError):
            asyncio.run(
                floor.service().move_card(
                    pending.id, MoveRequest(target_stage="jhalai", assignment=Assignment(worker_id=worker.id))
                )
            )

    def test_received_quantity_cannot_exceed_assigned(self, session, worker) -> None:
        order = _order(status=MO_IN_PROGRESS)
        card = _card(order, "jhalai", 10, weight=20.0)
        floor = _Floor(session, order, [card], worker=worker)

        with pytest.raises(ValidationFailed) as exc:
            asyncio.run(
                floor.service().move_card(
                    card.id,
                    MoveRequest(
                        target_stage="quellai", quantity_received=12, assignment=Assignment(worker_id=worker.id)
                    ),
                )
            )
        assert exc.value.details == {"assigned": 10, "received": 12}
        assert card.quantity_received is None
        assert session.commits == 0

    def test_received_quantity_caps_what_moves_on(self, session, worker) -> None:
        order = _order(status=MO_IN_PROGRESS)
        card = _card(order, "jhalai", 10, weight=20.0)
        floor = _Floor(session, order, [card], worker=worker)

        result = asyncio.run(
            floor.service().move_card(
                card.id,
                MoveRequest(
                    target_stage="quellai",
                    quantity_received=8,
                    weight_received=16.4,
                    assignment=Assignment(worker_id=worker.id),
                ),
            )
        )
        assert result.created.quantity_assigned == 8
        assert result.created.weight_assigned == pytest.approx(16.4)
        assert result.source.status == kanban.CARD_COMPLETED

    def test_skipping_a_stage_is_refused(self, session, worker) -> None:
        order = _order()
        pending = _card(order, "pending", 10)
        floor = _Floor(session, order, [pending], worker=worker)

        with pytest.raises(InvalidTransition):
            asyncio.run(
                floor.service().move_card(
                    pending.id, MoveRequest(target_stage="meena", assignment=Assignment(worker_id=worker.id))
                )
            )

    def test_worker_stage_needs_assignment(self, session) -> None:
        order = _order()
        pending = _card(order, "pending", 10)
        floor = _Floor(session, order, [pending])

        with pytest.raises(AssignmentRequired):
            asyncio.run(floor.service().move_card(pending.id, MoveRequest(target_stage="jhalai")))

    def test_inactive_worker_is_refused(self, session) -> None:
        order = _order()
        pending = _card(order, "pending", 10)
        absent = Worker(id=uuid4(), name="Suresh", status="Inactive")
        floor = _Floor(session, order, [pending], worker=absent)

        with pytest.raises(ValidationFailed):
            asyncio.run(
                floor.service().move_card(
                    pending.id, MoveRequest(target_stage="jhalai", assignment=Assignment(worker_id=absent.id))
                )
            )

    def test_completion_releases_stock_and_finishes_order(self, session) -> None:
        order = _order(status=MO_IN_PROGRESS)
        qc = _card(order, "quality-check", 10)
        fg = FinishedGood(id=uuid4(), product_config_id=order.product_config_id, product_code="RNG", in_manufacturing=10)
        floor = _Floor(session, order, [qc], finished=fg)

        result = asyncio.run(floor.service().move_card(qc.id, MoveRequest(target_stage="completed")))

        assert result.created.status == kanban.CARD_COMPLETED
        assert result.created.completed_at is not None
        assert fg.in_manufacturing == 0
        assert order.status == MO_COMPLETED
        assert result.order_status == MO_COMPLETED

    def test_partial_completion_keeps_order_open(self, session) -> None:
        order = _order(status=MO_IN_PROGRESS)
        qc = _card(order, "quality-check", 10)
        fg = FinishedGood(id=uuid4(), product_config_id=order.product_config_id, product_code="RNG", in_manufacturing=10)
        floor = _Floor(session, order, [qc], finished=fg)

        result = asyncio.run(floor.service().move_card(qc.id, MoveRequest(target_stage="completed", quantity=4)))

        assert fg.in_manufacturing == 6
        assert result.order_status == MO_IN_PROGRESS
        assert result.source.status == kanban.CARD_PARTIAL


class TestChildTask:
    def test_split_copies_card_details(self, session, worker) -> None:
        order = _order(status=MO_IN_PROGRESS)
        card = _card(order, "jhalai", 10, purity=91.6, due_date=date(2024, 3, 9), is_rework=True)
        floor = _Floor(session, order, [card], worker=worker)

        child = asyncio.run(
            floor.service().create_child_task(card.id, ChildTaskRequest(quantity=3, worker_id=worker.id, weight=6.0))
        )

        assert child.step_name == "jhalai"
        assert child.instance_number == 2
        assert child.parent_instance_id == card.id
        assert child.quantity_assigned == 3
        assert child.purity == pytest.approx(91.6)
        assert child.due_date == date(2024, 3, 9)
        assert child.is_rework is True
        assert child.status == kanban.CARD_IN_PROGRESS
        assert card.status == kanban.CARD_PARTIAL
        assert session.commits == 1

    def test_split_of_whole_remainder_completes_source(self, session) -> None:
        order = _order(status=MO_IN_PROGRESS)
        card = _card(order, "meena", 5)
        floor = _Floor(session, order, [card])

        child = asyncio.run(floor.service().create_child_task(card.id, ChildTaskRequest(quantity=5)))
        assert child.status == kanban.CARD_PENDING
        assert card.status == kanban.CARD_COMPLETED

    def test_split_above_remainder(self, session) -> None:
        order = _order(status=MO_IN_PROGRESS)
        card = _card(order, "meena", 5)
        floor = _Floor(session, order, [card])

        with pytest.raises(ValidationFailed):
            asyncio.run(floor.service().create_child_task(card.id, ChildTaskRequest(quantity=6)))

    def test_completed_output_cannot_be_split(self, session) -> None:
        order = _order(status=MO_COMPLETED)
        card = _card(order, "completed", 5, status=kanban.CARD_COMPLETED)
        floor = _Floor(session, order, [card])

        with pytest.raises(ConflictError):
            asyncio.run(floor.service().create_child_task(card.id, ChildTaskRequest(quantity=1)))


class TestHistory:
    def test_loss_uses_parent_weight_share_after_partial_move(self, session) -> None:
        order = _order(status=MO_IN_PROGRESS)
        pending = _card(order, "pending", 10, weight=20.0, status=kanban.CARD_COMPLETED)
        jhalai = _card(order, "jhalai", 10, weight=20.0, parent=pending, status=kanban.CARD_PARTIAL)
        quellai = _card(order, "quellai", 5, weight=10.0, parent=jhalai)
        floor = _Floor(session, order, [quellai, jhalai, pending])

        entries = asyncio.run(floor.service().history(order.id))

        assert [e.step.step_name for e in entries] == ["pending", "jhalai", "quellai"]
        assert entries[0].loss_percent is None
        assert entries[1].loss_percent == 0.0
        assert entries[2].loss_percent == 0.0

    def test_loss_against_share_of_received_weight(self, session) -> None:
        order = _order(status=MO_IN_PROGRESS)
        jhalai = _card(order, "jhalai", 10, weight=20.0, status=kanban.CARD_PARTIAL, weight_received=19.0)
        quellai = _card(order, "quellai", 5, weight=9.0, parent=jhalai)
        floor = _Floor(session, order, [jhalai, quellai])

        entries = asyncio.run(floor.service().history(order.id))
        # half of 19.0 g went on, 9.0 g arrived
        assert entries[1].loss_percent == pytest.approx(5.3)

    def test_unknown_order(self, session) -> None:
        floor = _Floor(session, _order(), [])
        with pytest.raises(NotFoundError) as exc:
            asyncio.run(floor.service().history(uuid4()))
        assert exc.value.status_code == 404
