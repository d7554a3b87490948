"""
Unit tests for Kanban stage rules.
"""

from __future__ import annotations

from types import SimpleNamespace as NS

import pytest

from karigar.core.errors import AssignmentRequired, InvalidTransition, ValidationFailed
from karigar.services.kanban import (
    STAGES,
    check_move,
    group_by_stage,
    next_stage,
    remaining_quantity,
    remaining_weight,
    requires_assignment,
    stage_index,
    weight_loss_percent,
    weight_share,
)


class TestStageSequence:
    def test_next_stage_walks_the_line(self) -> None:
        assert next_stage("pending") == "jhalai"
        assert next_stage("vibrator") == "quality-check"
        assert next_stage("completed") is None

    def test_unknown_stage_rejected(self) -> None:
        with pytest.raises(ValidationFailed):
            next_stage("polishing")

    def test_worker_stages_need_assignment(self) -> None:
        assert requires_assignment("jhalai")
        assert requires_assignment("meena")
        assert not requires_assignment("quality-check")
        assert not requires_assignment("completed")

    def test_stage_index(self) -> None:
        assert stage_index("pending") == 0
        assert stage_index("completed") == len(STAGES) - 1


class TestCheckMove:
    def test_forward_move_with_assignment(self) -> None:
        check_move("pending", "jhalai", has_assignment=True)

    def test_quality_check_needs_no_assignment(self) -> None:
        check_move("vibrator", "quality-check", has_assignment=False)

    def test_skipping_a_stage_is_invalid(self) -> None:
        with pytest.raises(InvalidTransition) as exc:
            check_move("pending", "quellai", has_assignment=True)
        assert exc.value.status_code == 409
        assert exc.value.details == {"entity": "Kanban card", "from": "pending", "to": "quellai"}

    def test_backward_move_is_invalid(self) -> None:
        with pytest.raises(InvalidTransition):
            check_move("meena", "quellai", has_assignment=True)

    def test_missing_assignment_names_stage(self) -> None:
        with pytest.raises(AssignmentRequired) as exc:
            check_move("jhalai", "quellai", has_assignment=False)
        assert exc.value.stage == "quellai"
        assert exc.value.error_type == "assignment_required"


def _card(cid, qty=0, weight=None, qty_received=None, weight_received=None, parent=None, stage="jhalai"):
    return NS(
        id=cid,
        quantity_assigned=qty,
        quantity_received=qty_received,
        weight_assigned=weight,
        weight_received=weight_received,
        parent_instance_id=parent,
        step_name=stage,
    )


class TestRemaining:
    def test_remaining_quantity_subtracts_children(self) -> None:
        card = _card("a", qty=10)
        children = [_card("b", qty=4, parent="a"), _card("c", qty=3, parent="a"), _card("d", qty=9, parent="x")]
        assert remaining_quantity(card, children) == 3

    def test_received_quantity_takes_precedence(self) -> None:
        card = _card("a", qty=10, qty_received=8)
        assert remaining_quantity(card, [_card("b", qty=8, parent="a")]) == 0

    def test_remaining_never_negative(self) -> None:
        card = _card("a", qty=2, weight=5.0)
        children = [_card("b", qty=5, weight=7.5, parent="a")]
        assert remaining_quantity(card, children) == 0
        assert remaining_weight(card, children) == 0.0

    def test_remaining_weight(self) -> None:
        card = _card("a", weight=20.0, weight_received=19.4)
        assert remaining_weight(card, [_card("b", weight=10.0, parent="a")]) == pytest.approx(9.4)


def test_weight_loss_percent() -> None:
    assert weight_loss_percent(20.0, 19.0) == pytest.approx(5.0)
    assert weight_loss_percent(None, 19.0) is None
    assert weight_loss_percent(0, 1.0) is None


class TestWeightShare:
    def test_share_follows_pieces(self) -> None:
        assert weight_share(_card("a", qty=10, weight=20.0), 5) == pytest.approx(10.0)

    def test_share_of_received_pieces_and_weight(self) -> None:
        card = _card("a", qty=10, weight=20.0, qty_received=8, weight_received=16.8)
        assert weight_share(card, 2) == pytest.approx(4.2)

    def test_no_weight_recorded(self) -> None:
        assert weight_share(_card("a", qty=10), 5) is None

    def test_empty_card_keeps_whole_weight(self) -> None:
        assert weight_share(_card("a", qty=0, weight=3.0), 1) == pytest.approx(3.0)

    def test_loss_after_partial_move_is_not_inflated(self) -> None:
        parent = _card("a", qty=10, weight=20.0)
        assert weight_loss_percent(weight_share(parent, 5), 10.0) == 0.0


def test_group_by_stage_keeps_every_stage() -> None:
    board = group_by_stage([_card("a", stage="meena"), _card("b", stage="meena"), _card("c", stage="pending")])
    assert list(board) == list(STAGES)
    assert len(board["meena"]) == 2
    assert len(board["pending"]) == 1
    assert board["completed"] == []
