"""
Manufacturing stage sequence and Kanban card rules.

Stages form a fixed line:
    pending -> jhalai -> quellai -> meena -> vibrator -> quality-check -> completed

A card may only move to the stage directly after its own. Moving into a worker
stage (jhalai, quellai, meena, vibrator) requires an assignment.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from karigar.core.errors import AssignmentRequired, InvalidTransition, ValidationFailed

STAGES: tuple[str, ...] = (
    "pending",
    "jhalai",
    "quellai",
    "meena",
    "vibrator",
    "quality-check",
    "completed",
)

STAGE_LABELS: Dict[str, str] = {
    "pending": "Pending",
    "jhalai": "Jhalai",
    "quellai": "Quellai",
    "meena": "Meena",
    "vibrator": "Vibrator",
    "quality-check": "Quality Check",
    "completed": "Completed",
}

ASSIGNMENT_STAGES = frozenset({"jhalai", "quellai", "meena", "vibrator"})

# source stage -> the only stage it may move to
ALLOWED_MOVES: Dict[str, str] = dict(zip(STAGES, STAGES[1:]))

# card statuses
CARD_PENDING = "pending"
CARD_IN_PROGRESS = "in_progress"
CARD_PARTIAL = "partially_completed"
CARD_COMPLETED = "completed"


# PUBLIC_INTERFACE
def validate_stage(stage: str) -> str:
    if stage not in STAGE_LABELS:
        raise ValidationFailed(f"Unknown stage '{stage}'", details={"allowed": list(STAGES)})
    return stage


# PUBLIC_INTERFACE
def next_stage(stage: str) -> Optional[str]:
    """Stage following `stage`, or None for the last stage."""
    validate_stage(stage)
    return ALLOWED_MOVES.get(stage)


# PUBLIC_INTERFACE
def requires_assignment(stage: str) -> bool:
    return stage in ASSIGNMENT_STAGES


# PUBLIC_INTERFACE
def check_move(source: str, target: str, has_assignment: bool) -> None:
    """
    Validate a card move.

    Raises:
        ValidationFailed: unknown stage name.
        InvalidTransition: target is not the stage right after source.
        AssignmentRequired: target is a worker stage and no assignment was given.
    """
    validate_stage(source)
    validate_stage(target)
    if ALLOWED_MOVES.get(source) != target:
        raise InvalidTransition("Kanban card", source, target)
    if requires_assignment(target) and not has_assignment:
        raise AssignmentRequired(target)


def _base_quantity(card: Any) -> int:
    if card.quantity_received is not None:
        return int(card.quantity_received)
    return int(card.quantity_assigned or 0)


def _base_weight(card: Any) -> float:
    if card.weight_received is not None:
        return float(card.weight_received)
    return float(card.weight_assigned or 0)


# PUBLIC_INTERFACE
def remaining_quantity(card: Any, children: Iterable[Any]) -> int:
    """Pieces of `card` not yet handed on to child cards (never negative)."""
    handed_on = sum(int(c.quantity_assigned or 0) for c in children if c.parent_instance_id == card.id)
    return max(0, _base_quantity(card) - handed_on)


# PUBLIC_INTERFACE
def remaining_weight(card: Any, children: Iterable[Any]) -> float:
    """Weight of `card` not yet handed on to child cards (never negative)."""
    handed_on = sum(float(c.weight_assigned or 0) for c in children if c.parent_instance_id == card.id)
    return max(0.0, round(_base_weight(card) - handed_on, 3))


# PUBLIC_INTERFACE
def weight_share(card: Any, quantity: int) -> Optional[float]:
    """Part of the weight of `card` carried by `quantity` of its pieces."""
    if card.weight_received is None and card.weight_assigned is None:
        return None
    base = _base_quantity(card)
    if base <= 0:
        return _base_weight(card)
    return round(_base_weight(card) * int(quantity) / base, 3)


# PUBLIC_INTERFACE
def weight_loss_percent(previous: Optional[float], current: Optional[float]) -> Optional[float]:
    """Loss between consecutive stages as a percentage of the previous weight."""
    if previous is None or current is None:
        return None
    previous = float(previous)
    if previous <= 0:
        return None
    return round((previous - float(current)) / previous * 100.0, 1)


# PUBLIC_INTERFACE
def group_by_stage(cards: Iterable[Any]) -> Dict[str, List[Any]]:
    """Cards keyed by stage in sequence order; every stage is present."""
    board: Dict[str, List[Any]] = {stage: [] for stage in STAGES}
    for card in cards:
        board.setdefault(card.step_name, []).append(card)
    return board


# PUBLIC_INTERFACE
def stage_index(stage: str) -> int:
    return STAGES.index(validate_stage(stage))
