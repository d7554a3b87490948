"""
Raw material requirement and shortfall calculation.

A single synchronous pass over already-fetched rows:

1. Finished good demand: open quantity (ordered - fulfilled) of live order items.
2. Finished good shortfall: max(0, demand + threshold - current_stock - in_manufacturing).
3. Material production requirement: sum over bill of materials lines of
   finished good shortfall * quantity per unit.
4. Material required quantity: production requirement + minimum stock.
5. Material shortfall: max(0, required - (current_stock + quantity in open procurement)).

Inputs are duck-typed so ORM rows and plain objects both work.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable

LIVE_ORDER_ITEM_STATUSES = frozenset({"Created", "In Progress", "Partially Fulfilled"})
OPEN_PROCUREMENT_STATUSES = frozenset({"Pending", "Approved"})


@dataclass(frozen=True)
class FinishedGoodRequirement:
    product_config_id: Hashable
    demand: int
    required_quantity: int
    available: int
    shortfall: int


@dataclass(frozen=True)
class MaterialRequirement:
    raw_material_id: Hashable
    production_requirements: float
    required_quantity: float
    in_procurement: float
    available: float
    shortfall: float


@dataclass
class RequirementsSnapshot:
    finished_goods: Dict[Hashable, FinishedGoodRequirement] = field(default_factory=dict)
    materials: Dict[Hashable, MaterialRequirement] = field(default_factory=dict)


def _num(value: Any) -> float:
    return float(value or 0)


# PUBLIC_INTERFACE
def finished_good_demand(order_items: Iterable[Any]) -> Dict[Hashable, int]:
    """Open ordered quantity per product config, counting live order items only."""
    demand: Dict[Hashable, int] = defaultdict(int)
    for item in order_items:
        if item.status not in LIVE_ORDER_ITEM_STATUSES:
            continue
        open_qty = int(item.quantity or 0) - int(item.fulfilled_quantity or 0)
        if open_qty > 0:
            demand[item.product_config_id] += open_qty
    return dict(demand)


# PUBLIC_INTERFACE
def finished_good_requirements(
    finished_goods: Iterable[Any], demand: Dict[Hashable, int]
) -> Dict[Hashable, FinishedGoodRequirement]:
    """Required quantity and shortfall for every finished good."""
    result: Dict[Hashable, FinishedGoodRequirement] = {}
    for fg in finished_goods:
        fg_demand = demand.get(fg.product_config_id, 0)
        required = fg_demand + int(fg.threshold or 0)
        available = int(fg.current_stock or 0) + int(fg.in_manufacturing or 0)
        result[fg.product_config_id] = FinishedGoodRequirement(
            product_config_id=fg.product_config_id,
            demand=fg_demand,
            required_quantity=required,
            available=available,
            shortfall=max(0, required - available),
        )
    return result


# PUBLIC_INTERFACE
def open_procurement_quantities(requests: Iterable[Any]) -> Dict[Hashable, float]:
    """Quantity already requested (Pending or Approved) per raw material."""
    totals: Dict[Hashable, float] = defaultdict(float)
    for req in requests:
        if req.status in OPEN_PROCUREMENT_STATUSES:
            totals[req.raw_material_id] += _num(req.quantity_requested)
    return dict(totals)


# PUBLIC_INTERFACE
def material_requirements(
    raw_materials: Iterable[Any],
    bom_lines: Iterable[Any],
    fg_requirements: Dict[Hashable, FinishedGoodRequirement],
    in_procurement: Dict[Hashable, float],
) -> Dict[Hashable, MaterialRequirement]:
    """
    Required quantity and shortfall for every raw material.

    Only bill of materials lines whose product has a finished good record contribute.
    """
    production: Dict[Hashable, float] = defaultdict(float)
    for line in bom_lines:
        fg = fg_requirements.get(line.product_config_id)
        if fg is None or fg.shortfall <= 0:
            continue
        production[line.raw_material_id] += fg.shortfall * _num(line.quantity_required)

    result: Dict[Hashable, MaterialRequirement] = {}
    for material in raw_materials:
        needed_for_production = round(production.get(material.id, 0.0), 3)
        required = round(needed_for_production + _num(material.minimum_stock), 3)
        requested = round(in_procurement.get(material.id, 0.0), 3)
        available = round(_num(material.current_stock) + requested, 3)
        result[material.id] = MaterialRequirement(
            raw_material_id=material.id,
            production_requirements=needed_for_production,
            required_quantity=required,
            in_procurement=requested,
            available=available,
            shortfall=max(0.0, round(required - available, 3)),
        )
    return result


# PUBLIC_INTERFACE
def calculate_requirements(
    *,
    raw_materials: Iterable[Any],
    finished_goods: Iterable[Any],
    bom_lines: Iterable[Any],
    order_items: Iterable[Any],
    procurement_requests: Iterable[Any],
) -> RequirementsSnapshot:
    """Run the whole calculation over the given rows."""
    fg = finished_good_requirements(finished_goods, finished_good_demand(order_items))
    materials = material_requirements(
        raw_materials, bom_lines, fg, open_procurement_quantities(procurement_requests)
    )
    return RequirementsSnapshot(finished_goods=fg, materials=materials)
