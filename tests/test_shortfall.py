"""
Unit tests for the requirement and shortfall calculation.
"""

from __future__ import annotations

from types import SimpleNamespace as NS

import pytest

from karigar.services.shortfall import (
    calculate_requirements,
    finished_good_demand,
    finished_good_requirements,
    material_requirements,
    open_procurement_quantities,
)


def _item(product, quantity, fulfilled=0, status="Created"):
    return NS(product_config_id=product, quantity=quantity, fulfilled_quantity=fulfilled, status=status)


def _fg(product, stock=0, threshold=0, in_mfg=0):
    return NS(product_config_id=product, current_stock=stock, threshold=threshold, in_manufacturing=in_mfg)


def _material(mid, stock=0.0, minimum=0.0):
    return NS(id=mid, current_stock=stock, minimum_stock=minimum)


def _line(product, material, qty):
    return NS(product_config_id=product, raw_material_id=material, quantity_required=qty)


class TestFinishedGoodDemand:
    def test_counts_open_quantity_of_live_items(self) -> None:
        demand = finished_good_demand(
            [
                _item("ring", 5, fulfilled=2, status="Partially Fulfilled"),
                _item("ring", 3),
                _item("bangle", 4, status="In Progress"),
            ]
        )
        assert demand == {"ring": 6, "bangle": 4}

    def test_ignores_closed_statuses_and_fully_fulfilled(self) -> None:
        demand = finished_good_demand(
            [
                _item("ring", 5, status="Delivered"),
                _item("ring", 5, status="Ready"),
                _item("ring", 2, fulfilled=2, status="In Progress"),
            ]
        )
        assert demand == {}


class TestFinishedGoodRequirements:
    def test_required_is_demand_plus_threshold(self) -> None:
        reqs = finished_good_requirements([_fg("ring", stock=4, threshold=10, in_mfg=3)], {"ring": 5})
        r = reqs["ring"]
        assert r.demand == 5
        assert r.required_quantity == 15
        assert r.available == 7
        assert r.shortfall == 8

    def test_shortfall_never_negative(self) -> None:
        reqs = finished_good_requirements([_fg("ring", stock=50, threshold=10)], {})
        assert reqs["ring"].shortfall == 0


class TestMaterialRequirements:
    def test_bom_scales_by_finished_good_shortfall(self) -> None:
        fg = finished_good_requirements([_fg("ring", threshold=4)], {})
        mats = material_requirements(
            [_material("gold", stock=5.0, minimum=2.0)],
            [_line("ring", "gold", 3.5)],
            fg,
            {"gold": 1.0},
        )
        m = mats["gold"]
        assert m.production_requirements == pytest.approx(14.0)
        assert m.required_quantity == pytest.approx(16.0)
        assert m.in_procurement == pytest.approx(1.0)
        assert m.available == pytest.approx(6.0)
        assert m.shortfall == pytest.approx(10.0)

    def test_lines_without_finished_good_are_skipped(self) -> None:
        mats = material_requirements([_material("gold", minimum=1.0)], [_line("orphan", "gold", 9.0)], {}, {})
        assert mats["gold"].production_requirements == 0.0
        assert mats["gold"].shortfall == pytest.approx(1.0)


def test_open_procurement_counts_pending_and_approved_only() -> None:
    requests = [
        NS(raw_material_id="gold", status="Pending", quantity_requested=10),
        NS(raw_material_id="gold", status="Approved", quantity_requested=5.5),
        NS(raw_material_id="gold", status="Received", quantity_requested=100),
    ]
    assert open_procurement_quantities(requests) == {"gold": pytest.approx(15.5)}


def test_calculate_requirements_end_to_end() -> None:
    snapshot = calculate_requirements(
        raw_materials=[_material("silver", stock=10.0, minimum=5.0)],
        finished_goods=[_fg("jhumka", stock=2, threshold=3)],
        bom_lines=[_line("jhumka", "silver", 9.0)],
        order_items=[_item("jhumka", 4)],
        procurement_requests=[],
    )
    assert snapshot.finished_goods["jhumka"].shortfall == 5
    silver = snapshot.materials["silver"]
    assert silver.production_requirements == pytest.approx(45.0)
    assert silver.shortfall == pytest.approx(40.0)
