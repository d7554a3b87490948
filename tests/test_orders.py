from __future__ import annotations

import pytest

from karigar.services.orders import (
    STATUS_CREATED,
    STATUS_DELIVERED,
    STATUS_PARTIAL,
    derive_item_status,
    derive_order_status,
    line_total,
    order_total,
)


class TestItemStatus:
    def test_fully_fulfilled_is_delivered(self) -> None:
        assert derive_item_status(5, 5, STATUS_CREATED) == STATUS_DELIVERED

    def test_partly_fulfilled(self) -> None:
        assert derive_item_status(5, 2, STATUS_CREATED) == STATUS_PARTIAL

    def test_unfulfilled_keeps_status(self) -> None:
        assert derive_item_status(5, 0, "In Progress") == "In Progress"


class TestOrderStatus:
    def test_all_delivered(self) -> None:
        assert derive_order_status([STATUS_DELIVERED, STATUS_DELIVERED], STATUS_CREATED) == STATUS_DELIVERED

    def test_any_progress_is_partial(self) -> None:
        assert derive_order_status([STATUS_DELIVERED, STATUS_CREATED], STATUS_CREATED) == STATUS_PARTIAL
        assert derive_order_status([STATUS_PARTIAL, STATUS_CREATED], STATUS_CREATED) == STATUS_PARTIAL

    def test_nothing_fulfilled_keeps_status(self) -> None:
        assert derive_order_status([STATUS_CREATED], "In Progress") == "In Progress"

    def test_no_items_keeps_status(self) -> None:
        assert derive_order_status([], STATUS_CREATED) == STATUS_CREATED


class TestMoney:
    def test_order_total_rounds_half_up_to_cents(self) -> None:
        assert order_total([(1999.995, 1), (100, 3)]) == 2300.0
        assert order_total([(0.125, 1)]) == 0.13
        assert order_total([]) == 0

    def test_line_total_rounds_half_up(self) -> None:
        assert line_total(1.005, 1) == 1.01
        assert line_total(0.125, 3) == 0.38
        assert line_total(0.1, 3) == 0.3
