"""
TagService stock movements against an in-memory finished good and tags.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from karigar.core.errors import InsufficientStock, InvalidTransition, NotFoundError
from karigar.db.models.inventory import FinishedGood, InventoryTag, TagAuditLog
from karigar.schemas.inventory import TagInRequest, TagOutRequest, TagScanRequest
from karigar.services import numbering
from karigar.services.inventory import TAG_ACTIVE, TAG_IN, TAG_INACTIVE, TAG_OUT, TagService

from conftest import make_user


def _finished_good(stock: int) -> FinishedGood:
    return FinishedGood(id=uuid4(), product_config_id=uuid4(), product_code="BNG-22-2.4", current_stock=stock)


def _tag(fg: FinishedGood, quantity: int, status: str) -> InventoryTag:
    return InventoryTag(
        id=uuid4(),
        tag_id="TAG000007",
        product_config_id=fg.product_config_id,
        quantity=quantity,
        status=status,
        operation_type=TAG_IN if status == TAG_ACTIVE else TAG_OUT,
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def tags(session, monkeypatch):
    """Build a TagService over one finished good and the given existing tags."""

    async def _next_number(_session, sequence):
        return numbering.format_number(sequence, 42)

    monkeypatch.setattr(numbering, "next_number", _next_number)

    def _build(fg, existing=()):
        known = {t.tag_id: t for t in existing}

        async def _get_by_tag_id(tag_id, lock=False):
            for tag in session.added_of(InventoryTag):
                known.setdefault(tag.tag_id, tag)
            return known.get(tag_id)

        async def _get_by_product_config(product_config_id, lock=False):
            return fg if fg is not None and fg.product_config_id == product_config_id else None

        service = TagService(session, make_user("inventory"))
        service.tags.get_by_tag_id = _get_by_tag_id
        service.finished.get_by_product_config = _get_by_product_config
        return service

    return _build


class TestManualTags:
    def test_tag_in_adds_stock_on_new_active_tag(self, session, tags) -> None:
        fg = _finished_good(5)
        result = asyncio.run(tags(fg).tag_in(TagInRequest(product_config_id=fg.product_config_id, quantity=3)))

        assert result.tag.tag_id == "TAG000042"
        assert result.tag.status == TAG_ACTIVE
        assert (result.previous_stock, result.new_stock) == (5, 8)
        assert fg.current_stock == 8
        [audit] = session.added_of(TagAuditLog)
        assert (audit.action, audit.previous_stock, audit.new_stock) == (TAG_IN, 5, 8)
        assert session.commits == 1

    def test_tag_out_records_negative_inactive_tag(self, session, tags) -> None:
        fg = _finished_good(5)
        result = asyncio.run(tags(fg).tag_out(TagOutRequest(product_config_id=fg.product_config_id, quantity=2)))

        assert result.tag.quantity == -2
        assert result.tag.status == TAG_INACTIVE
        assert result.new_stock == 3

    def test_tag_out_beyond_stock(self, session, tags) -> None:
        fg = _finished_good(2)
        with pytest.raises(InsufficientStock) as exc:
            asyncio.run(tags(fg).tag_out(TagOutRequest(product_config_id=fg.product_config_id, quantity=3)))

        assert exc.value.status_code == 409
        assert exc.value.details == {"available": 2, "requested": 3}
        assert fg.current_stock == 2
        assert session.added_of(InventoryTag) == []
        assert session.commits == 0

    def test_unknown_finished_good(self, tags) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(tags(None).tag_in(TagInRequest(product_config_id=uuid4(), quantity=1)))


class TestScan:
    def test_tag_out_consumes_active_tag(self, session, tags) -> None:
        fg = _finished_good(5)
        tag = _tag(fg, 2, TAG_ACTIVE)
        customer_id = uuid4()

        result = asyncio.run(
            tags(fg, [tag]).scan(TagScanRequest(tag_id=tag.tag_id, operation=TAG_OUT, customer_id=customer_id))
        )

        assert tag.status == TAG_INACTIVE
        assert tag.customer_id == customer_id
        assert tag.used_at is not None
        assert (result.previous_stock, result.new_stock) == (5, 3)

    def test_tag_out_of_inactive_tag(self, tags) -> None:
        fg = _finished_good(5)
        tag = _tag(fg, 2, TAG_INACTIVE)

        with pytest.raises(InvalidTransition) as exc:
            asyncio.run(tags(fg, [tag]).scan(TagScanRequest(tag_id=tag.tag_id, operation=TAG_OUT)))
        assert exc.value.details["from"] == TAG_INACTIVE
        assert fg.current_stock == 5

    def test_tag_out_without_stock(self, tags) -> None:
        fg = _finished_good(1)
        tag = _tag(fg, 2, TAG_ACTIVE)

        with pytest.raises(InsufficientStock):
            asyncio.run(tags(fg, [tag]).scan(TagScanRequest(tag_id=tag.tag_id, operation=TAG_OUT)))
        assert tag.status == TAG_ACTIVE

    def test_tag_in_of_active_tag(self, tags) -> None:
        fg = _finished_good(5)
        tag = _tag(fg, 2, TAG_ACTIVE)

        with pytest.raises(InvalidTransition):
            asyncio.run(tags(fg, [tag]).scan(TagScanRequest(tag_id=tag.tag_id, operation=TAG_IN)))

    def test_tag_in_returns_goods(self, tags) -> None:
        fg = _finished_good(5)
        tag = _tag(fg, -2, TAG_INACTIVE)

        result = asyncio.run(tags(fg, [tag]).scan(TagScanRequest(tag_id=tag.tag_id, operation=TAG_IN)))
        assert tag.status == TAG_ACTIVE
        assert result.new_stock == 7

    def test_unknown_tag(self, tags) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(tags(_finished_good(5)).scan(TagScanRequest(tag_id="TAG999999", operation=TAG_OUT)))
