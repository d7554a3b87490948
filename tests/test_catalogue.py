"""
Unit tests for catalogue slugs, share links, cart pricing and order conversion.
"""

from __future__ import annotations

import asyncio
from itertools import islice
from types import SimpleNamespace as NS
from uuid import uuid4

import pytest

from karigar.core.errors import ConflictError, NotFoundError, ValidationFailed
from karigar.repositories.sales import OrderRepository
from karigar.services import catalogue as catalogue_service
from karigar.services.catalogue import CatalogueService, candidate_slugs, price_cart, share_url, slugify

from conftest import make_user


class TestSlugs:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("Bridal Collection 2024", "bridal-collection-2024"),
            ("  Diwali -- Specials!! ", "diwali-specials"),
            ("Kundan & Polki", "kundan-polki"),
            ("!!!", "catalogue"),
            ("", "catalogue"),
        ],
    )
    def test_slugify(self, name, expected) -> None:
        assert slugify(name) == expected

    def test_candidates_start_with_base_then_count_from_two(self) -> None:
        assert list(islice(candidate_slugs("bridal"), 4)) == ["bridal", "bridal-2", "bridal-3", "bridal-4"]

    def test_share_url_strips_trailing_slash(self) -> None:
        assert share_url("bridal", "https://shop.example/") == "https://shop.example/catalogue/bridal"


def _catalogue_item(product, price, code):
    return NS(product_config_id=product, custom_price=price, product_config=NS(product_code=code))


class TestPriceCart:
    items = [
        _catalogue_item("ring", 1500.0, "RNG-18-RUBY"),
        _catalogue_item("bangle", None, "BNG-22-2.4"),
    ]

    def test_lines_merge_and_total(self) -> None:
        lines, total = price_cart([("ring", 1), ("ring", 2), ("bangle", 1)], self.items)
        assert total == pytest.approx(4500.0)
        by_product = {line["product_config_id"]: line for line in lines}
        assert by_product["ring"]["quantity"] == 3
        assert by_product["ring"]["line_total"] == pytest.approx(4500.0)
        assert by_product["ring"]["product_code"] == "RNG-18-RUBY"
        assert by_product["bangle"]["unit_price"] == 0.0

    def test_empty_cart(self) -> None:
        with pytest.raises(ValidationFailed):
            price_cart([], self.items)

    def test_non_positive_quantity(self) -> None:
        with pytest.raises(ValidationFailed):
            price_cart([("ring", 0)], self.items)

    def test_product_outside_catalogue(self) -> None:
        with pytest.raises(ValidationFailed) as exc:
            price_cart([("necklace", 1)], self.items)
        assert exc.value.status_code == 422
        assert exc.value.details == {"product_config_id": "necklace"}

    def test_half_cent_prices_round_up(self) -> None:
        items = [_catalogue_item("stud", 0.125, "STD-18"), _catalogue_item("pin", 1.005, "PIN-22")]
        lines, total = price_cart([("stud", 1), ("pin", 1)], items)
        by_product = {line["product_config_id"]: line for line in lines}
        assert by_product["stud"]["line_total"] == 0.13
        assert by_product["pin"]["line_total"] == 1.01
        assert total == 1.13


class TestConvertOrder:
    @pytest.fixture
    def converted(self, session, monkeypatch):
        """CatalogueService over one visitor request; order creation is recorded, not stored."""
        created = []

        async def _create_order(self, payload, *, commit=True):
            order = NS(id=uuid4(), order_number=f"OD{len(created) + 1:06d}", payload=payload, commit=commit)
            created.append(order)
            return order

        async def _get_order(self, order_id):
            return next(o for o in created if o.id == order_id)

        monkeypatch.setattr(catalogue_service.OrderService, "create_order", _create_order)
        monkeypatch.setattr(OrderRepository, "get_order", _get_order)

        request = NS(
            id=uuid4(),
            customer_name="Anita Sharma",
            customer_phone="+91 98111 22222",
            order_items=[
                {"product_config_id": "x", "product_code": "RNG-18-RUBY", "quantity": 2, "unit_price": 1500.0},
            ],
            status=catalogue_service.STATUS_PENDING,
            order_id=None,
            processed_at=None,
        )

        async def _get_request(catalogue_order_id, lock=False):
            return request if catalogue_order_id == request.id else None

        service = CatalogueService(session, make_user("sales"))
        service.catalogues.get_order = _get_request
        return service, request, created

    def test_conversion_creates_order_and_marks_request(self, session, converted) -> None:
        service, request, created = converted

        order = asyncio.run(service.convert_order(request.id))

        assert order.order_number == "OD000001"
        assert request.status == catalogue_service.STATUS_PROCESSED
        assert request.order_id == order.id
        assert request.processed_at is not None
        submitted = created[0].payload
        assert submitted.customer_name == "Anita Sharma"
        assert [(i.product_code, i.quantity, i.price) for i in submitted.items] == [("RNG-18-RUBY", 2, 1500.0)]
        assert created[0].commit is False
        assert session.commits == 1

    def test_second_conversion_conflicts(self, session, converted) -> None:
        service, request, created = converted
        first = asyncio.run(service.convert_order(request.id))

        with pytest.raises(ConflictError) as exc:
            asyncio.run(service.convert_order(request.id))

        assert exc.value.status_code == 409
        assert exc.value.details == {"order_id": str(first.id)}
        assert len(created) == 1
        assert session.commits == 1

    def test_unknown_request(self, converted) -> None:
        service, _, _ = converted
        with pytest.raises(NotFoundError):
            asyncio.run(service.convert_order(uuid4()))
