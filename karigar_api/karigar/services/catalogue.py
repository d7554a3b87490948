"""
Shareable catalogues, public viewing and visitor order requests.

Public links carry only the slug, so slugs are unique across merchants and the
owning merchant is resolved from the slug before any merchant data is read.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from itertools import count
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.errors import ConflictError, NotFoundError, ValidationFailed
from karigar.core.settings import get_app_settings
from karigar.db.models.catalogue import Catalogue, CatalogueItem, CatalogueOrder
from karigar.db.models.sales import Order
from karigar.repositories.catalogue import CatalogueRepository
from karigar.repositories.master_data import ProductConfigRepository
from karigar.schemas.catalogue import (
    CatalogueCreate,
    CatalogueItemCreate,
    CatalogueItemUpdate,
    CatalogueOrderCreate,
    CatalogueRead,
    CatalogueUpdate,
    PublicCatalogueItem,
    PublicCatalogueRead,
)
from karigar.schemas.sales import OrderItemInput, OrderSubmit
from karigar.services.activity import log_activity
from karigar.services.base import BaseService
from karigar.services.orders import OrderService, line_total, order_total

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
DEFAULT_SLUG = "catalogue"
STATUS_PENDING = "pending"
STATUS_PROCESSED = "processed"


# PUBLIC_INTERFACE
def slugify(name: str) -> str:
    """Lowercase, collapse every run of non-alphanumerics to '-', trim dashes."""
    slug = _NON_ALNUM.sub("-", (name or "").lower()).strip("-")
    return slug or DEFAULT_SLUG


# PUBLIC_INTERFACE
def candidate_slugs(base: str) -> Iterator[str]:
    """base, base-2, base-3, ..."""
    yield base
    for n in count(2):
        yield f"{base}-{n}"


# PUBLIC_INTERFACE
def price_cart(
    cart: Iterable[Tuple[Any, int]], items: Iterable[Any]
) -> Tuple[List[Dict[str, Any]], float]:
    """
    Price a cart of (product_config_id, quantity) against catalogue items.

    Lines for the same product are merged. The catalogue's custom price is used
    (missing price counts as 0).

    Raises:
        ValidationFailed: empty cart, non-positive quantity, or a product not in the catalogue.
    """
    by_product = {item.product_config_id: item for item in items}
    merged: Dict[Any, int] = {}
    for product_config_id, quantity in cart:
        if quantity <= 0:
            raise ValidationFailed("Quantities must be positive", details={"product_config_id": str(product_config_id)})
        if product_config_id not in by_product:
            raise ValidationFailed(
                "Product is not part of this catalogue", details={"product_config_id": str(product_config_id)}
            )
        merged[product_config_id] = merged.get(product_config_id, 0) + int(quantity)
    if not merged:
        raise ValidationFailed("Cart is empty")

    lines: List[Dict[str, Any]] = []
    for product_config_id, quantity in merged.items():
        item = by_product[product_config_id]
        unit_price = float(item.custom_price or 0)
        lines.append(
            {
                "product_config_id": str(product_config_id),
                "product_code": item.product_config.product_code if item.product_config is not None else "",
                "quantity": quantity,
                "unit_price": unit_price,
                "line_total": line_total(unit_price, quantity),
            }
        )
    return lines, order_total((line["unit_price"], line["quantity"]) for line in lines)


# PUBLIC_INTERFACE
def share_url(slug: str, base_url: Optional[str] = None) -> str:
    base = base_url if base_url is not None else get_app_settings().PUBLIC_BASE_URL
    return f"{base.rstrip('/')}/catalogue/{slug}"


# PUBLIC_INTERFACE
def catalogue_view(catalogue: Catalogue) -> CatalogueRead:
    return CatalogueRead.model_validate(catalogue).model_copy(
        update={"share_url": share_url(catalogue.public_url_slug)}
    )


class CatalogueService(BaseService):
    """Catalogue management for the merchant, plus the public view and order request."""

    def __init__(self, session: AsyncSession, user=None) -> None:
        super().__init__(session, user)
        self.catalogues = CatalogueRepository(session)
        self.products = ProductConfigRepository(session)

    async def _get(self, catalogue_id: UUID) -> Catalogue:
        catalogue = await self.catalogues.get_catalogue(catalogue_id)
        if catalogue is None:
            raise NotFoundError("Catalogue", catalogue_id)
        return catalogue

    async def _unique_slug(self, name: str) -> str:
        for candidate in candidate_slugs(slugify(name)):
            if await self.catalogues.merchant_for_slug(candidate) is None:
                return candidate
        raise ConflictError("Could not allocate a catalogue slug")

    # PUBLIC_INTERFACE
    async def create_catalogue(self, payload: CatalogueCreate) -> Catalogue:
        values = payload.model_dump()
        values["public_url_slug"] = await self._unique_slug(payload.name)
        catalogue = await self.catalogues.create_catalogue(values)
        logger.info("Created catalogue %s", catalogue.public_url_slug)
        return catalogue

    # PUBLIC_INTERFACE
    async def update_catalogue(self, catalogue_id: UUID, payload: CatalogueUpdate) -> Catalogue:
        catalogue = await self._get(catalogue_id)
        return await self.catalogues.update_catalogue(catalogue, payload.model_dump(exclude_unset=True))

    # PUBLIC_INTERFACE
    async def delete_catalogue(self, catalogue_id: UUID) -> None:
        await self.catalogues.delete_catalogue(await self._get(catalogue_id))

    # PUBLIC_INTERFACE
    async def add_item(self, catalogue_id: UUID, payload: CatalogueItemCreate) -> CatalogueItem:
        catalogue = await self._get(catalogue_id)
        if await self.products.get_product_config(payload.product_config_id) is None:
            raise NotFoundError("Product config", payload.product_config_id)
        if any(i.product_config_id == payload.product_config_id for i in catalogue.items):
            raise ConflictError("Product is already in this catalogue")
        return await self.catalogues.add_item({"catalogue_id": catalogue.id, **payload.model_dump()})

    async def _item(self, catalogue_id: UUID, item_id: UUID) -> CatalogueItem:
        item = await self.catalogues.get_item(item_id)
        if item is None or item.catalogue_id != catalogue_id:
            raise NotFoundError("Catalogue item", item_id)
        return item

    # PUBLIC_INTERFACE
    async def update_item(self, catalogue_id: UUID, item_id: UUID, payload: CatalogueItemUpdate) -> CatalogueItem:
        item = await self._item(catalogue_id, item_id)
        return await self.catalogues.update_item(item, payload.model_dump(exclude_unset=True))

    # PUBLIC_INTERFACE
    async def remove_item(self, catalogue_id: UUID, item_id: UUID) -> None:
        await self.catalogues.delete_item(await self._item(catalogue_id, item_id))

    async def _active_by_slug(self, slug: str) -> Catalogue:
        catalogue = await self.catalogues.get_by_slug(slug)
        if catalogue is None or not catalogue.is_active:
            raise NotFoundError("Catalogue", slug)
        return catalogue

    # PUBLIC_INTERFACE
    async def public_view(self, slug: str) -> PublicCatalogueRead:
        """Active catalogue as a visitor sees it; the session must be bound to the owning merchant."""
        catalogue = await self._active_by_slug(slug)
        items = []
        for item in catalogue.items:
            pc = item.product_config
            if pc is None or not pc.is_active:
                continue
            items.append(
                PublicCatalogueItem(
                    product_config_id=pc.id,
                    product_code=pc.product_code,
                    category=pc.category,
                    subcategory=pc.subcategory,
                    size_value=pc.size_value,
                    weight_range=pc.weight_range,
                    description=item.custom_description or pc.description,
                    image_url=pc.image_url,
                    price=item.custom_price,
                    is_featured=item.is_featured,
                )
            )
        return PublicCatalogueRead(
            name=catalogue.name,
            description=catalogue.description,
            cover_image_url=catalogue.cover_image_url,
            slug=catalogue.public_url_slug,
            items=items,
        )

    # PUBLIC_INTERFACE
    async def place_public_order(self, slug: str, payload: CatalogueOrderCreate) -> CatalogueOrder:
        catalogue = await self._active_by_slug(slug)
        lines, total = price_cart(((line.product_config_id, line.quantity) for line in payload.items), catalogue.items)
        order = await self.catalogues.create_order(
            {
                "catalogue_id": catalogue.id,
                "customer_name": payload.customer_name,
                "customer_phone": payload.customer_phone,
                "customer_email": payload.customer_email,
                "notes": payload.notes,
                "order_items": lines,
                "total_amount": total,
                "status": STATUS_PENDING,
            }
        )
        logger.info("Catalogue %s received an order request of %.2f", slug, total)
        return order

    # PUBLIC_INTERFACE
    async def convert_order(self, catalogue_order_id: UUID) -> Order:
        """
        Turn a visitor order request into a regular order.

        Raises:
            ConflictError: the request was already converted.
        """
        request = await self.catalogues.get_order(catalogue_order_id, lock=True)
        if request is None:
            raise NotFoundError("Catalogue order", catalogue_order_id)
        if request.status == STATUS_PROCESSED:
            raise ConflictError(
                "Catalogue order was already converted",
                details={"order_id": str(request.order_id) if request.order_id else None},
            )

        orders = OrderService(self.session, self.user)
        order = await orders.create_order(
            OrderSubmit(
                customer_name=request.customer_name,
                customer_phone=request.customer_phone,
                items=[
                    OrderItemInput(
                        product_code=line["product_code"],
                        quantity=int(line["quantity"]),
                        price=float(line["unit_price"]),
                    )
                    for line in request.order_items
                ],
            ),
            commit=False,
        )
        request.status = STATUS_PROCESSED
        request.order_id = order.id
        request.processed_at = datetime.now(timezone.utc)
        log_activity(
            self.session,
            user=self.user,
            action="catalogue_order.converted",
            entity_type="catalogue_order",
            entity_id=request.id,
            description=f"Converted to {order.order_number}",
        )
        await self.catalogues.commit()
        return await orders.orders.get_order(order.id)  # type: ignore
