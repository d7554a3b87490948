from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.errors import InsufficientStock, InvalidTransition, NotFoundError
from karigar.db.models.inventory import FinishedGood, InventoryTag, RawMaterial, TagAuditLog
from karigar.repositories.inventory import FinishedGoodRepository, RawMaterialRepository, TagRepository
from karigar.repositories.master_data import ProductConfigRepository
from karigar.repositories.procurement import ProcurementRequestRepository
from karigar.repositories.sales import OrderRepository
from karigar.schemas.inventory import (
    FinishedGoodRead,
    RawMaterialRead,
    RecalculateResult,
    TagInRequest,
    TagOperationResult,
    TagOutRequest,
    TagRead,
    TagScanRequest,
)
from karigar.services import numbering
from karigar.services.activity import log_activity
from karigar.services.base import BaseService
from karigar.services.orders import OrderService
from karigar.services.shortfall import RequirementsSnapshot, calculate_requirements

logger = logging.getLogger(__name__)

TAG_IN = "Tag In"
TAG_OUT = "Tag Out"
TAG_ACTIVE = "active"
TAG_INACTIVE = "inactive"


class RequirementsService(BaseService):
    """Live requirement figures for raw materials and finished goods."""

    def __init__(self, session: AsyncSession, user=None) -> None:
        super().__init__(session, user)
        self.materials = RawMaterialRepository(session)
        self.finished = FinishedGoodRepository(session)
        self.products = ProductConfigRepository(session)
        self.procurement = ProcurementRequestRepository(session)
        self.orders = OrderRepository(session)

    async def _snapshot(
        self, raw_materials: List[RawMaterial], finished_goods: List[FinishedGood]
    ) -> RequirementsSnapshot:
        return calculate_requirements(
            raw_materials=raw_materials,
            finished_goods=finished_goods,
            bom_lines=await self.products.list_all_materials(),
            order_items=await self.orders.list_all_items(),
            procurement_requests=await self.procurement.list_all(),
        )

    # PUBLIC_INTERFACE
    async def list_raw_materials(
        self,
        *,
        type: Optional[str] = None,
        search: Optional[str] = None,
        critical_only: bool = False,
    ) -> List[RawMaterialRead]:
        """Raw materials with in_procurement, production requirement, required quantity and shortfall."""
        materials = await self.materials.list_raw_materials(type=type, search=search)
        snapshot = await self._snapshot(materials, await self.finished.list_finished_goods())
        result: List[RawMaterialRead] = []
        for material in materials:
            req = snapshot.materials[material.id]
            if critical_only and req.shortfall <= 0:
                continue
            result.append(
                RawMaterialRead.model_validate(material).model_copy(
                    update={
                        "in_procurement": req.in_procurement,
                        "production_requirements": req.production_requirements,
                        "required_quantity": req.required_quantity,
                        "shortfall": req.shortfall,
                    }
                )
            )
        return result

    # PUBLIC_INTERFACE
    async def get_raw_material(self, raw_material_id: UUID) -> RawMaterialRead:
        material = await self.materials.get_raw_material(raw_material_id)
        if material is None:
            raise NotFoundError("Raw material", raw_material_id)
        snapshot = await self._snapshot([material], await self.finished.list_finished_goods())
        req = snapshot.materials[material.id]
        return RawMaterialRead.model_validate(material).model_copy(
            update={
                "in_procurement": req.in_procurement,
                "production_requirements": req.production_requirements,
                "required_quantity": req.required_quantity,
                "shortfall": req.shortfall,
            }
        )

    # PUBLIC_INTERFACE
    async def list_finished_goods(
        self, *, search: Optional[str] = None, critical_only: bool = False
    ) -> List[FinishedGoodRead]:
        goods = await self.finished.list_finished_goods(search=search)
        snapshot = await self._snapshot([], goods)
        result: List[FinishedGoodRead] = []
        for fg in goods:
            if critical_only and not fg.is_critical:
                continue
            req = snapshot.finished_goods[fg.product_config_id]
            result.append(
                FinishedGoodRead.model_validate(fg).model_copy(
                    update={"demand": req.demand, "shortfall": req.shortfall}
                )
            )
        return result

    # PUBLIC_INTERFACE
    async def recalculate(self) -> RecalculateResult:
        """Persist the computed required quantities onto raw materials and finished goods."""
        materials = await self.materials.list_raw_materials()
        goods = await self.finished.list_finished_goods()
        snapshot = await self._snapshot(materials, goods)

        critical = 0
        for material in materials:
            req = snapshot.materials[material.id]
            material.required = req.required_quantity
            material.in_procurement = req.in_procurement
            if req.shortfall > 0:
                critical += 1
        for fg in goods:
            fg.required_quantity = snapshot.finished_goods[fg.product_config_id].required_quantity

        log_activity(
            self.session,
            user=self.user,
            action="inventory.recalculated",
            entity_type="inventory",
            description=f"{len(materials)} raw materials, {len(goods)} finished goods; {critical} critical",
        )
        await self.materials.commit()
        logger.info("Recalculated requirements: materials=%d goods=%d critical=%d", len(materials), len(goods), critical)
        return RecalculateResult(
            raw_materials_updated=len(materials),
            finished_goods_updated=len(goods),
            critical_materials=critical,
        )


class TagService(BaseService):
    """Tag in / tag out of finished goods stock, with an audit row per movement."""

    def __init__(self, session: AsyncSession, user=None) -> None:
        super().__init__(session, user)
        self.tags = TagRepository(session)
        self.finished = FinishedGoodRepository(session)

    async def _finished_good(self, product_config_id: UUID) -> FinishedGood:
        fg = await self.finished.get_by_product_config(product_config_id, lock=True)
        if fg is None:
            raise NotFoundError("Finished good", product_config_id)
        return fg

    def _audit(self, tag: InventoryTag, fg: FinishedGood, action: str, quantity: int, previous: int) -> None:
        self.session.add(
            TagAuditLog(
                tag_id=tag.tag_id,
                product_config_id=fg.product_config_id,
                action=action,
                quantity=quantity,
                previous_stock=previous,
                new_stock=fg.current_stock,
                user_id=self.actor_id,
                user_name=self.actor_name,
            )
        )

    async def _finish(self, tag: InventoryTag, previous: int, fg: FinishedGood) -> TagOperationResult:
        await self.tags.commit()
        stored = await self.tags.get_by_tag_id(tag.tag_id)
        return TagOperationResult(
            tag=TagRead.model_validate(stored),
            previous_stock=previous,
            new_stock=fg.current_stock,
        )

    @staticmethod
    def _qr_payload(tag_id: str, product_code: str, quantity: int) -> str:
        return json.dumps({"tag_id": tag_id, "product_code": product_code, "quantity": quantity})

    # PUBLIC_INTERFACE
    async def tag_in(self, payload: TagInRequest) -> TagOperationResult:
        """Put `quantity` new pieces into stock on a freshly numbered active tag."""
        fg = await self._finished_good(payload.product_config_id)
        tag_id = await numbering.next_number(self.session, numbering.TAG)
        tag = InventoryTag(
            tag_id=tag_id,
            product_config_id=fg.product_config_id,
            quantity=payload.quantity,
            net_weight=payload.net_weight,
            gross_weight=payload.gross_weight,
            status=TAG_ACTIVE,
            operation_type=TAG_IN,
            qr_code_data=self._qr_payload(tag_id, fg.product_code, payload.quantity),
        )
        await self.tags.add(tag)

        previous = fg.current_stock
        fg.current_stock = previous + payload.quantity
        fg.last_produced = datetime.now(timezone.utc)
        self._audit(tag, fg, TAG_IN, payload.quantity, previous)
        log_activity(
            self.session,
            user=self.user,
            action="tag.in",
            entity_type="finished_good",
            entity_id=fg.id,
            description=f"{tag_id}: {fg.product_code} +{payload.quantity}",
        )
        return await self._finish(tag, previous, fg)

    # PUBLIC_INTERFACE
    async def tag_out(self, payload: TagOutRequest) -> TagOperationResult:
        """Take pieces out of stock without an existing tag; recorded as an inactive tag with negative quantity."""
        fg = await self._finished_good(payload.product_config_id)
        if fg.current_stock < payload.quantity:
            raise InsufficientStock(fg.product_code, fg.current_stock, payload.quantity)
        tag_id = await numbering.next_number(self.session, numbering.TAG)
        tag = InventoryTag(
            tag_id=tag_id,
            product_config_id=fg.product_config_id,
            quantity=-payload.quantity,
            status=TAG_INACTIVE,
            operation_type=TAG_OUT,
            customer_id=payload.customer_id,
            order_id=payload.order_id,
            used_at=datetime.now(timezone.utc),
            used_by=self.actor_id,
        )
        await self.tags.add(tag)

        previous = fg.current_stock
        fg.current_stock = previous - payload.quantity
        self._audit(tag, fg, TAG_OUT, payload.quantity, previous)
        log_activity(
            self.session,
            user=self.user,
            action="tag.out",
            entity_type="finished_good",
            entity_id=fg.id,
            description=f"{tag_id}: {fg.product_code} -{payload.quantity}",
        )
        return await self._finish(tag, previous, fg)

    # PUBLIC_INTERFACE
    async def scan(self, payload: TagScanRequest) -> TagOperationResult:
        """
        Apply a scanned tag operation.

        Tag Out needs an active tag and sufficient stock; it may fulfil an order item.
        Tag In needs an inactive tag (e.g. returned goods).
        """
        tag = await self.tags.get_by_tag_id(payload.tag_id, lock=True)
        if tag is None:
            raise NotFoundError("Inventory tag", payload.tag_id)
        quantity = abs(int(tag.quantity))
        fg = await self._finished_good(tag.product_config_id)
        previous = fg.current_stock

        if payload.operation == TAG_OUT:
            if tag.status != TAG_ACTIVE:
                raise InvalidTransition("Inventory tag", tag.status, TAG_INACTIVE)
            if fg.current_stock < quantity:
                raise InsufficientStock(fg.product_code, fg.current_stock, quantity)
            tag.status = TAG_INACTIVE
            tag.operation_type = TAG_OUT
            tag.customer_id = payload.customer_id
            tag.order_id = payload.order_id
            tag.order_item_id = payload.order_item_id
            tag.used_at = datetime.now(timezone.utc)
            tag.used_by = self.actor_id
            fg.current_stock = previous - quantity
            if payload.order_item_id is not None:
                await self._fulfil(payload.order_item_id, quantity)
        else:
            if tag.status != TAG_INACTIVE:
                raise InvalidTransition("Inventory tag", tag.status, TAG_ACTIVE)
            tag.status = TAG_ACTIVE
            tag.operation_type = TAG_IN
            tag.used_at = None
            tag.used_by = None
            fg.current_stock = previous + quantity

        self._audit(tag, fg, payload.operation, quantity, previous)
        log_activity(
            self.session,
            user=self.user,
            action="tag.scan",
            entity_type="finished_good",
            entity_id=fg.id,
            description=f"{tag.tag_id}: {payload.operation} {quantity}",
        )
        return await self._finish(tag, previous, fg)

    async def _fulfil(self, order_item_id: UUID, quantity: int) -> None:
        orders = OrderService(self.session, self.user)
        item = await orders.orders.get_order_item(order_item_id, lock=True)
        if item is None:
            raise NotFoundError("Order item", order_item_id)
        await orders.apply_fulfilment(item, quantity)

    # PUBLIC_INTERFACE
    async def lookup(self, tag_id: str) -> Tuple[InventoryTag, FinishedGood]:
        """Tag with its finished good, for the scan screen."""
        tag = await self.tags.get_by_tag_id(tag_id)
        if tag is None:
            raise NotFoundError("Inventory tag", tag_id)
        fg = await self.finished.get_by_product_config(tag.product_config_id)
        if fg is None:
            raise NotFoundError("Finished good", tag.product_config_id)
        return tag, fg
