from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from karigar.db.models.inventory import FinishedGood
from karigar.db.models.master_data import ProductConfig, ProductConfigMaterial
from .base import BaseRepository


class ProductConfigRepository(BaseRepository):
    """Product definitions and their bills of materials."""

    async def list_product_configs(
        self,
        *,
        search: Optional[str] = None,
        category: Optional[str] = None,
        is_active: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ProductConfig]:
        stmt = select(ProductConfig)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(ProductConfig.product_code.ilike(pattern), ProductConfig.description.ilike(pattern))
            )
        if category:
            stmt = stmt.where(ProductConfig.category == category)
        if is_active is not None:
            stmt = stmt.where(ProductConfig.is_active == is_active)
        stmt = stmt.order_by(ProductConfig.product_code).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_product_config(self, product_config_id: UUID) -> Optional[ProductConfig]:
        return await self.get_by_id(ProductConfig, product_config_id)

    async def get_by_code(self, product_code: str) -> Optional[ProductConfig]:
        stmt = select(ProductConfig).where(ProductConfig.product_code == product_code)
        return await self.scalar_one_or_none(stmt)

    async def get_by_codes(self, codes: List[str]) -> List[ProductConfig]:
        if not codes:
            return []
        stmt = select(ProductConfig).where(ProductConfig.product_code.in_(codes))
        return list(await self.scalars(stmt))

    async def create_product_config(self, values: dict) -> ProductConfig:
        """Create the config together with its (empty) finished good stock row."""
        config = ProductConfig(**values)
        await self.add(config)
        await self.flush()
        await self.add(
            FinishedGood(
                product_config_id=config.id,
                product_code=config.product_code,
                threshold=config.threshold,
            )
        )
        await self.commit()
        return await self.get_product_config(config.id)  # type: ignore

    async def update_product_config(self, config: ProductConfig, values: dict) -> ProductConfig:
        for key, value in values.items():
            setattr(config, key, value)
        if "threshold" in values or "product_code" in values:
            fg = await self.scalar_one_or_none(
                select(FinishedGood).where(FinishedGood.product_config_id == config.id)
            )
            if fg is not None:
                fg.threshold = config.threshold
                fg.product_code = config.product_code
        await self.commit()
        return await self.get_product_config(config.id)  # type: ignore

    async def delete_product_config(self, config: ProductConfig) -> None:
        await self.delete(config)
        await self.commit()

    # Bill of materials
    async def list_all_materials(self) -> List[ProductConfigMaterial]:
        return list(await self.scalars(select(ProductConfigMaterial)))

    async def get_material_line(self, line_id: UUID) -> Optional[ProductConfigMaterial]:
        return await self.get_by_id(ProductConfigMaterial, line_id)

    async def find_material_line(
        self, product_config_id: UUID, raw_material_id: UUID
    ) -> Optional[ProductConfigMaterial]:
        stmt = select(ProductConfigMaterial).where(
            ProductConfigMaterial.product_config_id == product_config_id,
            ProductConfigMaterial.raw_material_id == raw_material_id,
        )
        return await self.scalar_one_or_none(stmt)

    async def add_material_line(
        self, *, product_config_id: UUID, raw_material_id: UUID, quantity_required: float, unit: str
    ) -> ProductConfigMaterial:
        line = ProductConfigMaterial(
            product_config_id=product_config_id,
            raw_material_id=raw_material_id,
            quantity_required=quantity_required,
            unit=unit,
        )
        await self.add(line)
        await self.commit()
        return await self.get_material_line(line.id)  # type: ignore

    async def update_material_line(self, line: ProductConfigMaterial, values: dict) -> ProductConfigMaterial:
        for key, value in values.items():
            setattr(line, key, value)
        await self.commit()
        return await self.get_material_line(line.id)  # type: ignore

    async def delete_material_line(self, line: ProductConfigMaterial) -> None:
        await self.delete(line)
        await self.commit()
