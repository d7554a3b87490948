"""
Database seeding utilities for a demo merchant.

Seeds:
- Demo merchant (Demo Jewellers) with admin and worker roles
- Admin user (SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD)
- A supplier and raw materials (gold, silver, stones, consumables)
- Product configs with bills of materials and finished goods rows
- Workers for each Kanban stage

The demo merchant id is fixed, so running the seed twice is a no-op.

Usage:
  python -m karigar.db.run_migrations upgrade head
  python -m karigar.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Tuple
from uuid import UUID, uuid5, NAMESPACE_DNS

from sqlalchemy.ext.asyncio import AsyncSession

from karigar.core.security import get_password_hash
from karigar.core.settings import get_app_settings
from karigar.db.models.inventory import RawMaterial
from karigar.db.models.procurement import Supplier
from karigar.db.models.production import Worker
from karigar.db.session import get_session_maker, merchant_context
from karigar.repositories.master_data import ProductConfigRepository
from karigar.repositories.security import DEFAULT_ROLES, SecurityRepository

logger = logging.getLogger(__name__)

DEMO_MERCHANT_ID: UUID = uuid5(NAMESPACE_DNS, "demo-jewellers.karigar")

# name, type, unit, current stock, minimum stock, cost per unit
RAW_MATERIALS: List[Tuple[str, str, str, float, float, float]] = [
    ("Gold 22K", "Gold", "grams", 250.0, 100.0, 6200.0),
    ("Gold 18K", "Gold", "grams", 120.0, 50.0, 5100.0),
    ("Silver 925", "Silver", "grams", 1500.0, 500.0, 85.0),
    ("Ruby", "Stone", "pieces", 40.0, 20.0, 900.0),
    ("Meena Colour Red", "Consumable", "grams", 30.0, 10.0, 40.0),
]

# product code, category, subcategory, size, weight range, threshold, BOM [(material, qty per piece)]
PRODUCTS: List[Tuple[str, str, str, str, str, int, List[Tuple[str, float]]]] = [
    ("BNG-22-2.4", "Bangle", "Kada", "2.4", "18-22g", 10, [("Gold 22K", 20.0)]),
    ("RNG-18-RUBY", "Ring", "Solitaire", "14", "3-4g", 15, [("Gold 18K", 3.5), ("Ruby", 1.0)]),
    ("JHM-925-MEENA", "Earring", "Jhumka", "M", "8-10g", 20, [("Silver 925", 9.0), ("Meena Colour Red", 0.5)]),
]

# name, role
WORKERS: List[Tuple[str, str]] = [
    ("Ramesh Soni", "Jhalai"),
    ("Suresh Verma", "Quellai"),
    ("Anita Kumari", "Meena"),
    ("Mohan Lal", "Vibrator"),
]


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the demo merchant and its reference data.

    Everything is written inside merchant_context so row-level security
    policies accept the inserts.
    """
    async with get_session_maker()() as session:
        async with merchant_context(session, DEMO_MERCHANT_ID):
            repo = SecurityRepository(session)
            if await repo.get_merchant(DEMO_MERCHANT_ID) is not None:
                logger.info("Demo merchant already seeded")
                return
            await _seed_security(session)
            materials = await _seed_raw_materials(session)
            await _seed_products(session, materials)
            await _seed_workers(session)
            await session.commit()
        logger.info("Seeded demo merchant %s", DEMO_MERCHANT_ID)


async def _seed_security(session: AsyncSession) -> None:
    """Merchant row, both roles and the admin user."""
    settings = get_app_settings()
    repo = SecurityRepository(session)
    await repo.create_merchant(
        merchant_id=DEMO_MERCHANT_ID,
        name="Demo Jewellers",
        email=settings.SEED_ADMIN_EMAIL,
        phone="+919800000000",
        address="Zaveri Bazaar, Mumbai",
    )
    for name in DEFAULT_ROLES:
        await repo.ensure_role(name)
    await repo.create_user(
        email=settings.SEED_ADMIN_EMAIL,
        full_name="Demo Admin",
        hashed_password=get_password_hash(settings.SEED_ADMIN_PASSWORD),
        role_names=["admin"],
    )


async def _seed_raw_materials(session: AsyncSession) -> Dict[str, RawMaterial]:
    """Supplier plus raw materials; returns materials by name."""
    supplier = Supplier(
        company_name="Shree Bullion Traders",
        contact_person="Kiran Shah",
        phone="+919811111111",
        whatsapp_number="+919811111111",
        whatsapp_enabled=False,
        payment_terms="Net 15",
        materials_supplied=["Gold", "Silver"],
    )
    session.add(supplier)
    await session.flush()

    materials: Dict[str, RawMaterial] = {}
    for name, mtype, unit, stock, minimum, cost in RAW_MATERIALS:
        material = RawMaterial(
            name=name,
            type=mtype,
            unit=unit,
            current_stock=stock,
            minimum_stock=minimum,
            cost_per_unit=cost,
            supplier_id=supplier.id if mtype in ("Gold", "Silver") else None,
        )
        session.add(material)
        materials[name] = material
    await session.flush()
    return materials


async def _seed_products(session: AsyncSession, materials: Dict[str, RawMaterial]) -> None:
    """Product configs (each with its finished good row) and their bills of materials."""
    repo = ProductConfigRepository(session)
    for code, category, subcategory, size, weight, threshold, bom in PRODUCTS:
        config = await repo.create_product_config(
            {
                "product_code": code,
                "category": category,
                "subcategory": subcategory,
                "size_value": size,
                "weight_range": weight,
                "threshold": threshold,
            }
        )
        for material_name, quantity in bom:
            material = materials[material_name]
            await repo.add_material_line(
                product_config_id=config.id,
                raw_material_id=material.id,
                quantity_required=quantity,
                unit=material.unit,
            )


async def _seed_workers(session: AsyncSession) -> None:
    session.add_all(Worker(name=name, role=role, status="Active") for name, role in WORKERS)
    await session.flush()


if __name__ == "__main__":
    asyncio.run(seed_all())
