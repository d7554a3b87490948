from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CriticalMaterial(BaseModel):
    id: UUID = Field(...)
    name: str = Field(...)
    type: str = Field(...)
    unit: str = Field(...)
    current_stock: float = Field(...)
    required_quantity: float = Field(...)
    in_procurement: float = Field(...)
    shortfall: float = Field(...)
    request_status: str = Field(...)


class CriticalFinishedGood(BaseModel):
    id: UUID = Field(...)
    product_code: str = Field(...)
    current_stock: int = Field(...)
    threshold: int = Field(...)
    in_manufacturing: int = Field(...)
    shortfall: int = Field(...)


class DashboardSummary(BaseModel):
    """Counts and totals for the home screen."""
    orders_by_status: Dict[str, int] = Field(default_factory=dict)
    total_order_value: float = Field(0.0)
    finished_goods_below_threshold: int = Field(0)
    raw_materials_with_shortfall: int = Field(0)
    procurement_by_status: Dict[str, int] = Field(default_factory=dict)
    kanban_load: Dict[str, int] = Field(default_factory=dict, description="Open cards per stage")
    manufacturing_orders_by_status: Dict[str, int] = Field(default_factory=dict)


class CriticalLists(BaseModel):
    raw_materials: List[CriticalMaterial] = Field(default_factory=list, description="Largest shortfall first")
    finished_goods: List[CriticalFinishedGood] = Field(default_factory=list)


class ActivityRead(BaseModel):
    id: UUID = Field(...)
    user_id: Optional[UUID] = Field(None)
    user_name: Optional[str] = Field(None)
    action: str = Field(...)
    entity_type: str = Field(...)
    entity_id: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True
