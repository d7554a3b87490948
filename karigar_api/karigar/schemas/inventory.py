from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

RequestStatus = Literal["None", "Pending", "Approved", "Received"]


class RawMaterialRead(BaseModel):
    """Raw material with its live requirement figures."""
    id: UUID = Field(..., description="Raw material ID")
    name: str = Field(...)
    type: str = Field(..., description="Material type, e.g. Gold, Silver, Stone")
    unit: str = Field(...)
    current_stock: float = Field(...)
    minimum_stock: float = Field(..., description="Buffer kept on top of production needs")
    cost_per_unit: Optional[float] = Field(None)
    supplier_id: Optional[UUID] = Field(None)
    request_status: RequestStatus = Field(..., description="Status of the latest procurement request")
    in_manufacturing: float = Field(0)
    in_procurement: float = Field(0, description="Quantity in Pending or Approved requests")
    production_requirements: float = Field(0, description="Quantity needed for finished good shortfalls")
    required_quantity: float = Field(0, description="production_requirements + minimum_stock")
    shortfall: float = Field(0, description="max(0, required_quantity - (current_stock + in_procurement))")
    last_updated: datetime = Field(...)

    class Config:
        from_attributes = True


class RawMaterialCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    unit: str = Field("grams")
    current_stock: float = Field(0, ge=0)
    minimum_stock: float = Field(0, ge=0)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    supplier_id: Optional[UUID] = Field(None)


class RawMaterialUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = Field(None, min_length=1)
    unit: Optional[str] = Field(None)
    current_stock: Optional[float] = Field(None, ge=0)
    minimum_stock: Optional[float] = Field(None, ge=0)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    supplier_id: Optional[UUID] = Field(None)


class FinishedGoodRead(BaseModel):
    """Finished goods stock with requirement figures."""
    id: UUID = Field(...)
    product_config_id: UUID = Field(...)
    product_code: str = Field(...)
    category: Optional[str] = Field(None)
    current_stock: int = Field(...)
    threshold: int = Field(...)
    in_manufacturing: int = Field(...)
    required_quantity: int = Field(..., description="Persisted at the last recalculation")
    demand: int = Field(0, description="Open quantity on live orders")
    shortfall: int = Field(0)
    is_critical: bool = Field(False, description="current_stock below threshold")
    tag_enabled: bool = Field(...)
    last_produced: Optional[datetime] = Field(None)

    class Config:
        from_attributes = True


class FinishedGoodUpdate(BaseModel):
    threshold: Optional[int] = Field(None, ge=0)
    tag_enabled: Optional[bool] = Field(None)


class RecalculateResult(BaseModel):
    raw_materials_updated: int = Field(...)
    finished_goods_updated: int = Field(...)
    critical_materials: int = Field(..., description="Materials with a positive shortfall")


class TagInRequest(BaseModel):
    """Manual tag-in: put new stock on a fresh tag."""
    product_config_id: UUID = Field(...)
    quantity: int = Field(..., gt=0)
    net_weight: Optional[float] = Field(None, gt=0)
    gross_weight: Optional[float] = Field(None, gt=0)

    @model_validator(mode="after")
    def _gross_not_below_net(self):
        if self.net_weight is not None and self.gross_weight is not None and self.gross_weight < self.net_weight:
            raise ValueError("gross_weight must be greater than or equal to net_weight")
        return self


class TagOutRequest(BaseModel):
    """Manual tag-out: remove stock without scanning an existing tag."""
    product_config_id: UUID = Field(...)
    quantity: int = Field(..., gt=0)
    customer_id: Optional[UUID] = Field(None)
    order_id: Optional[UUID] = Field(None)


class TagScanRequest(BaseModel):
    """Operation on a scanned, existing tag."""
    tag_id: str = Field(..., min_length=1)
    operation: Literal["Tag In", "Tag Out"] = Field(...)
    customer_id: Optional[UUID] = Field(None)
    order_id: Optional[UUID] = Field(None)
    order_item_id: Optional[UUID] = Field(None, description="Order item fulfilled by this tag")


class TagRead(BaseModel):
    id: UUID = Field(...)
    tag_id: str = Field(...)
    product_config_id: UUID = Field(...)
    product_code: Optional[str] = Field(None)
    quantity: int = Field(...)
    net_weight: Optional[float] = Field(None)
    gross_weight: Optional[float] = Field(None)
    status: str = Field(..., description="active or inactive")
    operation_type: str = Field(...)
    qr_code_data: Optional[str] = Field(None)
    customer_id: Optional[UUID] = Field(None)
    order_id: Optional[UUID] = Field(None)
    order_item_id: Optional[UUID] = Field(None)
    used_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class TagOperationResult(BaseModel):
    tag: TagRead
    previous_stock: int = Field(...)
    new_stock: int = Field(...)


class TagAuditRead(BaseModel):
    id: UUID = Field(...)
    tag_id: str = Field(...)
    product_config_id: UUID = Field(...)
    action: str = Field(...)
    quantity: int = Field(...)
    previous_stock: int = Field(...)
    new_stock: int = Field(...)
    user_id: Optional[UUID] = Field(None)
    user_name: Optional[str] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class TagLookup(BaseModel):
    """What the scan screen shows for a tag id."""
    tag_id: str = Field(...)
    product_config_id: UUID = Field(...)
    product_code: str = Field(...)
    quantity: int = Field(...)
    status: str = Field(...)
    current_stock: int = Field(..., description="Finished good stock for the tag's product")
