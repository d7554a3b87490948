from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MaterialLineRead(BaseModel):
    """Bill of materials line."""
    id: UUID = Field(...)
    product_config_id: UUID = Field(...)
    raw_material_id: UUID = Field(...)
    raw_material_name: Optional[str] = Field(None)
    quantity_required: float = Field(..., description="Quantity of the material per piece")
    unit: str = Field(...)

    class Config:
        from_attributes = True


class MaterialLineCreate(BaseModel):
    raw_material_id: UUID = Field(...)
    quantity_required: float = Field(..., gt=0)
    unit: Optional[str] = Field(None, description="Defaults to the raw material's unit")


class MaterialLineUpdate(BaseModel):
    quantity_required: Optional[float] = Field(None, gt=0)
    unit: Optional[str] = Field(None)


class ProductConfigRead(BaseModel):
    """Product configuration read model."""
    id: UUID = Field(..., description="Product config ID")
    product_code: str = Field(..., description="Product code, unique per merchant")
    category: str = Field(...)
    subcategory: Optional[str] = Field(None)
    size_value: Optional[str] = Field(None)
    weight_range: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    image_url: Optional[str] = Field(None)
    threshold: int = Field(..., description="Minimum finished stock to keep")
    is_active: bool = Field(...)
    materials: List[MaterialLineRead] = Field(default_factory=list)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class ProductConfigSummary(BaseModel):
    id: UUID = Field(...)
    product_code: str = Field(...)
    category: str = Field(...)
    subcategory: Optional[str] = Field(None)
    size_value: Optional[str] = Field(None)
    weight_range: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    image_url: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class ProductConfigCreate(BaseModel):
    """Create product config payload."""
    product_code: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    subcategory: Optional[str] = Field(None)
    size_value: Optional[str] = Field(None)
    weight_range: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    image_url: Optional[str] = Field(None)
    threshold: int = Field(0, ge=0)
    is_active: bool = Field(True)


class ProductConfigUpdate(BaseModel):
    product_code: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    subcategory: Optional[str] = Field(None)
    size_value: Optional[str] = Field(None)
    weight_range: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    image_url: Optional[str] = Field(None)
    threshold: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = Field(None)
