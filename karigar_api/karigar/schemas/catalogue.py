from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .master_data import ProductConfigSummary


class CatalogueItemRead(BaseModel):
    id: UUID = Field(...)
    catalogue_id: UUID = Field(...)
    product_config_id: UUID = Field(...)
    product_config: Optional[ProductConfigSummary] = Field(None)
    custom_price: Optional[float] = Field(None, description="Price shown to visitors")
    custom_description: Optional[str] = Field(None)
    display_order: int = Field(...)
    is_featured: bool = Field(...)

    class Config:
        from_attributes = True


class CatalogueItemCreate(BaseModel):
    product_config_id: UUID = Field(...)
    custom_price: Optional[float] = Field(None, ge=0)
    custom_description: Optional[str] = Field(None)
    display_order: int = Field(0, ge=0)
    is_featured: bool = Field(False)


class CatalogueItemUpdate(BaseModel):
    custom_price: Optional[float] = Field(None, ge=0)
    custom_description: Optional[str] = Field(None)
    display_order: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = Field(None)


class CatalogueRead(BaseModel):
    """Catalogue with its items and public share link."""
    id: UUID = Field(..., description="Catalogue ID")
    name: str = Field(...)
    description: Optional[str] = Field(None)
    cover_image_url: Optional[str] = Field(None)
    public_url_slug: str = Field(..., description="Slug used in the public link")
    share_url: Optional[str] = Field(None, description="Public link to send to customers")
    is_active: bool = Field(...)
    items: List[CatalogueItemRead] = Field(default_factory=list)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class CatalogueCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = Field(None)
    cover_image_url: Optional[str] = Field(None)
    is_active: bool = Field(True)


class CatalogueUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None)
    cover_image_url: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)


class PublicCatalogueItem(BaseModel):
    product_config_id: UUID = Field(...)
    product_code: str = Field(...)
    category: str = Field(...)
    subcategory: Optional[str] = Field(None)
    size_value: Optional[str] = Field(None)
    weight_range: Optional[str] = Field(None)
    description: Optional[str] = Field(None, description="Custom description, else the product description")
    image_url: Optional[str] = Field(None)
    price: Optional[float] = Field(None)
    is_featured: bool = Field(False)


class PublicCatalogueRead(BaseModel):
    """What an unauthenticated visitor sees."""
    name: str = Field(...)
    description: Optional[str] = Field(None)
    cover_image_url: Optional[str] = Field(None)
    slug: str = Field(...)
    items: List[PublicCatalogueItem] = Field(default_factory=list)


class CartLine(BaseModel):
    product_config_id: UUID = Field(...)
    quantity: int = Field(..., gt=0)


class CatalogueOrderCreate(BaseModel):
    """Order request placed from a public catalogue."""
    customer_name: str = Field(...)
    customer_phone: Optional[str] = Field(None)
    customer_email: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    items: List[CartLine] = Field(..., min_length=1, description="Cart contents")

    @field_validator("customer_name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("customer_name is required")
        return v


class CatalogueOrderLine(BaseModel):
    product_config_id: UUID = Field(...)
    product_code: str = Field(...)
    quantity: int = Field(...)
    unit_price: float = Field(...)
    line_total: float = Field(...)


class CatalogueOrderRead(BaseModel):
    id: UUID = Field(...)
    catalogue_id: UUID = Field(...)
    customer_name: str = Field(...)
    customer_phone: Optional[str] = Field(None)
    customer_email: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    order_items: List[CatalogueOrderLine] = Field(default_factory=list)
    total_amount: float = Field(...)
    status: str = Field(..., description="pending or processed")
    order_id: Optional[UUID] = Field(None, description="Order created on conversion")
    processed_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class PublicOrderReceipt(BaseModel):
    id: UUID = Field(...)
    total_amount: float = Field(...)
    status: str = Field(...)
    message: str = Field("Thank you! The merchant will contact you to confirm your order.")
