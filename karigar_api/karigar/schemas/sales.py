from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

OrderStatus = Literal["Created", "In Progress", "Ready", "Partially Fulfilled", "Delivered"]


class CustomerRead(BaseModel):
    id: UUID = Field(..., description="Customer ID")
    name: str = Field(...)
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)


class OrderItemInput(BaseModel):
    """One product line of a submitted order."""
    product_code: str = Field(..., min_length=1, description="Product code of an existing product config")
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0, description="Unit price")


class OrderSubmit(BaseModel):
    """
    Order submission.

    The customer is matched by exact name within the merchant or created.
    """
    customer_name: str = Field(..., description="Customer name")
    customer_phone: Optional[str] = Field(None)
    expected_delivery: Optional[date] = Field(None)
    items: List[OrderItemInput] = Field(..., min_length=1)

    @field_validator("customer_name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("customer_name is required")
        return v


class OrderItemRead(BaseModel):
    id: UUID = Field(...)
    suborder_id: str = Field(..., description="S-OD000001-01 style id")
    product_config_id: UUID = Field(...)
    product_code: Optional[str] = Field(None)
    quantity: int = Field(...)
    fulfilled_quantity: int = Field(...)
    unit_price: float = Field(...)
    total_price: float = Field(...)
    status: str = Field(...)

    class Config:
        from_attributes = True


class OrderRead(BaseModel):
    id: UUID = Field(...)
    order_number: str = Field(..., description="OD000001 style number")
    customer_id: UUID = Field(...)
    customer_name: Optional[str] = Field(None)
    status: str = Field(...)
    total_amount: float = Field(...)
    expected_delivery: Optional[date] = Field(None)
    items: List[OrderItemRead] = Field(default_factory=list)
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class OrderUpdate(BaseModel):
    """Status and/or expected delivery change."""
    status: Optional[OrderStatus] = Field(None)
    expected_delivery: Optional[date] = Field(None)


class FulfilmentRequest(BaseModel):
    quantity: int = Field(..., gt=0, description="Pieces delivered against the order item")


class InvoiceCreate(BaseModel):
    """Raise an invoice for an order; lines and subtotal come from the order items."""
    invoice_date: Optional[date] = Field(None, description="Defaults to today")
    due_date: Optional[date] = Field(None)
    tax_amount: float = Field(0, ge=0)
    discount_amount: float = Field(0, ge=0)
    notes: Optional[str] = Field(None)

    @model_validator(mode="after")
    def _due_not_before_invoice(self):
        if self.invoice_date is not None and self.due_date is not None and self.due_date < self.invoice_date:
            raise ValueError("due_date must not be before invoice_date")
        return self


class InvoiceItemRead(BaseModel):
    id: UUID = Field(...)
    order_item_id: Optional[UUID] = Field(None)
    product_config_id: UUID = Field(...)
    product_code: Optional[str] = Field(None)
    quantity: int = Field(...)
    unit_price: float = Field(...)
    total_price: float = Field(...)

    class Config:
        from_attributes = True


class InvoiceRead(BaseModel):
    id: UUID = Field(...)
    invoice_number: str = Field(..., description="INV000001 style number")
    order_id: UUID = Field(...)
    order_number: Optional[str] = Field(None)
    customer_id: UUID = Field(...)
    customer_name: Optional[str] = Field(None)
    invoice_date: date = Field(...)
    due_date: Optional[date] = Field(None)
    subtotal: float = Field(...)
    tax_amount: float = Field(...)
    discount_amount: float = Field(...)
    total_amount: float = Field(..., description="subtotal + tax - discount")
    notes: Optional[str] = Field(None)
    status: str = Field(...)
    items: List[InvoiceItemRead] = Field(default_factory=list)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True
