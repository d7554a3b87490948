from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

ProcurementStatus = Literal["Pending", "Approved", "Received"]


class SupplierRead(BaseModel):
    """Supplier read model."""
    id: UUID = Field(..., description="Supplier ID")
    company_name: str = Field(..., description="Supplier company name")
    contact_person: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    whatsapp_number: Optional[str] = Field(None, description="Number used for WhatsApp notifications")
    whatsapp_enabled: bool = Field(..., description="Send approval messages over WhatsApp")
    payment_terms: Optional[str] = Field(None)
    materials_supplied: List[str] = Field(default_factory=list)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class SupplierCreate(BaseModel):
    """Create supplier payload."""
    company_name: str = Field(..., min_length=1)
    contact_person: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    whatsapp_number: Optional[str] = Field(None)
    whatsapp_enabled: bool = Field(False)
    payment_terms: Optional[str] = Field(None)
    materials_supplied: List[str] = Field(default_factory=list)


class SupplierUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1)
    contact_person: Optional[str] = Field(None)
    phone: Optional[str] = Field(None)
    email: Optional[str] = Field(None)
    whatsapp_number: Optional[str] = Field(None)
    whatsapp_enabled: Optional[bool] = Field(None)
    payment_terms: Optional[str] = Field(None)
    materials_supplied: Optional[List[str]] = Field(None)


class ProcurementRequestCreate(BaseModel):
    """Create procurement request payload."""
    raw_material_id: UUID = Field(...)
    quantity_requested: float = Field(..., gt=0)
    unit: Optional[str] = Field(None, description="Defaults to the raw material's unit")
    supplier_id: Optional[UUID] = Field(None)
    eta: Optional[date] = Field(None, description="Expected delivery date")
    notes: Optional[str] = Field(None)


class ProcurementRequestBulkCreate(BaseModel):
    """Several requests created in one transaction (e.g. for all critical materials)."""
    requests: List[ProcurementRequestCreate] = Field(..., min_length=1)


class ProcurementRequestRead(BaseModel):
    """Procurement request with material and supplier names."""
    id: UUID = Field(...)
    request_number: str = Field(..., description="PR000001 style number")
    raw_material_id: UUID = Field(...)
    raw_material_name: Optional[str] = Field(None)
    raw_material_type: Optional[str] = Field(None)
    supplier_id: Optional[UUID] = Field(None)
    supplier_name: Optional[str] = Field(None)
    quantity_requested: float = Field(...)
    unit: str = Field(...)
    status: str = Field(...)
    date_requested: date = Field(...)
    eta: Optional[date] = Field(None)
    notes: Optional[str] = Field(None)
    first_name: Optional[str] = Field(None, description="Requester first name")
    last_name: Optional[str] = Field(None, description="Requester last name")
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class ProcurementStatusUpdate(BaseModel):
    """Move a request along Pending -> Approved -> Received."""
    status: ProcurementStatus = Field(...)


class WhatsAppNotificationRead(BaseModel):
    id: UUID = Field(...)
    procurement_request_id: Optional[UUID] = Field(None)
    supplier_id: Optional[UUID] = Field(None)
    recipient: Optional[str] = Field(None)
    message_content: str = Field(...)
    status: str = Field(..., description="sent or failed")
    delivery_status: Optional[str] = Field(None, description="Status reported by the provider")
    provider_message_id: Optional[str] = Field(None)
    error_message: Optional[str] = Field(None)
    sent_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True
