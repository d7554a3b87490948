from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

Priority = Literal["low", "medium", "high", "urgent"]
WorkerStatus = Literal["Active", "On Leave"]
OrderStatus = Literal["pending", "in_progress", "completed", "cancelled"]


class WorkerRead(BaseModel):
    id: UUID = Field(..., description="Worker ID")
    name: str = Field(...)
    contact_number: Optional[str] = Field(None)
    role: Optional[str] = Field(None, description="Specialisation, e.g. Jhalai")
    status: str = Field(...)
    joined_date: Optional[date] = Field(None)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class WorkerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_number: Optional[str] = Field(None)
    role: Optional[str] = Field(None)
    status: WorkerStatus = Field("Active")
    joined_date: Optional[date] = Field(None)
    notes: Optional[str] = Field(None)


class WorkerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    contact_number: Optional[str] = Field(None)
    role: Optional[str] = Field(None)
    status: Optional[WorkerStatus] = Field(None)
    joined_date: Optional[date] = Field(None)
    notes: Optional[str] = Field(None)


class ManufacturingOrderCreate(BaseModel):
    """Create manufacturing order payload."""
    product_config_id: UUID = Field(...)
    quantity_required: int = Field(..., gt=0)
    priority: Priority = Field("medium")
    due_date: Optional[date] = Field(None)
    special_instructions: Optional[str] = Field(None)
    weight: Optional[float] = Field(None, gt=0, description="Metal weight issued with the first card")
    parent_order_id: Optional[UUID] = Field(None, description="Order being reworked")
    rework_source_step_id: Optional[UUID] = Field(None)
    rework_reason: Optional[str] = Field(None)


class ManufacturingOrderUpdate(BaseModel):
    priority: Optional[Priority] = Field(None)
    status: Optional[OrderStatus] = Field(None)
    due_date: Optional[date] = Field(None)
    special_instructions: Optional[str] = Field(None)


class ManufacturingOrderRead(BaseModel):
    id: UUID = Field(...)
    order_number: str = Field(..., description="MO000001 style number")
    product_config_id: UUID = Field(...)
    product_name: str = Field(...)
    quantity_required: int = Field(...)
    priority: str = Field(...)
    status: str = Field(...)
    due_date: Optional[date] = Field(None)
    special_instructions: Optional[str] = Field(None)
    started_at: Optional[datetime] = Field(None)
    completed_at: Optional[datetime] = Field(None)
    parent_order_id: Optional[UUID] = Field(None)
    rework_reason: Optional[str] = Field(None)
    rework_quantity: Optional[int] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class StepRead(BaseModel):
    """Kanban card."""
    id: UUID = Field(...)
    order_id: UUID = Field(...)
    order_number: Optional[str] = Field(None)
    product_name: Optional[str] = Field(None)
    step_name: str = Field(..., description="Stage the card sits in")
    instance_number: int = Field(...)
    parent_instance_id: Optional[UUID] = Field(None)
    status: str = Field(...)
    assigned_worker_id: Optional[UUID] = Field(None)
    worker_name: Optional[str] = Field(None)
    quantity_assigned: int = Field(...)
    quantity_received: Optional[int] = Field(None)
    weight_assigned: Optional[float] = Field(None)
    weight_received: Optional[float] = Field(None)
    remaining_quantity: Optional[int] = Field(None, description="Pieces not yet handed on")
    remaining_weight: Optional[float] = Field(None)
    purity: Optional[float] = Field(None)
    wastage: Optional[float] = Field(None)
    due_date: Optional[date] = Field(None)
    started_at: Optional[datetime] = Field(None)
    completed_at: Optional[datetime] = Field(None)
    is_rework: bool = Field(False)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class Assignment(BaseModel):
    """Worker assignment for a worker stage."""
    worker_id: UUID = Field(...)
    quantity: Optional[int] = Field(None, gt=0, description="Defaults to the card's remaining quantity")
    weight: Optional[float] = Field(None, gt=0, description="Weight issued to the worker")
    due_date: Optional[date] = Field(None)
    purity: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None)


class MoveRequest(BaseModel):
    """Move a card to the next stage."""
    target_stage: str = Field(..., description="Stage directly after the card's stage")
    assignment: Optional[Assignment] = Field(None, description="Required for worker stages")
    quantity: Optional[int] = Field(None, gt=0, description="Pieces to move when no assignment is given")
    quantity_received: Optional[int] = Field(None, ge=0, description="Pieces handed back for the source card")
    weight_received: Optional[float] = Field(None, ge=0, description="Weight handed back for the source card")
    wastage: Optional[float] = Field(None, ge=0)


class ChildTaskRequest(BaseModel):
    """Split part of a card into a new card at the same stage."""
    quantity: int = Field(..., gt=0)
    worker_id: Optional[UUID] = Field(None)
    weight: Optional[float] = Field(None, gt=0)
    notes: Optional[str] = Field(None)


class MoveResult(BaseModel):
    source: StepRead
    created: StepRead
    order_status: str = Field(..., description="Manufacturing order status after the move")


class BoardColumn(BaseModel):
    stage: str = Field(...)
    label: str = Field(...)
    count: int = Field(...)
    cards: List[StepRead] = Field(default_factory=list)


class BoardRead(BaseModel):
    columns: List[BoardColumn] = Field(default_factory=list, description="Stages in sequence order")
    totals: Dict[str, int] = Field(default_factory=dict, description="Card count per stage")


class StepHistoryEntry(BaseModel):
    step: StepRead
    loss_percent: Optional[float] = Field(None, description="Weight loss from the previous stage, one decimal")

