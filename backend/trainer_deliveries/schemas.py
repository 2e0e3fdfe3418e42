"""Pydantic schemas for API."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Literal, Optional
from datetime import datetime
from uuid import UUID


DeliveryStatus = Literal[
    "pending", "ready", "scheduled", "out_for_delivery",
    "delivered", "confirmed", "disputed", "cancelled",
]
DeliveryMethod = Literal["in_person", "locker", "front_desk", "shipped"]


class RescheduleRequestOut(BaseModel):
    """Pending reschedule proposal (dates are null when unreadable or legacy)."""
    requested_date: Optional[datetime] = None
    reason: Optional[str] = None
    requested_at: Optional[datetime] = None


class DeliveryResponse(BaseModel):
    id: UUID
    order_id: Optional[UUID] = None
    order_item_id: Optional[UUID] = None
    trainer_id: UUID
    client_id: UUID
    product_id: Optional[UUID] = None
    product_name: str
    quantity: int
    status: DeliveryStatus
    delivery_method: DeliveryMethod
    tracking_number: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    notes: Optional[str] = None
    client_notes: Optional[str] = None
    dispute_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    reschedule_request: Optional[RescheduleRequestOut] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Request bodies. expected_version is optional everywhere: when given, a
# stale view is rejected with 409 instead of being applied.
class TransitionRequest(BaseModel):
    expected_version: Optional[int] = None


class ScheduleRequest(TransitionRequest):
    scheduled_date: str


class OutForDeliveryRequest(TransitionRequest):
    tracking_number: Optional[str] = Field(None, max_length=255)


class ReportIssueRequest(TransitionRequest):
    reason: str = Field(..., min_length=1)


class CancelRequest(TransitionRequest):
    reason: Optional[str] = None


class RescheduleProposal(TransitionRequest):
    proposed_date: str
    reason: Optional[str] = None


class RescheduleApproval(TransitionRequest):
    new_date: str


class RescheduleRejection(TransitionRequest):
    reason: Optional[str] = None


class DeliveryProductLine(BaseModel):
    product_id: Optional[UUID] = None
    order_item_id: Optional[UUID] = None
    product_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, ge=1)


class DeliveryCreate(BaseModel):
    order_id: Optional[UUID] = None
    client_id: UUID
    trainer_id: Optional[UUID] = None  # managers only
    products: list[DeliveryProductLine] = Field(..., min_length=1)
    scheduled_date: Optional[str] = None
    delivery_method: Optional[DeliveryMethod] = None


class DeliveryCreateResponse(BaseModel):
    delivery_ids: list[UUID]
