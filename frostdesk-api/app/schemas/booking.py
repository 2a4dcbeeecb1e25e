from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.services.booking_audit_service import AuditActor
from app.services.booking_state_machine import BookingState


class BookingCreate(BaseModel):
    conversation_id: Optional[UUID] = None
    customer_name: Optional[str] = None


class BookingTransitionRequest(BaseModel):
    to_state: BookingState
    actor: AuditActor = AuditActor.HUMAN


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    conversation_id: Optional[UUID] = None
    customer_name: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    proposed_at: Optional[datetime] = None


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    previous_state: str
    new_state: str
    actor: str
    created_at: datetime


class BookingAuditResponse(BaseModel):
    booking_id: UUID
    entries: List[AuditEntryResponse]
    replayed_state: str
    consistent: bool


class LifecycleEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    actor: str
    from_state: Optional[str] = None
    to_state: Optional[str] = None
    timestamp: datetime
