from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.logging_config import get_logger
from app.schemas.booking import (
    AuditEntryResponse,
    BookingAuditResponse,
    BookingCreate,
    BookingResponse,
    BookingTransitionRequest,
    LifecycleEventResponse,
)
from app.services.booking_audit_service import get_booking_lifecycle, list_for_booking, replay_state
from app.services.booking_service import apply_expiry_on_read, create_booking, get_booking, transition_booking
from app.services.errors import AuditChainBrokenError

logger = get_logger("bookings")

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create(data: BookingCreate, db: Session = Depends(get_db)):
    booking = create_booking(db, conversation_id=data.conversation_id, customer_name=data.customer_name)
    db.commit()
    return booking


@router.get("/{booking_id}", response_model=BookingResponse)
def read(booking_id: UUID, db: Session = Depends(get_db)):
    """Read a booking. A stale proposal is expired as part of the read."""
    booking = apply_expiry_on_read(db, get_booking(db, booking_id))
    db.commit()
    return booking


@router.post("/{booking_id}/transition", response_model=BookingResponse)
def transition(booking_id: UUID, data: BookingTransitionRequest, db: Session = Depends(get_db)):
    booking = apply_expiry_on_read(db, get_booking(db, booking_id))
    db.commit()
    booking = transition_booking(db, booking.id, data.to_state, data.actor)
    db.commit()
    return booking


@router.get("/{booking_id}/audit", response_model=BookingAuditResponse)
def audit(booking_id: UUID, db: Session = Depends(get_db)):
    booking = get_booking(db, booking_id)
    entries = list_for_booking(db, booking_id)
    try:
        replayed = replay_state(entries).value
    except AuditChainBrokenError as exc:
        logger.error("Audit chain broken", extra={"context": {"booking_id": str(booking_id), "error": exc.message}})
        replayed = None
    return BookingAuditResponse(
        booking_id=booking_id,
        entries=[AuditEntryResponse.model_validate(entry) for entry in entries],
        replayed_state=replayed or "unknown",
        consistent=replayed == booking.status,
    )


@router.get("/{booking_id}/lifecycle", response_model=list[LifecycleEventResponse])
def lifecycle(booking_id: UUID, db: Session = Depends(get_db)):
    return [LifecycleEventResponse.model_validate(event) for event in get_booking_lifecycle(db, booking_id)]
