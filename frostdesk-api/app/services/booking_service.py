from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.config import settings
from app.logging_config import get_logger
from app.models import Booking
from app.services.alert_service import alert_critical
from app.services.booking_audit_service import AuditActor, record_transition
from app.services.booking_state_machine import (
    BOOKING_STATE_MACHINE,
    INITIAL_STATE,
    BookingState,
    BookingStateMachine,
)
from app.services.errors import AuditWriteError, BookingNotFoundError, TransitionConflictError

logger = get_logger("booking_service")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def create_booking(
    db: Session,
    *,
    conversation_id: Optional[UUID] = None,
    customer_name: Optional[str] = None,
) -> Booking:
    now = datetime.now(timezone.utc)
    booking = Booking(
        conversation_id=conversation_id,
        customer_name=customer_name,
        status=INITIAL_STATE.value,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    db.flush()
    logger.info(f"Created booking {booking.id}")
    return booking


def get_booking(db: Session, booking_id: UUID) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)
    return booking


def transition_booking(
    db: Session,
    booking_id: UUID,
    next_state: BookingState,
    actor: AuditActor,
    *,
    state_machine: BookingStateMachine = BOOKING_STATE_MACHINE,
) -> Booking:
    """Move a booking to `next_state` and append its audit entry in one operation.

    Raises:
        BookingNotFoundError: unknown booking
        InvalidTransitionError: edge not in the whitelist
        TransitionConflictError: the row changed state concurrently; do not retry blindly
        AuditWriteError: state was written but the audit entry was not. The
            caller must roll back instead of committing.
    """
    booking = get_booking(db, booking_id)
    current = BookingState(booking.status)
    next_state = state_machine.transition(current, BookingState(next_state))

    now = datetime.now(timezone.utc)
    values = {"status": next_state.value, "updated_at": now}
    if next_state == BookingState.PROPOSED:
        values["proposed_at"] = now

    result = db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == current.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.warning(
            "Booking transition lost a race",
            extra={"context": {"booking_id": str(booking_id), "from": current.value, "to": next_state.value}},
        )
        raise TransitionConflictError(booking_id, current, next_state)

    try:
        record_transition(db, booking_id, current, next_state, actor)
    except AuditWriteError as exc:
        logger.error(
            "Audit write failed after state change",
            extra={"context": {"booking_id": str(booking_id), "from": current.value, "to": next_state.value}},
        )
        alert_critical(
            "Booking audit write failed",
            {"booking_id": str(booking_id), "from": current.value, "to": next_state.value, "error": str(exc.cause)},
        )
        raise

    db.refresh(booking)
    logger.info(
        "Booking transitioned",
        extra={
            "context": {
                "booking_id": str(booking_id),
                "from": current.value,
                "to": next_state.value,
                "actor": AuditActor(actor).value,
            }
        },
    )
    return booking


def is_proposal_expired(booking: Booking, now: Optional[datetime] = None, ttl_hours: Optional[int] = None) -> bool:
    if booking.status != BookingState.PROPOSED.value:
        return False
    ttl_hours = settings.booking_proposal_ttl_hours if ttl_hours is None else ttl_hours
    now = now or datetime.now(timezone.utc)
    proposed_at = _as_utc(booking.proposed_at or booking.created_at)
    return proposed_at < now - timedelta(hours=ttl_hours)


def apply_expiry_on_read(
    db: Session,
    booking: Booking,
    *,
    now: Optional[datetime] = None,
    ttl_hours: Optional[int] = None,
) -> Booking:
    """Expire a stale proposal when it is touched; other bookings pass through."""
    if not is_proposal_expired(booking, now, ttl_hours):
        return booking
    try:
        return transition_booking(db, booking.id, BookingState.EXPIRED, AuditActor.SYSTEM)
    except TransitionConflictError:
        db.refresh(booking)
        return booking


def expire_stale_proposals(
    db: Session,
    *,
    now: Optional[datetime] = None,
    ttl_hours: Optional[int] = None,
) -> list[UUID]:
    """Sweep every stale proposal to `expired`. Returns the ids that were expired."""
    now = now or datetime.now(timezone.utc)
    candidates = db.query(Booking).filter(Booking.status == BookingState.PROPOSED.value).all()

    expired: list[UUID] = []
    for booking in candidates:
        if not is_proposal_expired(booking, now, ttl_hours):
            continue
        try:
            transition_booking(db, booking.id, BookingState.EXPIRED, AuditActor.SYSTEM)
        except TransitionConflictError:
            continue
        expired.append(booking.id)

    if expired:
        logger.info(
            "Expired stale proposals",
            extra={"context": {"count": len(expired), "booking_ids": [str(b) for b in expired]}},
        )
    return expired
