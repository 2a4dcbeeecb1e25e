"""Append-only ledger of booking transitions.

There is intentionally no update or delete function here.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import Booking, BookingAuditEntry
from app.services.booking_state_machine import INITIAL_STATE, BookingState
from app.services.errors import AuditChainBrokenError, AuditWriteError, BookingNotFoundError

logger = get_logger("booking_audit")


class AuditActor(str, Enum):
    SYSTEM = "system"
    HUMAN = "human"


@dataclass(frozen=True)
class LifecycleEvent:
    type: str  # booking_created, manual_override, status_transition
    actor: str
    from_state: Optional[str]
    to_state: Optional[str]
    timestamp: datetime


def record_transition(
    db: Session,
    booking_id: UUID,
    previous_state: BookingState,
    new_state: BookingState,
    actor: AuditActor,
) -> None:
    """Append one audit entry. Must only be called after the state machine approved the edge.

    Raises AuditWriteError on any persistence failure.
    """
    entry = BookingAuditEntry(
        booking_id=booking_id,
        previous_state=BookingState(previous_state).value,
        new_state=BookingState(new_state).value,
        actor=AuditActor(actor).value,
        created_at=datetime.now(timezone.utc),
    )
    try:
        db.add(entry)
        db.flush()
    except SQLAlchemyError as exc:
        raise AuditWriteError(booking_id, exc) from exc


def list_for_booking(db: Session, booking_id: UUID) -> list[BookingAuditEntry]:
    return (
        db.query(BookingAuditEntry)
        .filter(BookingAuditEntry.booking_id == booking_id)
        .order_by(BookingAuditEntry.created_at.asc(), BookingAuditEntry.id.asc())
        .all()
    )


def replay_state(entries: Iterable[BookingAuditEntry]) -> BookingState:
    """Fold ordered audit entries starting from `draft`.

    Every entry must start where the previous one ended.
    """
    state = INITIAL_STATE
    for position, entry in enumerate(entries):
        previous = BookingState(entry.previous_state)
        if previous != state:
            raise AuditChainBrokenError(position, state, previous)
        state = BookingState(entry.new_state)
    return state


def get_booking_lifecycle(db: Session, booking_id: UUID) -> list[LifecycleEvent]:
    """Creation event followed by every audited transition, oldest first."""
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFoundError(booking_id)

    events = [
        LifecycleEvent(
            type="booking_created",
            actor=AuditActor.SYSTEM.value,
            from_state=None,
            to_state=INITIAL_STATE.value,
            timestamp=booking.created_at,
        )
    ]
    for entry in list_for_booking(db, booking_id):
        event_type = "manual_override" if entry.actor == AuditActor.HUMAN.value else "status_transition"
        events.append(
            LifecycleEvent(
                type=event_type,
                actor=entry.actor,
                from_state=entry.previous_state,
                to_state=entry.new_state,
                timestamp=entry.created_at,
            )
        )
    return events
