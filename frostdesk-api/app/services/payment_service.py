from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import stripe
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.services.booking_audit_service import AuditActor
from app.services.booking_service import apply_expiry_on_read, get_booking, transition_booking
from app.services.booking_state_machine import BookingState
from app.services.errors import BookingNotFoundError, InvalidTransitionError, TransitionConflictError
from app.services.ingestion_service import InboundEventIn, IngestResult, ingest_event

logger = get_logger("payment_service")

STRIPE_CHANNEL = "stripe"
CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class PaymentEventOutcome:
    ingest: IngestResult
    handled: bool
    booking_id: Optional[UUID] = None
    booking_status: Optional[str] = None
    detail: Optional[str] = None


def verify_stripe_signature(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance_seconds: int = 300,
) -> None:
    """Check a `Stripe-Signature` header against the raw body.

    Raises:
        stripe.SignatureVerificationError: missing, stale or mismatched signature
    """
    body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    stripe.WebhookSignature.verify_header(body, signature_header or "", secret, tolerance_seconds)


def _booking_id_from_event(event: dict) -> Optional[UUID]:
    session = (event.get("data") or {}).get("object") or {}
    raw = (session.get("metadata") or {}).get("booking_id")
    if not raw:
        return None
    try:
        return UUID(str(raw))
    except ValueError:
        return None


def handle_stripe_event(db: Session, event: dict) -> PaymentEventOutcome:
    """Consume a Stripe webhook delivery once per event id.

    A completed checkout confirms the booking named in the session metadata.
    Events that cannot be applied are acknowledged and logged so the
    provider does not keep retrying them.
    """
    ingest = ingest_event(
        db,
        InboundEventIn(
            channel=STRIPE_CHANNEL,
            external_id=event.get("id"),
            kind="webhook",
            payload=event,
        ),
    )
    if not ingest.inserted:
        return PaymentEventOutcome(ingest, handled=False, detail="duplicate")

    event_type = event.get("type")
    if event_type != CHECKOUT_COMPLETED:
        return PaymentEventOutcome(ingest, handled=False, detail=f"ignored {event_type}")

    booking_id = _booking_id_from_event(event)
    if booking_id is None:
        logger.warning("Checkout completed without booking_id", extra={"context": {"event_id": event.get("id")}})
        return PaymentEventOutcome(ingest, handled=False, detail="missing booking_id")

    context = {"event_id": event.get("id"), "booking_id": str(booking_id)}
    try:
        booking = apply_expiry_on_read(db, get_booking(db, booking_id))
        booking = transition_booking(db, booking.id, BookingState.CONFIRMED, AuditActor.SYSTEM)
    except BookingNotFoundError:
        logger.warning("Payment for unknown booking", extra={"context": context})
        return PaymentEventOutcome(ingest, handled=False, booking_id=booking_id, detail="booking not found")
    except (InvalidTransitionError, TransitionConflictError) as exc:
        current = get_booking(db, booking_id).status
        logger.warning(
            "Payment could not confirm booking",
            extra={"context": {**context, "status": current, "error": exc.message}},
        )
        return PaymentEventOutcome(
            ingest, handled=False, booking_id=booking_id, booking_status=current, detail=exc.message
        )

    return PaymentEventOutcome(ingest, handled=True, booking_id=booking_id, booking_status=booking.status)
