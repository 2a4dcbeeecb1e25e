import json
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.logging_config import get_logger
from app.schemas.webhook import (
    InboundMessageOutcome,
    StripeEvent,
    StripeWebhookResponse,
    WhatsAppWebhookPayload,
    WhatsAppWebhookResponse,
)
from app.services.inbound_pipeline import PipelineOutcome, process_inbound_message
from app.services.ingestion_service import InboundEventIn
from app.services.payment_service import handle_stripe_event, verify_stripe_signature

logger = get_logger("webhook")

router = APIRouter()

WHATSAPP_CHANNEL = "whatsapp"


def _to_response(external_id: str, outcome: PipelineOutcome) -> InboundMessageOutcome:
    decision = outcome.decision
    return InboundMessageOutcome(
        external_id=external_id,
        status=outcome.status.value,
        message_id=outcome.message_id,
        conversation_id=outcome.conversation_id,
        action=decision.action.value if decision else None,
        reason=decision.reason.value if decision else None,
        band=outcome.band.value if outcome.band else None,
        draft_id=outcome.draft_id,
        skip_reason=outcome.skip_reason,
        needs_human=outcome.needs_human,
    )


@router.get("/webhook/whatsapp")
async def verify_whatsapp_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Meta subscription handshake: echo the challenge when the token matches."""
    expected = settings.meta_whatsapp_verify_token
    if mode != "subscribe" or not expected or verify_token != expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")
    return PlainTextResponse(challenge or "")


@router.post("/webhook/whatsapp", response_model=WhatsAppWebhookResponse)
async def handle_whatsapp_webhook(
    payload: WhatsAppWebhookPayload,
    request: Request,
    db: Session = Depends(get_db),
):
    """Run every inbound text message through the decision pipeline.

    Each message is committed on its own so a replayed batch only redoes
    the messages that were not stored yet.
    """
    processed: list[InboundMessageOutcome] = []
    skipped = 0

    for message in payload.iter_messages():
        text = message.text.body if message.text else None
        if message.type != "text" or not (text or "").strip():
            skipped += 1
            continue
        if not (message.from_ or "").strip():
            logger.warning("WhatsApp message without sender", extra={"context": {"external_id": message.id}})
            skipped += 1
            continue

        event = InboundEventIn(
            channel=WHATSAPP_CHANNEL,
            external_id=message.id,
            kind="message",
            sender=message.from_,
            text=text,
            payload=message.model_dump(by_alias=True),
        )
        outcome = await process_inbound_message(
            db,
            event,
            request.app.state.classifier,
            request.app.state.draft_generator,
        )
        db.commit()
        processed.append(_to_response(message.id, outcome))

    logger.info(
        "WhatsApp webhook processed",
        extra={"context": {"processed": len(processed), "skipped": skipped}},
    )
    return WhatsAppWebhookResponse(success=True, processed=processed, skipped=skipped)


@router.post("/webhook/stripe", response_model=StripeWebhookResponse)
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    body = await request.body()

    secret = settings.stripe_webhook_secret
    if secret:
        try:
            verify_stripe_signature(
                body,
                request.headers.get("Stripe-Signature"),
                secret,
                settings.stripe_signature_tolerance_seconds,
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as exc:
            logger.warning("Stripe signature rejected", extra={"context": {"error": str(exc)}})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Stripe signature")

    try:
        raw_event = json.loads(body or b"{}")
        StripeEvent.model_validate(raw_event)
    except (ValueError, ValidationError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Stripe event")

    outcome = handle_stripe_event(db, raw_event)
    db.commit()

    return StripeWebhookResponse(
        received=True,
        duplicate=not outcome.ingest.inserted,
        handled=outcome.handled,
        booking_id=outcome.booking_id,
        booking_status=outcome.booking_status,
        detail=outcome.detail,
    )
