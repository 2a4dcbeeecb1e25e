"""Per-message decision pipeline.

dedupe -> identity -> classify -> gate -> (escalate | eligibility -> intent -> draft -> guardrails -> quota)

Every step that can fail for an expected reason returns a value; the only
exceptions that escape are malformed dedup keys and database errors.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import is_ai_kill_switch_on
from app.database import insert_ignore_conflict
from app.logging_config import ContextLogger, get_logger
from app.models import AIDecisionSnapshot, AIDraft, Conversation, InboundEvent
from app.services.booking_decision import BookingAction, BookingDecision, decide_booking
from app.services.classifier_service import Classification, Classifier
from app.services.channel_identity_service import get_or_create_conversation_for_identity
from app.services.confidence_band import ConfidenceBand, map_to_band, requires_escalation
from app.services.confidence_policy import DEFAULT_POLICY, ConfidencePolicy, DecisionType, ReasonCode
from app.services.conversation_ai_state_service import get_ai_state
from app.services.draft_eligibility import (
    DraftEligibility,
    EligibilityReason,
    is_operative_intent,
    resolve_draft_eligibility,
)
from app.services.draft_guardrails import sanitize_draft_text
from app.services.draft_service import DraftGenerator
from app.services.ingestion_service import InboundEventIn, ingest_event
from app.services.quota_service import get_quota_status, record_quota_usage
from app.services.timeout_runner import AI_TIMEOUT, with_timeout_sync

logger = get_logger("inbound_pipeline")

CLASSIFICATION_UNAVAILABLE = BookingDecision(
    BookingAction.ESCALATE, DecisionType.ESCALATE_ONLY, ReasonCode.CLASSIFICATION_UNAVAILABLE
)


class PipelineStatus(str, Enum):
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    ESCALATED = "escalated"
    DRAFTED = "drafted"
    DRAFT_SKIPPED = "draft_skipped"


@dataclass(frozen=True)
class PipelineOutcome:
    status: PipelineStatus
    message_id: UUID
    conversation_id: Optional[UUID] = None
    decision: Optional[BookingDecision] = None
    band: Optional[ConfidenceBand] = None
    eligibility: Optional[DraftEligibility] = None
    draft_id: Optional[UUID] = None
    skip_reason: Optional[str] = None
    needs_human: bool = False


def _flag_needs_human(conversation: Conversation, reason: str) -> None:
    conversation.needs_human = True
    conversation.escalation_reason = reason


def _save_snapshot(
    db: Session,
    message_id: UUID,
    conversation: Conversation,
    classification: Optional[Classification],
    decision: BookingDecision,
    band: Optional[ConfidenceBand],
) -> AIDecisionSnapshot:
    snapshot = AIDecisionSnapshot(
        id=uuid.uuid4(),
        message_id=message_id,
        conversation_id=conversation.id,
        channel=conversation.channel,
        decision=decision.decision.value,
        reason=decision.reason.value,
        action=decision.action.value,
        intent_band=band.value if band else None,
    )
    if classification is not None:
        snapshot.relevant = classification.relevant
        snapshot.relevance_confidence = round(classification.relevance_confidence, 3)
        snapshot.relevance_reason = classification.relevance_reason.value if classification.relevance_reason else None
        snapshot.intent = classification.intent.value if classification.intent else None
        snapshot.intent_confidence = round(classification.intent_confidence, 3)
        snapshot.model = classification.model
    db.add(snapshot)
    db.flush()
    return snapshot


def _store_draft(db: Session, message_id: UUID, conversation_id: UUID, snapshot_id: UUID, text: str, model: str) -> UUID:
    draft_id = uuid.uuid4()
    inserted = insert_ignore_conflict(
        db,
        AIDraft,
        {
            "id": draft_id,
            "message_id": message_id,
            "conversation_id": conversation_id,
            "snapshot_id": snapshot_id,
            "text": text,
            "model": model,
            "created_at": datetime.now(timezone.utc),
        },
        index_elements=["message_id"],
    )
    if inserted:
        return draft_id
    return db.query(AIDraft.id).filter(AIDraft.message_id == message_id).scalar()


async def process_inbound_message(
    db: Session,
    event: InboundEventIn,
    classifier: Classifier,
    draft_generator: DraftGenerator,
    *,
    policy: ConfidencePolicy = DEFAULT_POLICY,
    language: str = "en",
) -> PipelineOutcome:
    ingest = ingest_event(db, event)
    if not ingest.inserted:
        return PipelineOutcome(PipelineStatus.DUPLICATE, ingest.id)

    message_id = ingest.id
    text = event.text or ""
    conversation = get_or_create_conversation_for_identity(db, event.channel.strip().lower(), event.sender)
    conversation.last_message_at = datetime.now(timezone.utc)
    db.get(InboundEvent, message_id).conversation_id = conversation.id
    db.flush()

    log = ContextLogger(logger, {"message_id": str(message_id), "conversation_id": str(conversation.id)})

    classified = await with_timeout_sync(classifier.classify, AI_TIMEOUT.INTENT, text)
    log.info("Timing", context={"stage": "classify", "elapsed_ms": classified.elapsed_ms, "timeout": classified.timed_out})

    classification: Optional[Classification] = classified.result if classified.ok else None
    band: Optional[ConfidenceBand] = None
    if classification is None:
        decision = CLASSIFICATION_UNAVAILABLE
        log.warning(
            "Classification unavailable",
            context={"timed_out": classified.timed_out, "error": str(classified.error) if classified.error else None},
        )
    else:
        decision = decide_booking(
            relevance=classification.relevant,
            relevance_confidence=classification.relevance_confidence,
            intent=classification.intent.value if classification.intent else None,
            intent_confidence=classification.intent_confidence,
            policy=policy,
        )
        if classification.relevant:
            band = map_to_band(classification.intent_confidence)

    snapshot = _save_snapshot(db, message_id, conversation, classification, decision, band)
    log.info(
        "Booking decision",
        context={"action": decision.action.value, "decision": decision.decision.value, "reason": decision.reason.value},
    )

    if decision.action == BookingAction.IGNORE:
        return PipelineOutcome(PipelineStatus.IGNORED, message_id, conversation.id, decision, band)

    if decision.action == BookingAction.ESCALATE:
        _flag_needs_human(conversation, decision.reason.value)
        db.flush()
        return PipelineOutcome(PipelineStatus.ESCALATED, message_id, conversation.id, decision, band, needs_human=True)

    eligibility = resolve_draft_eligibility(
        action=decision.action,
        quota=get_quota_status(db, conversation.channel),
        kill_switch=is_ai_kill_switch_on(),
        ai_state=get_ai_state(conversation),
    )

    def skipped(reason: str) -> PipelineOutcome:
        # Every message that ends without a draft is answered by a human.
        _flag_needs_human(conversation, reason)
        db.flush()
        log.info("Draft skipped", context={"reason": reason})
        return PipelineOutcome(
            PipelineStatus.DRAFT_SKIPPED,
            message_id,
            conversation.id,
            decision,
            band,
            eligibility,
            skip_reason=reason,
            needs_human=True,
        )

    if not eligibility.eligible:
        return skipped(eligibility.reason.value)
    if not is_operative_intent(classification.intent):
        return skipped("intent_non_operative")

    generated = await with_timeout_sync(draft_generator.generate, AI_TIMEOUT.DRAFT, conversation.id, text)
    log.info("Timing", context={"stage": "draft", "elapsed_ms": generated.elapsed_ms, "timeout": generated.timed_out})
    if generated.timed_out:
        return skipped("draft_timeout")
    if generated.error is not None:
        return skipped("draft_failed")
    if not generated.result.ok:
        return skipped(generated.result.error_code or "draft_failed")

    draft = generated.result.value
    guarded = sanitize_draft_text(draft.text, language)
    if guarded.blocked:
        log.info("Draft blocked by guardrails", context={"rules": [v.rule for v in guarded.violations]})
        return skipped("quality_blocked")

    # Another message may have taken the last slot while this draft was generated.
    if not record_quota_usage(db, conversation.channel):
        return skipped(EligibilityReason.QUOTA_EXCEEDED.value)

    draft_id = _store_draft(db, message_id, conversation.id, snapshot.id, guarded.safe_text, draft.model)

    needs_human = requires_escalation(band) if band else False
    if needs_human:
        _flag_needs_human(conversation, f"band_{band.value}")
    db.flush()

    log.info("Draft stored", context={"draft_id": str(draft_id), "band": band.value if band else None})
    return PipelineOutcome(
        PipelineStatus.DRAFTED,
        message_id,
        conversation.id,
        decision,
        band,
        eligibility,
        draft_id=draft_id,
        needs_human=needs_human,
    )
