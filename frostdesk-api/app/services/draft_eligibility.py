from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.services.booking_decision import BookingAction
from app.services.classifier_service import BookingIntent
from app.services.conversation_ai_state_service import AIState, can_ai_suggest
from app.services.quota_service import QuotaStatus

# Intents a draft can move forward; cancellations always go to the instructor.
OPERATIVE_INTENTS = frozenset({BookingIntent.NEW_BOOKING, BookingIntent.RESCHEDULE, BookingIntent.INFO_REQUEST})


class EligibilityReason(str, Enum):
    OK = "ok"
    AI_DISABLED = "ai_disabled"
    AI_PAUSED = "ai_paused_by_human"
    GATE_DENIED = "gate_denied"
    NOT_CONFIGURED = "not_configured"
    QUOTA_EXCEEDED = "quota_exceeded"


@dataclass(frozen=True)
class DraftEligibility:
    eligible: bool
    reason: EligibilityReason


def is_operative_intent(intent: Optional[BookingIntent]) -> bool:
    return intent in OPERATIVE_INTENTS


def resolve_draft_eligibility(
    *,
    action: BookingAction,
    quota: Optional[QuotaStatus],
    kill_switch: bool,
    ai_state: AIState = AIState.AI_ON,
) -> DraftEligibility:
    """Decide whether a draft may be generated for this message.

    Checked in order, first block wins: kill switch, conversation AI state,
    gate action, quota. A missing quota row blocks as `not_configured`.
    """
    if kill_switch:
        return DraftEligibility(False, EligibilityReason.AI_DISABLED)

    if not can_ai_suggest(ai_state):
        return DraftEligibility(False, EligibilityReason.AI_PAUSED)

    if action != BookingAction.AI_REPLY:
        return DraftEligibility(False, EligibilityReason.GATE_DENIED)

    if quota is None:
        return DraftEligibility(False, EligibilityReason.NOT_CONFIGURED)

    if quota.exceeded:
        return DraftEligibility(False, EligibilityReason.QUOTA_EXCEEDED)

    return DraftEligibility(True, EligibilityReason.OK)
