"""Booking decision gate.

Stable seam between the message pipeline and the decision engine. Callers
depend on `decide_booking` only, so engine thresholds can be tuned without
touching them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from app.services.confidence_policy import DEFAULT_POLICY, ConfidencePolicy, DecisionType, ReasonCode
from app.services.decision_engine import decide_by_confidence


class BookingAction(str, Enum):
    IGNORE = "ignore"
    ESCALATE = "escalate"
    AI_REPLY = "ai_reply"


ACTION_BY_DECISION = {
    DecisionType.IGNORE: BookingAction.IGNORE,
    DecisionType.ESCALATE_ONLY: BookingAction.ESCALATE,
    DecisionType.PROCEED: BookingAction.AI_REPLY,
}


@dataclass(frozen=True)
class BookingDecision:
    action: BookingAction
    decision: DecisionType
    reason: ReasonCode


def decide_booking(
    *,
    relevance: bool,
    relevance_confidence: float,
    intent: Optional[str],
    intent_confidence: float,
    policy: ConfidencePolicy = DEFAULT_POLICY,
) -> BookingDecision:
    """Return the gate action for one classified message.

    `relevance=False` means the classifier is confident the message is NOT
    for the business, so its confidence must not be read as relevance.
    """
    if not relevance:
        return BookingDecision(BookingAction.IGNORE, DecisionType.IGNORE, ReasonCode.NOT_RELEVANT)

    result = decide_by_confidence(relevance_confidence, intent_confidence, policy)
    return BookingDecision(ACTION_BY_DECISION[result.decision], result.decision, result.reason)
