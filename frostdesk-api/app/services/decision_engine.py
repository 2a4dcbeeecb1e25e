from dataclasses import dataclass

from app.services.confidence_band import clamp_score
from app.services.confidence_policy import DEFAULT_POLICY, ConfidencePolicy, DecisionType, ReasonCode


@dataclass(frozen=True)
class ConfidenceDecision:
    decision: DecisionType
    reason: ReasonCode


def decide_by_confidence(
    relevance_confidence: float,
    intent_confidence: float,
    policy: ConfidencePolicy = DEFAULT_POLICY,
) -> ConfidenceDecision:
    """Map a (relevance, intent) confidence pair to a decision.

    This is the only place the thresholds are compared. The branch order is
    part of the contract:

        relevance < relevance_min            -> IGNORE / LOW_RELEVANCE
        intent < intent_min_no_escalation    -> ESCALATE_ONLY / LOW_INTENT
        intent < intent_min_draft            -> ESCALATE_ONLY / MEDIUM_INTENT
        otherwise                            -> PROCEED / HIGH_CONFIDENCE

    Lower bounds are inclusive.
    """
    relevance = clamp_score(relevance_confidence)
    intent = clamp_score(intent_confidence)

    if relevance < policy.relevance_min:
        return ConfidenceDecision(DecisionType.IGNORE, ReasonCode.LOW_RELEVANCE)

    if intent < policy.intent_min_no_escalation:
        return ConfidenceDecision(DecisionType.ESCALATE_ONLY, ReasonCode.LOW_INTENT)

    if intent < policy.intent_min_draft:
        return ConfidenceDecision(DecisionType.ESCALATE_ONLY, ReasonCode.MEDIUM_INTENT)

    return ConfidenceDecision(DecisionType.PROCEED, ReasonCode.HIGH_CONFIDENCE)
