"""Confidence thresholds and decision enums.

The thresholds are a frozen policy: changing a value is a policy change, not
a bug fix. Alternate policies exist only for tests.
"""

from dataclasses import dataclass
from enum import Enum

RELEVANCE_MIN = 0.60
INTENT_MIN_NO_ESCALATION = 0.50
INTENT_MIN_DRAFT = 0.70


class DecisionType(str, Enum):
    IGNORE = "IGNORE"  # not addressed to the business, no escalation noise
    ESCALATE_ONLY = "ESCALATE_ONLY"  # relevant, but automation must not act
    PROCEED = "PROCEED"  # confident on both axes, a draft may be generated


class ReasonCode(str, Enum):
    NOT_RELEVANT = "NOT_RELEVANT"
    LOW_RELEVANCE = "LOW_RELEVANCE"
    LOW_INTENT = "LOW_INTENT"
    MEDIUM_INTENT = "MEDIUM_INTENT"
    HIGH_CONFIDENCE = "HIGH_CONFIDENCE"
    CLASSIFICATION_UNAVAILABLE = "CLASSIFICATION_UNAVAILABLE"


@dataclass(frozen=True)
class ConfidencePolicy:
    relevance_min: float = RELEVANCE_MIN
    intent_min_no_escalation: float = INTENT_MIN_NO_ESCALATION
    intent_min_draft: float = INTENT_MIN_DRAFT

    def __post_init__(self):
        for name in ("relevance_min", "intent_min_no_escalation", "intent_min_draft"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")
        if self.intent_min_no_escalation > self.intent_min_draft:
            raise ValueError("intent_min_no_escalation must not exceed intent_min_draft")


DEFAULT_POLICY = ConfidencePolicy()
