import math
from enum import Enum


class ConfidenceBand(str, Enum):
    A_CERTAIN = "A_CERTAIN"
    B_HIGH = "B_HIGH"
    C_MEDIUM = "C_MEDIUM"
    D_LOW = "D_LOW"
    E_UNKNOWN = "E_UNKNOWN"


# Inclusive lower bounds, highest certainty first.
BAND_THRESHOLDS = (
    (0.92, ConfidenceBand.A_CERTAIN),
    (0.82, ConfidenceBand.B_HIGH),
    (0.68, ConfidenceBand.C_MEDIUM),
    (0.50, ConfidenceBand.D_LOW),
)

DRAFT_BANDS = frozenset({ConfidenceBand.A_CERTAIN, ConfidenceBand.B_HIGH, ConfidenceBand.C_MEDIUM})
# C_MEDIUM is in both sets: a draft is shown and a human still reviews it.
ESCALATION_BANDS = frozenset({ConfidenceBand.C_MEDIUM, ConfidenceBand.D_LOW, ConfidenceBand.E_UNKNOWN})


def clamp_score(score: float) -> float:
    """Clamp to [0, 1]. NaN counts as no confidence at all."""
    if score is None or math.isnan(score):
        return 0.0
    return min(1.0, max(0.0, float(score)))


def map_to_band(score: float) -> ConfidenceBand:
    clamped = clamp_score(score)
    for lower_bound, band in BAND_THRESHOLDS:
        if clamped >= lower_bound:
            return band
    return ConfidenceBand.E_UNKNOWN


def allows_draft(band: ConfidenceBand) -> bool:
    return band in DRAFT_BANDS


def requires_escalation(band: ConfidenceBand) -> bool:
    return band in ESCALATION_BANDS
