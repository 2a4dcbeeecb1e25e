"""Quality guardrails applied to every AI draft before it is stored.

Drafts must stay short and must not commit the instructor to anything or
invent dates, times or prices. Pure and deterministic.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

DISCLAIMER = "Suggested reply for human review."
MAX_SENTENCES = 2

SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")

# No "may": it is also a modal verb.
_MONTHS_EN = "january|february|march|april|june|july|august|september|october|november|december"
_MONTHS_IT = "gennaio|febbraio|marzo|aprile|maggio|giugno|luglio|agosto|settembre|ottobre|novembre|dicembre"

# rule -> (reason, patterns by language)
BLOCKING_RULES = {
    "NO_COMMITMENT": (
        "Draft contains commitment language (confirmation, availability, price, booking)",
        {
            "en": (
                re.compile(r"i\s+confirm|confirmed|is\s+available|available|the\s+price|price\s+is|booked", re.I),
                re.compile(r"can\s+confirm|can\s+book|can\s+guarantee", re.I),
            ),
            "it": (
                re.compile(r"ti\s+confermo|confermo|disponibile|il\s+prezzo|prezzo\s+è|prenotato|confermato", re.I),
                re.compile(r"posso\s+confermare|posso\s+prenotare|posso\s+garantire", re.I),
            ),
        },
    ),
    "NO_ASSUMPTIONS_DATE": (
        "Draft contains a specific date",
        {
            "en": (
                re.compile(
                    rf"\b(tomorrow|monday|tuesday|wednesday|thursday|friday|saturday|sunday|{_MONTHS_EN})\b", re.I
                ),
            ),
            "it": (re.compile(rf"\b(domani|dopodomani|(lun|mar|mer|gio|ven)edì|sabato|domenica|{_MONTHS_IT})\b", re.I),),
        },
    ),
    "NO_ASSUMPTIONS_TIME": (
        "Draft contains a specific time",
        {
            "en": (re.compile(r"\b(at|from)\s+\d{1,2}\b", re.I), re.compile(r"\d{1,2}:\d{2}")),
            "it": (re.compile(r"\b(alle|dalle)\s+\d{1,2}\b", re.I), re.compile(r"\d{1,2}:\d{2}")),
        },
    ),
    "TONE_CHECK": (
        "Draft uses assertive tone instead of a suggestion",
        {
            "en": (
                re.compile(r"you\s+can\s+book|you\s+can\s+confirm|you\s+must\s+book|you\s+must\s+do", re.I),
                re.compile(r"it\s+is\s+(done|ready|available|confirmed)", re.I),
            ),
            "it": (
                re.compile(r"puoi\s+prenotare|puoi\s+confermare|devi\s+prenotare|devi\s+fare", re.I),
                re.compile(r"è\s+(fatto|pronto|disponibile|confermato)", re.I),
            ),
        },
    ),
    "NO_ASSUMPTIONS_PRICE": (
        "Draft contains a specific price",
        {
            "en": (re.compile(r"\d+\s*(euro|dollars?|€|\$)|price\s+is\s+\d+|costs?\s+\d+", re.I),),
            "it": (re.compile(r"\d+\s*(euro|€)|prezzo\s+è\s+\d+|costa\s+\d+", re.I),),
        },
    ),
}


@dataclass(frozen=True)
class DraftViolation:
    rule: str
    reason: str
    severity: str  # blocking, warning


@dataclass(frozen=True)
class GuardrailResult:
    safe_text: Optional[str]
    violations: list[DraftViolation] = field(default_factory=list)
    was_truncated: bool = False

    @property
    def blocked(self) -> bool:
        return self.safe_text is None


def sanitize_draft_text(raw: str, language: str = "en") -> GuardrailResult:
    patterns_key = "it" if (language or "").lower().startswith("it") else "en"
    text = (raw or "").strip()
    violations: list[DraftViolation] = []
    was_truncated = False

    sentences = [part for part in SENTENCE_SPLIT.split(text) if part]
    if len(sentences) > MAX_SENTENCES:
        text = " ".join(sentences[:MAX_SENTENCES]).strip()
        was_truncated = True
        violations.append(DraftViolation("MAX_SENTENCES", f"Draft truncated to {MAX_SENTENCES} sentences", "warning"))

    for rule, (reason, patterns_by_language) in BLOCKING_RULES.items():
        if any(pattern.search(text) for pattern in patterns_by_language[patterns_key]):
            violations.append(DraftViolation(rule, reason, "blocking"))

    if any(v.severity == "blocking" for v in violations):
        return GuardrailResult(None, violations, was_truncated)

    if not text:
        return GuardrailResult(None, [*violations, DraftViolation("EMPTY", "Draft is empty", "blocking")], was_truncated)

    if DISCLAIMER.lower() not in text.lower():
        text = f"{DISCLAIMER}\n\n{text}"
        violations.append(DraftViolation("MANDATORY_DISCLAIMER", "Disclaimer added automatically", "warning"))

    return GuardrailResult(text, violations, was_truncated)


def strip_disclaimer(text: str) -> str:
    """Remove the review disclaimer before a draft goes to the customer."""
    stripped = (text or "").strip()
    if stripped.lower().startswith(DISCLAIMER.lower()):
        stripped = stripped[len(DISCLAIMER) :].strip()
    return stripped
