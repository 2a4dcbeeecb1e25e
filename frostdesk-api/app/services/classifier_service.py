import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from app.logging_config import get_logger
from app.services.confidence_band import clamp_score
from app.services.llm import LLMProvider

logger = get_logger("classifier_service")

KEYWORD_MODEL = "keyword-v1"


class BookingIntent(str, Enum):
    NEW_BOOKING = "NEW_BOOKING"
    RESCHEDULE = "RESCHEDULE"
    CANCEL = "CANCEL"
    INFO_REQUEST = "INFO_REQUEST"


class RelevanceReason(str, Enum):
    OUT_OF_DOMAIN = "OUT_OF_DOMAIN"
    SMALL_TALK = "SMALL_TALK"
    SPAM = "SPAM"


@dataclass(frozen=True)
class Classification:
    relevant: bool
    relevance_confidence: float
    intent: Optional[BookingIntent]
    intent_confidence: float
    model: str
    relevance_reason: Optional[RelevanceReason] = None


class Classifier(Protocol):
    def classify(self, text: str, context: Optional[dict] = None) -> Classification: ...


class ClassificationParseError(ValueError):
    pass


SMALL_TALK_PATTERNS = (
    re.compile(r"^(hi|hello|hey|ciao|salve|buongiorno|buonasera)$"),
    re.compile(r"^(thanks|thank you|grazie|grazie mille)$"),
    re.compile(r"^(ok|okay|va bene|perfetto|bene)$"),
    re.compile(r"^(how are you|come stai|come va)$"),
    re.compile(r"^(what's up|cosa succede)$"),
    re.compile(r"^(bye|goodbye|arrivederci)$"),
)

SPAM_PATTERNS = (
    re.compile(r"\b(free|gratis|win|vinci|prize|premio|click here|clicca qui)\b"),
    re.compile(r"\b(urgent|urgente|limited time|tempo limitato)\b"),
)

RELEVANT_KEYWORDS = (
    "prenot", "booking", "reserv", "lesson", "lezione", "corso", "course",
    "sci", "ski", "snowboard", "instructor", "istruttore", "maestro",
    "schedule", "orario", "disponibil", "availability",
    "price", "prezzo", "cost", "costo",
    "cancel", "cancella", "annulla",
    "change", "cambia", "modifica", "reschedule",
    "info", "informazioni", "information",
    "when", "quando", "where", "dove",
    "how much", "quanto costa",
)  # fmt: skip

# (intent, base confidence, patterns); first strictly higher confidence wins.
INTENT_PATTERNS = (
    (
        BookingIntent.CANCEL,
        0.85,
        (
            re.compile(r"(cancel|annulla|disdici|rimuovi|elimina).*(prenot|booking|lesson|lezione)"),
            re.compile(r"(non voglio|non posso|non riesco).*(prenot|booking|lesson|lezione)"),
            re.compile(r"(rinuncia|rinuncio)"),
        ),
    ),
    (
        BookingIntent.RESCHEDULE,
        0.85,
        (
            re.compile(r"(cambia|change|modifica|sposta|posticipa|anticipa).*(prenot|booking|lesson|lezione|data|orario)"),
            re.compile(r"(reschedule|riprogramma)"),
            re.compile(r"(altro giorno|altra data|altro orario)"),
            re.compile(r"(move|postpone|bring forward|push back).*(lesson|booking|session|class|appointment)"),
        ),
    ),
    (
        BookingIntent.NEW_BOOKING,
        0.8,
        (
            re.compile(r"(voglio|vorrei|posso|puoi).*(prenot|booking|lesson|lezione)"),
            re.compile(r"(prenota|prenotare|prenotazione|booking)"),
            re.compile(r"(disponibil|availability|libero|free).*(giorno|day|data|date)"),
            re.compile(r"(want|would like|i'd like|like to).*(lesson|booking|session|class)"),
            re.compile(r"(book|reserve).*(lesson|session|class|instructor)"),
            re.compile(r"\b(private|group)\s+(ski|snowboard)?\s*(lesson|session|class)\b"),
        ),
    ),
    (
        BookingIntent.INFO_REQUEST,
        0.75,
        (
            re.compile(r"(quanto costa|how much|prezzo|price|tariffa|rates?|pricing|fee)"),
            re.compile(r"(info|informazioni|information|dettagli|details)"),
            re.compile(r"(cosa|what).*(offri|offer|servizi|services)"),
            re.compile(r"(dove|where).*(sei|are you|location|posizione)"),
            re.compile(r"(come|how).*(funziona|works|prenotare|book)"),
        ),
    ),
)

BOOKING_FALLBACK = re.compile(r"(prenot|booking|lesson|lezione|session|class)")
INFO_FALLBACK = re.compile(r"(rate|price|cost|info|how much|quanto)")


def normalize_for_matching(text: str) -> str:
    """Casefold, collapse whitespace and trim surrounding punctuation ("Thanks!" -> "thanks")."""
    normalized = re.sub(r"\s+", " ", (text or "").strip().casefold())
    return re.sub(r"^[^\w]+|[^\w]+$", "", normalized)


class KeywordClassifier:
    """Deterministic classifier used in pilot mode and as the test double."""

    model = KEYWORD_MODEL

    def classify(self, text: str, context: Optional[dict] = None) -> Classification:
        normalized = normalize_for_matching(text)

        if any(pattern.search(normalized) for pattern in SMALL_TALK_PATTERNS):
            return self._not_relevant(0.95, RelevanceReason.SMALL_TALK)
        if any(pattern.search(normalized) for pattern in SPAM_PATTERNS):
            return self._not_relevant(0.9, RelevanceReason.SPAM)

        matched = sum(1 for keyword in RELEVANT_KEYWORDS if keyword in normalized)
        relevance_confidence = min(0.95, matched * 0.3 / 2)
        if relevance_confidence < 0.6:
            return self._not_relevant(relevance_confidence, RelevanceReason.OUT_OF_DOMAIN)

        intent, intent_confidence = self._classify_intent(normalized)
        return Classification(
            relevant=True,
            relevance_confidence=relevance_confidence,
            intent=intent,
            intent_confidence=intent_confidence,
            model=self.model,
        )

    def _not_relevant(self, confidence: float, reason: RelevanceReason) -> Classification:
        return Classification(
            relevant=False,
            relevance_confidence=confidence,
            intent=None,
            intent_confidence=0.0,
            model=self.model,
            relevance_reason=reason,
        )

    @staticmethod
    def _classify_intent(normalized: str) -> tuple[BookingIntent, float]:
        best_intent, best_confidence = BookingIntent.INFO_REQUEST, 0.5
        for intent, base_confidence, patterns in INTENT_PATTERNS:
            if base_confidence > best_confidence and any(p.search(normalized) for p in patterns):
                best_intent, best_confidence = intent, base_confidence

        if best_confidence < 0.6:
            if BOOKING_FALLBACK.search(normalized):
                return BookingIntent.NEW_BOOKING, 0.76
            if INFO_FALLBACK.search(normalized):
                return BookingIntent.INFO_REQUEST, 0.76
            return BookingIntent.INFO_REQUEST, 0.6
        return best_intent, best_confidence


CLASSIFY_PROMPT = """You triage messages sent to a ski and snowboard instructor.
Return ONLY a JSON object with these keys:
- relevant: true if the message is about lessons, bookings, schedules, prices or instructor services
- relevance_confidence: number between 0 and 1
- relevance_reason: one of OUT_OF_DOMAIN, SMALL_TALK, SPAM when relevant is false, otherwise null
- intent: one of NEW_BOOKING, RESCHEDULE, CANCEL, INFO_REQUEST when relevant is true, otherwise null
- intent_confidence: number between 0 and 1

Greetings, thanks and acknowledgements are SMALL_TALK."""


def _extract_json_object(content: str) -> dict:
    payload = None
    try:
        payload = json.loads(content)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", content, re.DOTALL)
        if match:
            try:
                payload = json.loads(match.group(0))
            except json.JSONDecodeError:
                payload = None
    if not isinstance(payload, dict):
        raise ClassificationParseError(f"Classifier returned non-JSON content: {content[:100]!r}")
    return payload


def _parse_enum(enum_cls, value):
    if not isinstance(value, str):
        return None
    try:
        return enum_cls(value.strip().upper())
    except ValueError:
        return None


class LLMClassifier:
    """Classifier backed by a chat model in JSON mode. Blocking; run it through the timeout runner."""

    def __init__(self, provider: LLMProvider, model: Optional[str] = None):
        self.provider = provider
        self.model = model

    def classify(self, text: str, context: Optional[dict] = None) -> Classification:
        messages = [
            {"role": "system", "content": CLASSIFY_PROMPT},
            {"role": "user", "content": text or ""},
        ]
        response = self.provider.generate(messages, model=self.model, temperature=0.0, max_tokens=200, json_mode=True)
        payload = _extract_json_object((response.content or "").strip())

        relevant = payload.get("relevant") is True
        intent = _parse_enum(BookingIntent, payload.get("intent")) if relevant else None
        if relevant and intent is None:
            raise ClassificationParseError(f"Unknown intent: {payload.get('intent')!r}")

        try:
            relevance_confidence = clamp_score(float(payload.get("relevance_confidence", 0.0)))
            intent_confidence = clamp_score(float(payload.get("intent_confidence", 0.0))) if relevant else 0.0
        except (TypeError, ValueError) as exc:
            raise ClassificationParseError(f"Invalid confidence in classifier output: {payload}") from exc

        return Classification(
            relevant=relevant,
            relevance_confidence=relevance_confidence,
            intent=intent,
            intent_confidence=intent_confidence,
            model=response.model,
            relevance_reason=None if relevant else _parse_enum(RelevanceReason, payload.get("relevance_reason")),
        )
