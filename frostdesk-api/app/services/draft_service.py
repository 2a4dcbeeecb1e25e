from dataclasses import dataclass
from typing import List, Optional, Protocol
from uuid import UUID

from app.logging_config import get_logger
from app.services.llm import LLMError, LLMProvider
from app.services.result import Result

logger = get_logger("draft_service")

DRAFT_SYSTEM_PROMPT = """You are a booking concierge for a ski and snowboard instructor.
Reply briefly and helpfully in the same language as the customer.
Never confirm bookings, availability, dates, times or prices; say the instructor will reply personally.
Keep replies to one or two sentences without markdown or lists."""


@dataclass(frozen=True)
class Draft:
    text: str
    model: str


class DraftGenerator(Protocol):
    def generate(
        self,
        conversation_id: UUID,
        latest_message_text: str,
        history: Optional[List[dict]] = None,
    ) -> Result[Draft]: ...


class LLMDraftGenerator:
    """Generates reply drafts with a chat model. Blocking; run it through the timeout runner."""

    def __init__(self, provider: LLMProvider, model: Optional[str] = None, max_tokens: int = 256):
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens

    def generate(
        self,
        conversation_id: UUID,
        latest_message_text: str,
        history: Optional[List[dict]] = None,
    ) -> Result[Draft]:
        if not (latest_message_text or "").strip():
            return Result.failure("Nothing to reply to", "empty_message")

        messages = [{"role": "system", "content": DRAFT_SYSTEM_PROMPT}]
        messages.extend(history or [])
        messages.append({"role": "user", "content": latest_message_text})

        try:
            response = self.provider.generate(messages, model=self.model, temperature=0.7, max_tokens=self.max_tokens)
        except LLMError as exc:
            logger.warning(
                "Draft generation failed",
                extra={"context": {"conversation_id": str(conversation_id), "error": str(exc)}},
            )
            return Result.failure(str(exc), "llm_error")

        text = (response.content or "").strip()
        if not text:
            return Result.failure("Model returned empty content", "empty_draft")
        return Result.success(Draft(text=text, model=response.model))
