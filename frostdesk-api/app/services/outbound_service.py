from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import UUID

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import AIDraft, Conversation
from app.services.conversation_ai_state_service import can_send_ai_draft, get_ai_state
from app.services.draft_guardrails import strip_disclaimer
from app.services.rate_limiter import TokenBucket
from app.services.result import Result

logger = get_logger("outbound_service")


class MessageSender(Protocol):
    def send_text(self, to: str, text: str) -> Result[str]: ...


def send_draft(
    db: Session,
    draft_id: UUID,
    sender: MessageSender,
    bucket: TokenBucket,
    now: Optional[float] = None,
) -> Result[AIDraft]:
    """Send a stored draft to the customer once a human approved it.

    Failure codes: not_found, already_sent, ai_send_blocked, rate_limited, plus
    whatever the sender reports.
    """
    draft = db.get(AIDraft, draft_id)
    if draft is None:
        return Result.failure(f"Draft {draft_id} not found", "not_found")
    if draft.sent_at is not None:
        return Result.failure(f"Draft {draft_id} already sent", "already_sent")

    conversation = db.get(Conversation, draft.conversation_id)
    ai_state = get_ai_state(conversation)
    if not can_send_ai_draft(ai_state):
        return Result.failure(f"AI drafts cannot be sent while conversation is {ai_state.value}", "ai_send_blocked")

    if not bucket.consume(now):
        logger.warning(
            "Outbound send rate limited",
            extra={"context": {"draft_id": str(draft_id), "conversation_id": str(draft.conversation_id)}},
        )
        return Result.failure("Outbound rate limit reached", "rate_limited")

    send_result = sender.send_text(conversation.customer_identifier, strip_disclaimer(draft.text))
    if not send_result.ok:
        return Result.failure(send_result.error or "send failed", send_result.error_code or "send_failed")

    draft.sent_at = datetime.now(timezone.utc)
    draft.external_message_id = send_result.value
    db.flush()
    logger.info(
        "Draft sent",
        extra={"context": {"draft_id": str(draft_id), "external_message_id": send_result.value}},
    )
    return Result.success(draft)
