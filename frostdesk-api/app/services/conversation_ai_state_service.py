from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import Conversation

logger = get_logger("conversation_ai_state")


class AIState(str, Enum):
    AI_ON = "ai_on"
    AI_PAUSED_BY_HUMAN = "ai_paused_by_human"
    AI_SUGGESTION_ONLY = "ai_suggestion_only"


def get_ai_state(conversation: Optional[Conversation]) -> AIState:
    """Current AI state; a missing conversation or unknown value reads as `ai_on`."""
    raw = getattr(conversation, "ai_state", None)
    try:
        return AIState(raw)
    except ValueError:
        return AIState.AI_ON


def set_ai_state(
    db: Session,
    conversation_id: UUID,
    next_state: AIState,
    actor: str,
    reason: Optional[str] = None,
) -> Optional[Conversation]:
    """Set the conversation's AI state. Returns None for an unknown conversation."""
    conversation = db.get(Conversation, conversation_id)
    if conversation is None:
        return None

    previous = get_ai_state(conversation)
    conversation.ai_state = AIState(next_state).value
    db.flush()
    logger.info(
        "AI state changed",
        extra={
            "context": {
                "conversation_id": str(conversation_id),
                "previous_state": previous.value,
                "next_state": conversation.ai_state,
                "actor": actor,
                "reason": reason,
            }
        },
    )
    return conversation


def can_ai_suggest(state: AIState) -> bool:
    return state in (AIState.AI_ON, AIState.AI_SUGGESTION_ONLY)


def can_send_ai_draft(state: AIState) -> bool:
    return state == AIState.AI_ON
