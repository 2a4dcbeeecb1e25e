from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models import Conversation
from app.schemas.conversation import AIStateResponse, AIStateUpdate
from app.services.conversation_ai_state_service import (
    can_ai_suggest,
    can_send_ai_draft,
    get_ai_state,
    set_ai_state,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])


def _ai_state_response(conversation: Conversation) -> AIStateResponse:
    state = get_ai_state(conversation)
    return AIStateResponse(
        conversation_id=conversation.id,
        ai_state=state,
        can_suggest=can_ai_suggest(state),
        can_send=can_send_ai_draft(state),
    )


@router.get("/{conversation_id}/ai-state", response_model=AIStateResponse)
def read_ai_state(conversation_id: UUID, db: Session = Depends(get_db)):
    conversation = db.get(Conversation, conversation_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return _ai_state_response(conversation)


@router.put("/{conversation_id}/ai-state", response_model=AIStateResponse)
def update_ai_state(conversation_id: UUID, data: AIStateUpdate, db: Session = Depends(get_db)):
    """Pause AI for a conversation, limit it to suggestions, or turn it back on."""
    conversation = set_ai_state(db, conversation_id, data.ai_state, data.actor.value, data.reason)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    db.commit()
    return _ai_state_response(conversation)
