from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from app.services.booking_audit_service import AuditActor
from app.services.conversation_ai_state_service import AIState


class AIStateUpdate(BaseModel):
    ai_state: AIState
    actor: AuditActor = AuditActor.HUMAN
    reason: Optional[str] = None


class AIStateResponse(BaseModel):
    conversation_id: UUID
    ai_state: AIState
    can_suggest: bool
    can_send: bool
