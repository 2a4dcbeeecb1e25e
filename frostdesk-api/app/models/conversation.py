import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    channel = Column(Text, nullable=False)  # whatsapp
    customer_identifier = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="open")  # open, closed
    needs_human = Column(Boolean, nullable=False, default=False)
    escalation_reason = Column(Text)
    ai_state = Column(Text, nullable=False, default="ai_on")  # ai_on, ai_paused_by_human, ai_suggestion_only
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_message_at = Column(DateTime(timezone=True))

    inbound_events = relationship("InboundEvent", back_populates="conversation")
