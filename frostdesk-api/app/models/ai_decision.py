import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, Text, Uuid

from app.database import Base


class AIDecisionSnapshot(Base):
    """Classification and decision trace for one inbound message."""

    __tablename__ = "ai_decision_snapshots"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(Uuid, ForeignKey("inbound_events.id"), nullable=False, unique=True)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"), nullable=False)
    channel = Column(Text, nullable=False)
    relevant = Column(Boolean)
    relevance_confidence = Column(Numeric(5, 3))
    relevance_reason = Column(Text)
    intent = Column(Text)
    intent_confidence = Column(Numeric(5, 3))
    intent_band = Column(Text)
    decision = Column(Text, nullable=False)  # IGNORE, ESCALATE_ONLY, PROCEED
    reason = Column(Text, nullable=False)
    action = Column(Text, nullable=False)  # ignore, escalate, ai_reply
    model = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
