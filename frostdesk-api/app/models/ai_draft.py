import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid

from app.database import Base


class AIDraft(Base):
    __tablename__ = "ai_drafts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    message_id = Column(Uuid, ForeignKey("inbound_events.id"), nullable=False, unique=True)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"), nullable=False)
    snapshot_id = Column(Uuid, ForeignKey("ai_decision_snapshots.id"))
    text = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    sent_at = Column(DateTime(timezone=True))
    external_message_id = Column(Text)
