import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class InboundEvent(Base):
    __tablename__ = "inbound_events"
    __table_args__ = (UniqueConstraint("channel", "external_id", name="uq_inbound_event_key"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    channel = Column(Text, nullable=False)  # whatsapp, stripe
    external_id = Column(Text, nullable=False)  # provider message id or webhook event id
    kind = Column(Text, nullable=False, default="message")  # message, webhook
    conversation_id = Column(Uuid, ForeignKey("conversations.id"))
    sender = Column(Text)
    text = Column(Text)
    payload = Column(JSON, nullable=False, default=dict)
    received_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    conversation = relationship("Conversation", back_populates="inbound_events")
