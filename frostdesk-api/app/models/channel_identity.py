import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid

from app.database import Base


class ChannelIdentityMapping(Base):
    __tablename__ = "channel_identity_mappings"
    __table_args__ = (UniqueConstraint("channel", "customer_identifier", name="uq_channel_identity"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    channel = Column(Text, nullable=False)
    customer_identifier = Column(Text, nullable=False)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
