import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"))
    customer_name = Column(Text)
    status = Column(Text, nullable=False, default="draft")  # draft, proposed, confirmed, cancelled, expired
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    proposed_at = Column(DateTime(timezone=True))

    audit_entries = relationship(
        "BookingAuditEntry",
        back_populates="booking",
        order_by="BookingAuditEntry.id",
    )
