from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from app.database import Base


class BookingAuditEntry(Base):
    """One row per accepted booking transition. Rows are never updated or deleted."""

    __tablename__ = "booking_audit"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Uuid, ForeignKey("bookings.id"), nullable=False, index=True)
    previous_state = Column(Text, nullable=False)
    new_state = Column(Text, nullable=False)
    actor = Column(Text, nullable=False)  # system, human
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="audit_entries")
