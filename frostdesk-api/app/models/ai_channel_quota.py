from sqlalchemy import Column, Date, Integer, Text, UniqueConstraint

from app.database import Base


class AIChannelQuota(Base):
    __tablename__ = "ai_channel_quotas"
    __table_args__ = (UniqueConstraint("channel", "period", name="uq_ai_channel_quota_period"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    channel = Column(Text, nullable=False)
    period = Column(Date, nullable=False)
    max_allowed = Column(Integer, nullable=False)
    used = Column(Integer, nullable=False, default=0)
