from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from app.logging_config import get_logger
from app.models import AIChannelQuota

logger = get_logger("quota_service")


@dataclass(frozen=True)
class QuotaStatus:
    channel: str
    max_allowed: int
    used: int

    @property
    def exceeded(self) -> bool:
        return self.used >= self.max_allowed


def _today() -> date:
    return datetime.now(timezone.utc).date()


def get_quota_status(db: Session, channel: str, period: Optional[date] = None) -> Optional[QuotaStatus]:
    """Today's quota for the channel, or None when no quota row is configured."""
    period = period or _today()
    row = (
        db.query(AIChannelQuota)
        .filter(AIChannelQuota.channel == channel, AIChannelQuota.period == period)
        .first()
    )
    if row is None:
        return None
    return QuotaStatus(channel=channel, max_allowed=row.max_allowed, used=row.used or 0)


def record_quota_usage(db: Session, channel: str, period: Optional[date] = None) -> bool:
    """Take one slot of today's quota.

    The increment only applies while `used < max_allowed`, so concurrent
    drafts cannot push the counter past its cap. Returns False when no slot
    was taken (cap reached or no quota row).
    """
    period = period or _today()
    result = db.execute(
        update(AIChannelQuota)
        .where(
            AIChannelQuota.channel == channel,
            AIChannelQuota.period == period,
            AIChannelQuota.used < AIChannelQuota.max_allowed,
        )
        .values(used=AIChannelQuota.used + 1)
    )
    if result.rowcount == 0:
        logger.warning(
            "Quota usage not recorded, cap reached or no quota row",
            extra={"context": {"channel": channel, "period": period.isoformat()}},
        )
        return False
    return True
