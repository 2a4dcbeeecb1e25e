from app.models.ai_channel_quota import AIChannelQuota
from app.models.ai_decision import AIDecisionSnapshot
from app.models.ai_draft import AIDraft
from app.models.booking import Booking
from app.models.booking_audit import BookingAuditEntry
from app.models.channel_identity import ChannelIdentityMapping
from app.models.conversation import Conversation
from app.models.inbound_event import InboundEvent

__all__ = [
    "Conversation",
    "ChannelIdentityMapping",
    "InboundEvent",
    "Booking",
    "BookingAuditEntry",
    "AIDecisionSnapshot",
    "AIDraft",
    "AIChannelQuota",
]
