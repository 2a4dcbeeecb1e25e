from app.schemas.booking import BookingCreate, BookingResponse, BookingTransitionRequest
from app.schemas.conversation import AIStateResponse, AIStateUpdate
from app.schemas.draft import DraftSendResponse
from app.schemas.webhook import StripeEvent, WhatsAppWebhookPayload, WhatsAppWebhookResponse

__all__ = [
    "AIStateResponse",
    "AIStateUpdate",
    "BookingCreate",
    "BookingResponse",
    "BookingTransitionRequest",
    "DraftSendResponse",
    "StripeEvent",
    "WhatsAppWebhookPayload",
    "WhatsAppWebhookResponse",
]
