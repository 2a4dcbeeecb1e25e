from typing import Any, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field


class WhatsAppText(BaseModel):
    body: Optional[str] = None


class WhatsAppMessage(BaseModel):
    id: Optional[str] = None
    from_: Optional[str] = Field(default=None, validation_alias=AliasChoices("from", "from_"))
    timestamp: Optional[str] = None
    type: Optional[str] = "text"
    text: Optional[WhatsAppText] = None


class WhatsAppContactProfile(BaseModel):
    name: Optional[str] = None


class WhatsAppContact(BaseModel):
    wa_id: Optional[str] = None
    profile: Optional[WhatsAppContactProfile] = None


class WhatsAppValue(BaseModel):
    messaging_product: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    contacts: List[WhatsAppContact] = []
    messages: List[WhatsAppMessage] = []


class WhatsAppChange(BaseModel):
    field: Optional[str] = None
    value: WhatsAppValue = WhatsAppValue()


class WhatsAppEntry(BaseModel):
    id: Optional[str] = None
    changes: List[WhatsAppChange] = []


class WhatsAppWebhookPayload(BaseModel):
    """Meta Cloud API webhook body. Status callbacks arrive with no `messages`."""

    object: Optional[str] = None
    entry: List[WhatsAppEntry] = []

    def iter_messages(self):
        for entry in self.entry:
            for change in entry.changes:
                for message in change.value.messages:
                    yield message


class InboundMessageOutcome(BaseModel):
    external_id: str
    status: str
    message_id: UUID
    conversation_id: Optional[UUID] = None
    action: Optional[str] = None
    reason: Optional[str] = None
    band: Optional[str] = None
    draft_id: Optional[UUID] = None
    skip_reason: Optional[str] = None
    needs_human: bool = False


class WhatsAppWebhookResponse(BaseModel):
    success: bool
    processed: List[InboundMessageOutcome] = []
    skipped: int = 0


class StripeEventData(BaseModel):
    object: dict[str, Any] = {}


class StripeEvent(BaseModel):
    id: str
    type: str
    data: StripeEventData = StripeEventData()


class StripeWebhookResponse(BaseModel):
    received: bool
    duplicate: bool = False
    handled: bool = False
    booking_id: Optional[UUID] = None
    booking_status: Optional[str] = None
    detail: Optional[str] = None
