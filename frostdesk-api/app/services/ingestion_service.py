from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.database import insert_ignore_conflict
from app.logging_config import get_logger
from app.models import InboundEvent
from app.services.errors import MalformedDedupKeyError

logger = get_logger("ingestion_service")


class IngestStatus(str, Enum):
    INSERTED = "inserted"
    ALREADY_EXISTS = "already_exists"


@dataclass
class InboundEventIn:
    channel: str
    external_id: str
    kind: str = "message"  # message, webhook
    conversation_id: UUID | None = None
    sender: str | None = None
    text: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    received_at: datetime | None = None


@dataclass(frozen=True)
class IngestResult:
    status: IngestStatus
    id: UUID

    @property
    def inserted(self) -> bool:
        return self.status == IngestStatus.INSERTED


def build_dedup_key(channel: str | None, external_id: str | None) -> tuple[str, str]:
    channel_key = (channel or "").strip().lower()
    external_key = (external_id or "").strip()
    if not channel_key or not external_key:
        raise MalformedDedupKeyError(channel, external_id)
    return channel_key, external_key


def ingest_event(db: Session, event: InboundEventIn) -> IngestResult:
    """Store an inbound event once per (channel, external_id).

    A replayed delivery is a success reporting `already_exists` with the
    original row id; it never raises for duplicates.
    """
    channel, external_id = build_dedup_key(event.channel, event.external_id)
    event_id = uuid.uuid4()

    inserted = insert_ignore_conflict(
        db,
        InboundEvent,
        {
            "id": event_id,
            "channel": channel,
            "external_id": external_id,
            "kind": event.kind,
            "conversation_id": event.conversation_id,
            "sender": event.sender,
            "text": event.text,
            "payload": event.payload or {},
            "received_at": event.received_at or datetime.now(timezone.utc),
        },
        index_elements=["channel", "external_id"],
    )
    if inserted:
        return IngestResult(IngestStatus.INSERTED, event_id)

    existing_id = (
        db.query(InboundEvent.id)
        .filter(InboundEvent.channel == channel, InboundEvent.external_id == external_id)
        .scalar()
    )
    logger.info(
        "Duplicate inbound event",
        extra={"context": {"channel": channel, "external_id": external_id, "kind": event.kind}},
    )
    return IngestResult(IngestStatus.ALREADY_EXISTS, existing_id)
