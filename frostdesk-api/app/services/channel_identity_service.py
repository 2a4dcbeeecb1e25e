import uuid
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.database import insert_ignore_conflict
from app.logging_config import get_logger
from app.models import ChannelIdentityMapping, Conversation

logger = get_logger("channel_identity")


def find_conversation_id(db: Session, channel: str, customer_identifier: str) -> Optional[UUID]:
    return (
        db.query(ChannelIdentityMapping.conversation_id)
        .filter(
            ChannelIdentityMapping.channel == channel,
            ChannelIdentityMapping.customer_identifier == customer_identifier,
        )
        .scalar()
    )


def get_or_create_conversation_for_identity(db: Session, channel: str, customer_identifier: str) -> Conversation:
    """Resolve an external identity to its conversation, creating both on first contact.

    Two concurrent first messages may both reach the insert; the mapping's
    unique key lets exactly one win and the loser adopts the winner's
    conversation. An existing mapping is never overwritten.
    """
    conversation_id = find_conversation_id(db, channel, customer_identifier)
    if conversation_id is not None:
        return db.get(Conversation, conversation_id)

    conversation = Conversation(
        id=uuid.uuid4(),
        channel=channel,
        customer_identifier=customer_identifier,
        status="open",
        created_at=datetime.now(timezone.utc),
    )
    db.add(conversation)
    db.flush()

    inserted = insert_ignore_conflict(
        db,
        ChannelIdentityMapping,
        {
            "id": uuid.uuid4(),
            "channel": channel,
            "customer_identifier": customer_identifier,
            "conversation_id": conversation.id,
        },
        index_elements=["channel", "customer_identifier"],
    )
    if inserted:
        logger.info(
            "Created channel identity mapping",
            extra={"context": {"channel": channel, "conversation_id": str(conversation.id)}},
        )
        return conversation

    db.delete(conversation)
    db.flush()
    winner_id = find_conversation_id(db, channel, customer_identifier)
    return db.get(Conversation, winner_id)
