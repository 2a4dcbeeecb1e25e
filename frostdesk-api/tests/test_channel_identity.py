from unittest.mock import patch

from app.models import ChannelIdentityMapping, Conversation
from app.services.channel_identity_service import find_conversation_id, get_or_create_conversation_for_identity


class TestChannelIdentity:
    def test_first_contact_creates_conversation_and_mapping(self, db_session):
        conversation = get_or_create_conversation_for_identity(db_session, "whatsapp", "393331234567")

        assert conversation.channel == "whatsapp"
        assert conversation.needs_human is False
        assert find_conversation_id(db_session, "whatsapp", "393331234567") == conversation.id

    def test_same_identity_resolves_to_same_conversation(self, db_session):
        first = get_or_create_conversation_for_identity(db_session, "whatsapp", "393331234567")
        second = get_or_create_conversation_for_identity(db_session, "whatsapp", "393331234567")

        assert first.id == second.id
        assert db_session.query(ChannelIdentityMapping).count() == 1

    def test_lost_race_adopts_existing_mapping(self, db_session):
        winner = get_or_create_conversation_for_identity(db_session, "whatsapp", "393331234567")

        # Simulate a concurrent request that checked before the winner inserted.
        with patch(
            "app.services.channel_identity_service.find_conversation_id",
            side_effect=[None, winner.id],
        ):
            loser = get_or_create_conversation_for_identity(db_session, "whatsapp", "393331234567")

        assert loser.id == winner.id
        assert db_session.query(Conversation).count() == 1
        assert db_session.query(ChannelIdentityMapping).count() == 1
