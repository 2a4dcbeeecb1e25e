import pytest

from app.models import InboundEvent
from app.services.errors import ErrorKind, MalformedDedupKeyError
from app.services.ingestion_service import IngestStatus, InboundEventIn, build_dedup_key, ingest_event


class TestBuildDedupKey:
    def test_normalizes_channel(self):
        assert build_dedup_key(" WhatsApp ", " wamid.1 ") == ("whatsapp", "wamid.1")

    @pytest.mark.parametrize("channel,external_id", [("", "x"), ("whatsapp", ""), (None, "x"), ("whatsapp", "   ")])
    def test_rejects_empty_parts(self, channel, external_id):
        with pytest.raises(MalformedDedupKeyError) as exc_info:
            build_dedup_key(channel, external_id)
        assert exc_info.value.kind == ErrorKind.MALFORMED_DEDUP_KEY


class TestIngestEvent:
    def test_first_delivery_is_inserted(self, db_session):
        result = ingest_event(db_session, InboundEventIn(channel="whatsapp", external_id="wamid.1", text="hi"))

        assert result.status == IngestStatus.INSERTED
        stored = db_session.get(InboundEvent, result.id)
        assert stored.text == "hi"
        assert stored.channel == "whatsapp"

    def test_replay_returns_existing_id(self, db_session):
        first = ingest_event(db_session, InboundEventIn(channel="whatsapp", external_id="wamid.1", text="hi"))
        second = ingest_event(db_session, InboundEventIn(channel="WHATSAPP", external_id="wamid.1", text="changed"))

        assert second.status == IngestStatus.ALREADY_EXISTS
        assert second.id == first.id
        assert db_session.query(InboundEvent).count() == 1
        assert db_session.get(InboundEvent, first.id).text == "hi"

    def test_same_external_id_on_other_channel_is_distinct(self, db_session):
        ingest_event(db_session, InboundEventIn(channel="whatsapp", external_id="evt_1"))
        result = ingest_event(db_session, InboundEventIn(channel="stripe", external_id="evt_1", kind="webhook"))

        assert result.inserted
        assert db_session.query(InboundEvent).count() == 2

    def test_malformed_key_raises(self, db_session):
        with pytest.raises(MalformedDedupKeyError):
            ingest_event(db_session, InboundEventIn(channel="whatsapp", external_id=None))
