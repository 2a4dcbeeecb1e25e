from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import update

from app.models import Booking, BookingAuditEntry
from app.services.booking_audit_service import (
    AuditActor,
    get_booking_lifecycle,
    list_for_booking,
    replay_state,
)
from app.services.booking_service import (
    apply_expiry_on_read,
    create_booking,
    expire_stale_proposals,
    get_booking,
    transition_booking,
)
from app.services.booking_state_machine import BookingState
from app.services.errors import (
    AuditChainBrokenError,
    AuditWriteError,
    BookingNotFoundError,
    InvalidTransitionError,
    TransitionConflictError,
)


@pytest.fixture
def booking(db_session):
    return create_booking(db_session, customer_name="Giulia")


def _age_proposal(db_session, booking_id, hours):
    db_session.execute(
        update(Booking)
        .where(Booking.id == booking_id)
        .values(proposed_at=datetime.now(timezone.utc) - timedelta(hours=hours))
    )
    db_session.flush()
    db_session.expire_all()


class TestTransitionBooking:
    def test_new_booking_starts_in_draft_without_audit(self, db_session, booking):
        assert booking.status == "draft"
        assert list_for_booking(db_session, booking.id) == []

    def test_valid_transition_writes_one_audit_entry(self, db_session, booking):
        updated = transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)

        assert updated.status == "proposed"
        assert updated.proposed_at is not None
        entries = list_for_booking(db_session, booking.id)
        assert [(e.previous_state, e.new_state, e.actor) for e in entries] == [("draft", "proposed", "system")]

    def test_invalid_transition_leaves_no_trace(self, db_session, booking):
        with pytest.raises(InvalidTransitionError):
            transition_booking(db_session, booking.id, BookingState.CONFIRMED, AuditActor.HUMAN)

        assert get_booking(db_session, booking.id).status == "draft"
        assert db_session.query(BookingAuditEntry).count() == 0

    def test_unknown_booking(self, db_session):
        from uuid import uuid4

        with pytest.raises(BookingNotFoundError):
            transition_booking(db_session, uuid4(), BookingState.PROPOSED, AuditActor.SYSTEM)

    def test_concurrent_change_raises_conflict(self, db_session, booking):
        transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        # Another writer expires the booking; this session still holds the stale row.
        db_session.execute(
            update(Booking)
            .where(Booking.id == booking.id)
            .values(status="expired")
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(TransitionConflictError):
            transition_booking(db_session, booking.id, BookingState.CONFIRMED, AuditActor.HUMAN)

        assert len(list_for_booking(db_session, booking.id)) == 1

    @patch("app.services.booking_service.alert_critical")
    @patch("app.services.booking_service.record_transition")
    def test_audit_failure_is_fatal_and_alerts(self, mock_record, mock_alert, db_session, booking):
        mock_record.side_effect = AuditWriteError(booking.id, RuntimeError("disk full"))

        with pytest.raises(AuditWriteError) as exc_info:
            transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)

        assert not isinstance(exc_info.value, InvalidTransitionError)
        mock_alert.assert_called_once()
        assert mock_alert.call_args[0][1]["booking_id"] == str(booking.id)

    def test_full_lifecycle_replays_to_current_state(self, db_session, booking):
        transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        transition_booking(db_session, booking.id, BookingState.CONFIRMED, AuditActor.HUMAN)
        transition_booking(db_session, booking.id, BookingState.CANCELLED, AuditActor.HUMAN)

        entries = list_for_booking(db_session, booking.id)
        assert replay_state(entries) == BookingState.CANCELLED
        assert get_booking(db_session, booking.id).status == "cancelled"


class TestReplayState:
    def test_empty_history_is_draft(self):
        assert replay_state([]) == BookingState.DRAFT

    def test_broken_chain_raises(self):
        entries = [
            SimpleNamespace(previous_state="draft", new_state="proposed"),
            SimpleNamespace(previous_state="confirmed", new_state="cancelled"),
        ]
        with pytest.raises(AuditChainBrokenError) as exc_info:
            replay_state(entries)
        assert exc_info.value.position == 1


class TestLifecycle:
    def test_lifecycle_events(self, db_session, booking):
        transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        transition_booking(db_session, booking.id, BookingState.CONFIRMED, AuditActor.HUMAN)

        events = get_booking_lifecycle(db_session, booking.id)

        assert [e.type for e in events] == ["booking_created", "status_transition", "manual_override"]
        assert events[-1].to_state == "confirmed"
        assert events[-1].actor == "human"


class TestExpiry:
    def test_stale_proposal_expires_on_read(self, db_session, booking):
        transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        _age_proposal(db_session, booking.id, hours=25)

        result = apply_expiry_on_read(db_session, get_booking(db_session, booking.id))

        assert result.status == "expired"
        last = list_for_booking(db_session, booking.id)[-1]
        assert (last.previous_state, last.new_state, last.actor) == ("proposed", "expired", "system")

    def test_fresh_proposal_is_untouched(self, db_session, booking):
        transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        _age_proposal(db_session, booking.id, hours=1)

        result = apply_expiry_on_read(db_session, get_booking(db_session, booking.id))

        assert result.status == "proposed"

    def test_sweep_expires_only_stale_proposals(self, db_session):
        stale = create_booking(db_session)
        fresh = create_booking(db_session)
        draft = create_booking(db_session)
        transition_booking(db_session, stale.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        transition_booking(db_session, fresh.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        _age_proposal(db_session, stale.id, hours=48)

        expired = expire_stale_proposals(db_session)

        assert expired == [stale.id]
        assert get_booking(db_session, fresh.id).status == "proposed"
        assert get_booking(db_session, draft.id).status == "draft"

    def test_expired_booking_cannot_be_confirmed(self, db_session, booking):
        transition_booking(db_session, booking.id, BookingState.PROPOSED, AuditActor.SYSTEM)
        _age_proposal(db_session, booking.id, hours=30)
        expire_stale_proposals(db_session)

        with pytest.raises(InvalidTransitionError):
            transition_booking(db_session, booking.id, BookingState.CONFIRMED, AuditActor.HUMAN)
