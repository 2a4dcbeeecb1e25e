import pytest

from app.services.booking_state_machine import (
    BOOKING_STATE_MACHINE,
    VALID_TRANSITIONS,
    BookingState,
    BookingStateMachine,
    can_transition,
    cancel,
    confirm,
    expire,
    is_terminal,
    propose,
    transition,
)
from app.services.errors import ErrorKind, InvalidTransitionError

ALLOWED = {
    (BookingState.DRAFT, BookingState.PROPOSED),
    (BookingState.PROPOSED, BookingState.CONFIRMED),
    (BookingState.PROPOSED, BookingState.EXPIRED),
    (BookingState.CONFIRMED, BookingState.CANCELLED),
}


class TestValidTransitions:
    def test_draft_to_proposed(self):
        assert transition(BookingState.DRAFT, BookingState.PROPOSED) == BookingState.PROPOSED

    def test_proposed_to_confirmed(self):
        assert transition(BookingState.PROPOSED, BookingState.CONFIRMED) == BookingState.CONFIRMED

    def test_proposed_to_expired(self):
        assert transition(BookingState.PROPOSED, BookingState.EXPIRED) == BookingState.EXPIRED

    def test_confirmed_to_cancelled(self):
        assert transition(BookingState.CONFIRMED, BookingState.CANCELLED) == BookingState.CANCELLED


class TestInvalidTransitions:
    def test_draft_to_confirmed(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(BookingState.DRAFT, BookingState.CONFIRMED)
        assert exc_info.value.from_state == BookingState.DRAFT
        assert exc_info.value.to_state == BookingState.CONFIRMED
        assert exc_info.value.kind == ErrorKind.INVALID_TRANSITION

    def test_expired_is_absorbing(self):
        for target in BookingState:
            with pytest.raises(InvalidTransitionError):
                transition(BookingState.EXPIRED, target)

    def test_same_state(self):
        with pytest.raises(InvalidTransitionError):
            transition(BookingState.PROPOSED, BookingState.PROPOSED)

    def test_cancelled_cannot_come_back(self):
        with pytest.raises(InvalidTransitionError):
            transition(BookingState.CANCELLED, BookingState.CONFIRMED)


class TestWhitelist:
    def test_exactly_the_allowed_pairs(self):
        for from_state in BookingState:
            for to_state in BookingState:
                assert can_transition(from_state, to_state) is ((from_state, to_state) in ALLOWED)

    def test_table_matches_machine(self):
        pairs = {(src, dst) for src, targets in VALID_TRANSITIONS.items() for dst in targets}
        assert pairs == ALLOWED

    def test_terminal_states(self):
        assert is_terminal(BookingState.EXPIRED)
        assert is_terminal(BookingState.CANCELLED)
        assert not is_terminal(BookingState.PROPOSED)

    def test_custom_table(self):
        machine = BookingStateMachine({BookingState.DRAFT: [BookingState.CANCELLED]})
        assert machine.can_transition(BookingState.DRAFT, BookingState.CANCELLED)
        assert not machine.can_transition(BookingState.DRAFT, BookingState.PROPOSED)
        assert not BOOKING_STATE_MACHINE.can_transition(BookingState.DRAFT, BookingState.CANCELLED)


class TestHelperFunctions:
    def test_propose(self):
        assert propose(BookingState.DRAFT) == BookingState.PROPOSED

    def test_confirm_from_draft_fails(self):
        with pytest.raises(InvalidTransitionError):
            confirm(BookingState.DRAFT)

    def test_expire(self):
        assert expire(BookingState.PROPOSED) == BookingState.EXPIRED

    def test_cancel(self):
        assert cancel(BookingState.CONFIRMED) == BookingState.CANCELLED
