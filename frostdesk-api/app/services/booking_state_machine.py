from enum import Enum
from typing import Iterable, Mapping

from app.services.errors import InvalidTransitionError


class BookingState(str, Enum):
    DRAFT = "draft"
    PROPOSED = "proposed"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


INITIAL_STATE = BookingState.DRAFT

VALID_TRANSITIONS = {
    BookingState.DRAFT: (BookingState.PROPOSED,),
    BookingState.PROPOSED: (BookingState.CONFIRMED, BookingState.EXPIRED),
    BookingState.CONFIRMED: (BookingState.CANCELLED,),
    BookingState.CANCELLED: (),
    BookingState.EXPIRED: (),
}


class BookingStateMachine:
    """Whitelist of allowed booking edges.

    Pure: it validates, the caller persists. Any pair not in the table is
    rejected, including same-state pairs.
    """

    def __init__(self, transitions: Mapping[BookingState, Iterable[BookingState]]):
        self._transitions = {state: frozenset(targets) for state, targets in transitions.items()}

    def can_transition(self, from_state: BookingState, to_state: BookingState) -> bool:
        return to_state in self._transitions.get(from_state, frozenset())

    def transition(self, from_state: BookingState, to_state: BookingState) -> BookingState:
        if not self.can_transition(from_state, to_state):
            raise InvalidTransitionError(from_state, to_state)
        return to_state

    def is_terminal(self, state: BookingState) -> bool:
        return not self._transitions.get(state)


BOOKING_STATE_MACHINE = BookingStateMachine(VALID_TRANSITIONS)


def can_transition(from_state: BookingState, to_state: BookingState) -> bool:
    """Check if transition is valid."""
    return BOOKING_STATE_MACHINE.can_transition(from_state, to_state)


def transition(from_state: BookingState, to_state: BookingState) -> BookingState:
    """Validate a transition. Raises InvalidTransitionError if not allowed."""
    return BOOKING_STATE_MACHINE.transition(from_state, to_state)


def is_terminal(state: BookingState) -> bool:
    return BOOKING_STATE_MACHINE.is_terminal(state)


def propose(current_state: BookingState) -> BookingState:
    """Instructor sends the booking to the customer."""
    return transition(current_state, BookingState.PROPOSED)


def confirm(current_state: BookingState) -> BookingState:
    """Customer accepted (or paid for) the proposal."""
    return transition(current_state, BookingState.CONFIRMED)


def expire(current_state: BookingState) -> BookingState:
    """Proposal was never answered."""
    return transition(current_state, BookingState.EXPIRED)


def cancel(current_state: BookingState) -> BookingState:
    return transition(current_state, BookingState.CANCELLED)
