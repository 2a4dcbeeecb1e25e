"""Errors raised by the booking core.

Only invariant violations are raised. Eligibility blocks, timeouts and
duplicate deliveries are returned as values by their services.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    INVALID_TRANSITION = "invalid_transition"
    TRANSITION_CONFLICT = "transition_conflict"
    AUDIT_WRITE_FAILED = "audit_write_failed"
    AUDIT_CHAIN_BROKEN = "audit_chain_broken"
    MALFORMED_DEDUP_KEY = "malformed_dedup_key"
    BOOKING_NOT_FOUND = "booking_not_found"


class BookingCoreError(Exception):
    kind: ErrorKind

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidTransitionError(BookingCoreError):
    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, from_state, to_state):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {_value(from_state)} -> {_value(to_state)}")


class TransitionConflictError(BookingCoreError):
    """The booking left the expected source state before the update landed."""

    kind = ErrorKind.TRANSITION_CONFLICT

    def __init__(self, booking_id, expected_state, to_state):
        self.booking_id = booking_id
        self.expected_state = expected_state
        self.to_state = to_state
        super().__init__(
            f"Booking {booking_id} is no longer {_value(expected_state)}; "
            f"transition to {_value(to_state)} no longer possible"
        )


class AuditWriteError(BookingCoreError):
    kind = ErrorKind.AUDIT_WRITE_FAILED

    def __init__(self, booking_id, cause: Optional[BaseException] = None):
        self.booking_id = booking_id
        self.cause = cause
        super().__init__(f"Audit write failed for booking {booking_id}: {cause}")


class AuditChainBrokenError(BookingCoreError):
    kind = ErrorKind.AUDIT_CHAIN_BROKEN

    def __init__(self, position: int, expected_state, found_state):
        self.position = position
        self.expected_state = expected_state
        self.found_state = found_state
        super().__init__(
            f"Audit entry {position} starts from {_value(found_state)}, expected {_value(expected_state)}"
        )


class MalformedDedupKeyError(BookingCoreError):
    kind = ErrorKind.MALFORMED_DEDUP_KEY

    def __init__(self, channel, external_id):
        self.channel = channel
        self.external_id = external_id
        super().__init__(f"Malformed dedup key: channel={channel!r} external_id={external_id!r}")


class BookingNotFoundError(BookingCoreError):
    kind = ErrorKind.BOOKING_NOT_FOUND

    def __init__(self, booking_id):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


def _value(state) -> str:
    return getattr(state, "value", state)
