from app.services.booking_decision import BookingAction, BookingDecision, decide_booking
from app.services.booking_service import (
    apply_expiry_on_read,
    create_booking,
    expire_stale_proposals,
    transition_booking,
)
from app.services.booking_state_machine import (
    BookingState,
    InvalidTransitionError,
    can_transition,
    cancel,
    confirm,
    expire,
    propose,
    transition,
)
from app.services.inbound_pipeline import PipelineOutcome, PipelineStatus, process_inbound_message
