from rentals.booking.formatting import (
    format_booking_date,
    format_booking_duration,
    get_booking_status_text,
)
from rentals.booking.session import BookingNotReadyError, BookingSession
from rentals.booking.state_machine import (
    BookingFlowStateMachine,
    FlowState,
    FlowTrigger,
    InvalidTransitionError,
)

__all__ = [
    "BookingSession",
    "BookingNotReadyError",
    "BookingFlowStateMachine",
    "FlowState",
    "FlowTrigger",
    "InvalidTransitionError",
    "format_booking_date",
    "format_booking_duration",
    "get_booking_status_text",
]
