from rentals.availability.conflicts import (
    check_blocked_dates,
    check_booking_conflicts,
    check_booking_conflicts_sync,
    validate_booking_dates,
)
from rentals.availability.store import (
    InMemoryReservationStore,
    ReservationStore,
    SupabaseReservationStore,
)
from rentals.availability.tracker import CheckStatus, CheckToken, ConflictCheckTracker

__all__ = [
    "check_booking_conflicts",
    "check_booking_conflicts_sync",
    "check_blocked_dates",
    "validate_booking_dates",
    "ReservationStore",
    "InMemoryReservationStore",
    "SupabaseReservationStore",
    "ConflictCheckTracker",
    "CheckStatus",
    "CheckToken",
]
