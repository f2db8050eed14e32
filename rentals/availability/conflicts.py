"""
Booking conflict detection.

``check_booking_conflicts`` asks the reservation store for reservations
that intersect a proposed range and turns each one into an ``overlap``
conflict. It never raises: unparseable dates or a failing store become a single
``unavailable`` conflict and a hung store a single ``timeout`` conflict,
so the booking stays blocked until a clean answer arrives.

A clean answer is not a hold. Another renter may book the same nights
before payment; the backend re-validates when the booking row is written.
"""

import asyncio
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Optional

from rentals.availability.store import ReservationStore
from rentals.config import settings
from rentals.logging_context import get_check_logger
from rentals.schemas.booking_schema import (
    BLOCKING_STATUSES,
    AvailabilityDay,
    BookingConflict,
    ConflictType,
    ExistingReservation,
)
from rentals.utils import DateLike, count_nights, format_date_for_storage, iter_nights, parse_storage_date, ranges_overlap

logger = get_check_logger(__name__)

UNAVAILABLE_MESSAGE = "We couldn't verify availability for these dates. Please try again."
TIMEOUT_MESSAGE = "Checking availability took too long. Please try again."
INVALID_DATES_MESSAGE = "Dates must use the YYYY-MM-DD format"


def _overlap_conflict(reservation: ExistingReservation) -> BookingConflict:
    start = format_date_for_storage(reservation.start_date)
    end = format_date_for_storage(reservation.end_date)
    return BookingConflict(
        type=ConflictType.OVERLAP,
        message=f"Equipment is already booked from {start} to {end}",
        conflicting_dates=[start],
    )


async def check_booking_conflicts(
    store: ReservationStore,
    equipment_id: str,
    start_date: DateLike,
    end_date: DateLike,
    *,
    exclude_booking_id: Optional[str] = None,
    timeout: Optional[float] = None,
) -> list[BookingConflict]:
    """
    Compare a proposed range against the equipment's blocking reservations.

    Args:
        store: Where reservations are read from.
        equipment_id: Listing being booked.
        start_date: First night of the proposal.
        end_date: Return date of the proposal.
        exclude_booking_id: Reservation to ignore, e.g. the one being rescheduled.
        timeout: Seconds to wait for the store. Defaults to CONFLICT_CHECK_TIMEOUT.

    Returns:
        One ``overlap`` conflict per intersecting reservation, or a single
        ``unavailable``/``timeout`` conflict when the dates
        could not be parsed or the store could not answer.
        An empty list means the range was free at query time.
    """
    try:
        start = parse_storage_date(start_date)
        end = parse_storage_date(end_date)
    except (ValueError, TypeError):
        logger.warning(
            "Conflict check for %s skipped, unparseable dates %r..%r",
            equipment_id, start_date, end_date,
        )
        return [BookingConflict(type=ConflictType.UNAVAILABLE, message=INVALID_DATES_MESSAGE)]

    limit = settings.rules.conflict_check_timeout_sec if timeout is None else timeout
    try:
        reservations = await asyncio.wait_for(
            store.fetch_reservations(
                equipment_id,
                start,
                end,
                statuses=BLOCKING_STATUSES,
                exclude_booking_id=exclude_booking_id,
            ),
            timeout=limit,
        )
    except asyncio.TimeoutError:
        logger.warning(
            "Conflict check for %s timed out after %.1fs", equipment_id, limit
        )
        return [BookingConflict(type=ConflictType.TIMEOUT, message=TIMEOUT_MESSAGE)]
    except Exception:
        logger.exception("Error checking booking conflicts for %s", equipment_id)
        return [BookingConflict(type=ConflictType.UNAVAILABLE, message=UNAVAILABLE_MESSAGE)]

    # Stores may over-fetch; the half-open test is authoritative.
    overlapping = [
        r for r in reservations
        if r.id != exclude_booking_id
        and r.status in BLOCKING_STATUSES
        and ranges_overlap(r.start_date, r.end_date, start, end)
    ]
    logger.info(
        "Conflict check for %s %s..%s: %d overlapping reservation(s)",
        equipment_id, start, end, len(overlapping),
    )
    return [_overlap_conflict(r) for r in overlapping]


def check_booking_conflicts_sync(
    start_date: DateLike,
    end_date: DateLike,
    existing_bookings: Iterable[ExistingReservation],
) -> list[BookingConflict]:
    """Local validation against rental-length rules and already-loaded bookings.

    Overlaps are reported as one aggregated conflict listing each clashing
    reservation's start date.
    """
    conflicts: list[BookingConflict] = []
    start = parse_storage_date(start_date)
    end = parse_storage_date(end_date)
    days = count_nights(start, end)
    rules = settings.rules

    if days < rules.min_rental_days:
        conflicts.append(BookingConflict(
            type=ConflictType.MINIMUM_DAYS,
            message=f"Minimum rental period is {rules.min_rental_days} day"
                    f"{'s' if rules.min_rental_days > 1 else ''}",
        ))
    if days > rules.max_rental_days:
        conflicts.append(BookingConflict(
            type=ConflictType.MAXIMUM_DAYS,
            message=f"Maximum rental period is {rules.max_rental_days} days",
        ))

    overlapping = [
        b for b in existing_bookings
        if b.status in BLOCKING_STATUSES and ranges_overlap(b.start_date, b.end_date, start, end)
    ]
    if overlapping:
        conflicts.append(BookingConflict(
            type=ConflictType.OVERLAP,
            message="Selected dates overlap with existing bookings",
            conflicting_dates=[format_date_for_storage(b.start_date) for b in overlapping],
        ))
    return conflicts


def check_blocked_dates(
    start_date: DateLike,
    end_date: DateLike,
    calendar: Mapping[date, AvailabilityDay],
) -> list[BookingConflict]:
    """Nights the owner marked unavailable. Dates absent from the calendar are open."""
    blocked = [
        format_date_for_storage(night)
        for night in iter_nights(start_date, end_date)
        if night in calendar and not calendar[night].is_available
    ]
    if not blocked:
        return []
    return [BookingConflict(
        type=ConflictType.UNAVAILABLE,
        message="The owner has blocked some of the selected dates",
        conflicting_dates=blocked,
    )]


def validate_booking_dates(
    start_date: DateLike,
    end_date: DateLike,
    today: Optional[date] = None,
) -> tuple[bool, list[str]]:
    """Check calendar rules before any pricing happens.

    Returns:
        ``(valid, errors)`` with human-readable error strings.
    """
    errors: list[str] = []
    try:
        start = parse_storage_date(start_date)
        end = parse_storage_date(end_date)
    except (ValueError, TypeError):
        return False, [INVALID_DATES_MESSAGE]

    if start < (today or date.today()):
        errors.append("Start date cannot be in the past")
    if end <= start:
        errors.append("End date must be after start date")
    if count_nights(start, end) > settings.rules.max_rental_days:
        errors.append(f"Maximum rental period is {settings.rules.max_rental_days} days")

    return len(errors) == 0, errors
