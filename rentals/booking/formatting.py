"""Human-readable booking dates, durations and status labels."""

from rentals.schemas.booking_schema import BookingStatus
from rentals.utils import DateLike, count_nights, parse_storage_date

STATUS_TEXT: dict[BookingStatus, str] = {
    BookingStatus.APPROVED: "Confirmed",
    BookingStatus.ACTIVE: "In Progress",
    BookingStatus.CANCELLED: "Cancelled",
    BookingStatus.COMPLETED: "Completed",
}


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def format_booking_date(value: DateLike) -> str:
    """Format a storage date for display, e.g. ``Mon, Jul 1, 2024``."""
    d = parse_storage_date(value)
    return f"{d.strftime('%a, %b')} {d.day}, {d.year}"


def format_booking_duration(start_date: DateLike, end_date: DateLike) -> str:
    """Describe a rental length in days, or weeks plus days from 7 up.

    Examples:
        >>> format_booking_duration("2024-07-01", "2024-07-04")
        '3 days'
        >>> format_booking_duration("2024-07-01", "2024-07-11")
        '1 week 3 days'
    """
    days = count_nights(start_date, end_date)
    if days < 7:
        return _plural(days, "day")
    weeks, remaining = divmod(days, 7)
    if remaining == 0:
        return _plural(weeks, "week")
    return f"{_plural(weeks, 'week')} {_plural(remaining, 'day')}"


def get_booking_status_text(status: str) -> str:
    try:
        return STATUS_TEXT.get(BookingStatus(status), "Unknown")
    except ValueError:
        return "Unknown"
