"""Shared date-range utilities used across pricing and availability."""

from datetime import date, datetime, timedelta
from typing import Iterator, Union

STORAGE_DATE_FORMAT = "%Y-%m-%d"

DateLike = Union[str, date]


def parse_storage_date(value: DateLike) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass through a date).

    Datetimes are reduced to their calendar date so no timezone shift can
    move a booking onto a neighbouring day.

    Raises:
        ValueError: If the string is not a valid storage date.
        TypeError: If the value is neither a date nor a string.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Expected a date or YYYY-MM-DD string, got {type(value).__name__}")
    return datetime.strptime(value.strip(), STORAGE_DATE_FORMAT).date()


def format_date_for_storage(value: DateLike) -> str:
    """Format a date as ``YYYY-MM-DD``.

    Examples:
        >>> format_date_for_storage(date(2024, 7, 1))
        '2024-07-01'
    """
    return parse_storage_date(value).strftime(STORAGE_DATE_FORMAT)


def count_nights(start: DateLike, end: DateLike) -> int:
    """Whole days between start and end. Negative when end precedes start."""
    return (parse_storage_date(end) - parse_storage_date(start)).days


def iter_nights(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield each night of the half-open range ``[start, end)``."""
    current = parse_storage_date(start)
    stop = parse_storage_date(end)
    while current < stop:
        yield current
        current += timedelta(days=1)


def ranges_overlap(
    existing_start: DateLike,
    existing_end: DateLike,
    proposed_start: DateLike,
    proposed_end: DateLike,
) -> bool:
    """Half-open overlap test: touching ranges do not overlap.

    Examples:
        >>> ranges_overlap("2024-06-10", "2024-06-15", "2024-06-12", "2024-06-20")
        True
        >>> ranges_overlap("2024-06-10", "2024-06-15", "2024-06-15", "2024-06-20")
        False
    """
    return (
        parse_storage_date(existing_start) < parse_storage_date(proposed_end)
        and parse_storage_date(existing_end) > parse_storage_date(proposed_start)
    )
