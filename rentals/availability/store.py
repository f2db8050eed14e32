"""
Reservation store adapters.

The booking kernel only reads reservations and the owner's availability
calendar; writes happen server-side. ``SupabaseReservationStore`` reads
the hosted Postgres tables through supabase-py's async client.
``InMemoryReservationStore`` holds rows in process for tests and the
console demo.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date
from typing import Optional, Protocol

from supabase import AsyncClient, acreate_client

from rentals.config import settings
from rentals.schemas.booking_schema import (
    BLOCKING_STATUSES,
    AvailabilityDay,
    BookingStatus,
    ExistingReservation,
)
from rentals.utils import format_date_for_storage, ranges_overlap

logger = logging.getLogger(__name__)


class ReservationStore(Protocol):
    """Read-side contract of the external reservation store."""

    async def fetch_reservations(
        self,
        equipment_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[BookingStatus] = BLOCKING_STATUSES,
        exclude_booking_id: Optional[str] = None,
    ) -> list[ExistingReservation]:
        ...

    async def fetch_availability(
        self, equipment_id: str, start_date: date, end_date: date
    ) -> list[AvailabilityDay]:
        ...


class InMemoryReservationStore:
    """Process-local store. Rows are keyed by equipment id."""

    def __init__(self) -> None:
        self._reservations: dict[str, list[ExistingReservation]] = {}
        self._calendar: dict[str, dict[date, AvailabilityDay]] = {}

    def add_reservation(
        self,
        equipment_id: str,
        start_date: date | str,
        end_date: date | str,
        status: BookingStatus | str = BookingStatus.APPROVED,
        reservation_id: Optional[str] = None,
    ) -> ExistingReservation:
        rows = self._reservations.setdefault(equipment_id, [])
        reservation = ExistingReservation(
            id=reservation_id or f"{equipment_id}-{len(rows) + 1}",
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
        rows.append(reservation)
        return reservation

    def set_availability(
        self,
        equipment_id: str,
        day: date | str,
        is_available: bool = True,
        custom_rate=None,
    ) -> AvailabilityDay:
        entry = AvailabilityDay(date=day, is_available=is_available, custom_rate=custom_rate)
        self._calendar.setdefault(equipment_id, {})[entry.date] = entry
        return entry

    async def fetch_reservations(
        self,
        equipment_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[BookingStatus] = BLOCKING_STATUSES,
        exclude_booking_id: Optional[str] = None,
    ) -> list[ExistingReservation]:
        wanted = {BookingStatus(s) for s in statuses}
        return [
            r for r in self._reservations.get(equipment_id, [])
            if r.status in wanted
            and r.id != exclude_booking_id
            and ranges_overlap(r.start_date, r.end_date, start_date, end_date)
        ]

    async def fetch_availability(
        self, equipment_id: str, start_date: date, end_date: date
    ) -> list[AvailabilityDay]:
        calendar = self._calendar.get(equipment_id, {})
        return [calendar[d] for d in sorted(calendar) if start_date <= d < end_date]

    def reset(self) -> None:
        """Clear all rows. Used by test fixtures for isolation."""
        self._reservations.clear()
        self._calendar.clear()


class SupabaseReservationStore:
    """Reads ``booking_requests`` and ``availability_calendar`` from Supabase.

    Row-level security decides what the caller's key may see; the store
    only selects the columns the conflict check needs.
    """

    def __init__(
        self,
        client: AsyncClient,
        bookings_table: str = settings.store.bookings_table,
        availability_table: str = settings.store.availability_table,
    ) -> None:
        self.client = client
        self._bookings_table = bookings_table
        self._availability_table = availability_table

    @classmethod
    async def connect(
        cls, url: str = settings.store.supabase_url, key: str = settings.store.supabase_key
    ) -> SupabaseReservationStore:
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set to connect")
        client = await acreate_client(url, key)
        return cls(client)

    async def fetch_reservations(
        self,
        equipment_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[BookingStatus] = BLOCKING_STATUSES,
        exclude_booking_id: Optional[str] = None,
    ) -> list[ExistingReservation]:
        q = (
            self.client.table(self._bookings_table)
            .select("id, start_date, end_date, status")
            .eq("equipment_id", equipment_id)
            .in_("status", sorted(BookingStatus(s).value for s in statuses))
            .lt("start_date", format_date_for_storage(end_date))
            .gt("end_date", format_date_for_storage(start_date))
        )
        if exclude_booking_id:
            q = q.neq("id", exclude_booking_id)
        result = await q.execute()
        rows = result.data or []
        logger.debug("Fetched %d reservations for equipment %s", len(rows), equipment_id)
        return [ExistingReservation.model_validate(row) for row in rows]

    async def fetch_availability(
        self, equipment_id: str, start_date: date, end_date: date
    ) -> list[AvailabilityDay]:
        q = (
            self.client.table(self._availability_table)
            .select("date, is_available, custom_rate")
            .eq("equipment_id", equipment_id)
            .gte("date", format_date_for_storage(start_date))
            .lt("date", format_date_for_storage(end_date))
            .order("date")
        )
        result = await q.execute()
        days = []
        for row in result.data or []:
            # NULL is_available means the owner never blocked the date.
            if row.get("is_available") is None:
                row = {**row, "is_available": True}
            days.append(AvailabilityDay.model_validate(row))
        return days
