"""Shared test fixtures and helpers."""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from rentals.availability.store import InMemoryReservationStore
from rentals.schemas.booking_schema import BookingStatus, ExistingReservation
from rentals.schemas.equipment_schema import Equipment
from rentals.utils import DateLike, parse_storage_date

EQUIPMENT_ID = "eq-1"


class GatedStore(InMemoryReservationStore):
    """In-memory store whose answers for a range wait until its gate opens."""

    def __init__(self) -> None:
        super().__init__()
        self.gates: dict[tuple[date, date], asyncio.Event] = {}
        self.calls: list[tuple[date, date]] = []

    def gate(self, start: DateLike, end: DateLike) -> asyncio.Event:
        event = asyncio.Event()
        self.gates[(parse_storage_date(start), parse_storage_date(end))] = event
        return event

    async def fetch_reservations(self, equipment_id, start_date, end_date, *args, **kwargs):
        self.calls.append((start_date, end_date))
        gate = self.gates.get((start_date, end_date))
        if gate is not None:
            await gate.wait()
        return await super().fetch_reservations(equipment_id, start_date, end_date, *args, **kwargs)


class FailingStore(InMemoryReservationStore):
    """Store whose reservation query raises until ``failing`` is cleared."""

    def __init__(self) -> None:
        super().__init__()
        self.failing = True

    async def fetch_reservations(self, *args, **kwargs):
        if self.failing:
            raise ConnectionError("backend unreachable")
        return await super().fetch_reservations(*args, **kwargs)


class HangingStore(InMemoryReservationStore):
    """Store whose reservation query never returns while ``hanging`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.hanging = True

    async def fetch_reservations(self, *args, **kwargs):
        if self.hanging:
            await asyncio.Event().wait()
        return await super().fetch_reservations(*args, **kwargs)


@pytest.fixture
def store():
    return InMemoryReservationStore()


@pytest.fixture
def booked_store(store):
    """Equipment eq-1 approved for [2024-06-10, 2024-06-15)."""
    store.add_reservation(EQUIPMENT_ID, "2024-06-10", "2024-06-15", reservation_id="res-1")
    return store


@pytest.fixture
def equipment():
    return make_equipment()


def make_equipment(
    daily_rate: str = "50",
    deposit_amount: Optional[str] = "100",
    deposit_percentage: Optional[str] = None,
) -> Equipment:
    """Helper to create an Equipment listing with sensible defaults."""
    return Equipment(
        id=EQUIPMENT_ID,
        title="Touring kayak",
        daily_rate=Decimal(daily_rate),
        damage_deposit_amount=Decimal(deposit_amount) if deposit_amount else None,
        damage_deposit_percentage=Decimal(deposit_percentage) if deposit_percentage else None,
    )


def make_reservation(
    start: str,
    end: str,
    status: BookingStatus = BookingStatus.APPROVED,
    reservation_id: str = "res-x",
) -> ExistingReservation:
    """Helper to create an ExistingReservation."""
    return ExistingReservation(id=reservation_id, start_date=start, end_date=end, status=status)
