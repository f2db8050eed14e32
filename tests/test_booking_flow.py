"""Integration tests: booking session + calculator + conflict checks + flow state machine."""

import asyncio
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from rentals.availability.tracker import CheckStatus
from rentals.booking.session import BookingNotReadyError, BookingSession
from rentals.booking.state_machine import FlowState, InvalidTransitionError
from rentals.config import settings
from rentals.schemas.booking_schema import ConflictType, InsuranceType
from tests.conftest import EQUIPMENT_ID, FailingStore, GatedStore, HangingStore, make_equipment


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_select_price_and_hand_off(self, booked_store, equipment):
        session = BookingSession(equipment, booked_store)
        outcome = await session.select_dates("2024-07-01", "2024-07-04")
        assert outcome.status == CheckStatus.CLEAR
        assert session.state == FlowState.AVAILABLE

        session.select_insurance(InsuranceType.BASIC)
        calc = session.calculation
        assert calc.subtotal == Decimal("150.00")
        assert calc.insurance == Decimal("7.50")
        assert calc.deposit == Decimal("100.00")
        assert calc.total == Decimal("165.00")
        assert session.can_submit

        data = session.proceed_to_payment()
        assert session.state == FlowState.PAYMENT
        assert data.to_payload() == {
            "equipment_id": EQUIPMENT_ID,
            "start_date": "2024-07-01",
            "end_date": "2024-07-04",
            "total_amount": 165.0,
            "insurance_type": "basic",
            "insurance_cost": 7.5,
            "damage_deposit_amount": 100.0,
            "currency": settings.pricing.currency,
        }
        assert session.trace() == ["idle", "checking", "available", "payment"]

    @pytest.mark.asyncio
    async def test_payload_carries_configured_currency(self, store, equipment, monkeypatch):
        eur = replace(settings, pricing=replace(settings.pricing, currency="eur"))
        monkeypatch.setattr("rentals.booking.session.settings", eur)
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-07-04")
        assert session.proceed_to_payment().to_payload()["currency"] == "eur"

    @pytest.mark.asyncio
    async def test_cancel_payment_returns_to_available(self, store, equipment):
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-07-04")
        session.proceed_to_payment()
        session.cancel_payment()
        assert session.state == FlowState.AVAILABLE
        assert session.can_submit

    @pytest.mark.asyncio
    async def test_dates_locked_during_payment(self, store, equipment):
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-07-04")
        session.proceed_to_payment()
        with pytest.raises(InvalidTransitionError):
            await session.select_dates("2024-07-02", "2024-07-05")
        with pytest.raises(InvalidTransitionError):
            session.select_insurance("premium")


class TestBlockedSubmission:
    @pytest.mark.asyncio
    async def test_conflict_blocks_payment(self, booked_store, equipment):
        session = BookingSession(equipment, booked_store)
        await session.select_dates("2024-06-12", "2024-06-20")
        assert session.state == FlowState.CONFLICTED
        assert session.calculation is not None
        assert [c.type for c in session.conflicts] == [ConflictType.OVERLAP]
        assert not session.can_submit
        with pytest.raises(BookingNotReadyError):
            session.proceed_to_payment()

    @pytest.mark.asyncio
    async def test_reselecting_free_dates_unblocks(self, booked_store, equipment):
        session = BookingSession(equipment, booked_store)
        await session.select_dates("2024-06-12", "2024-06-20")
        await session.select_dates("2024-06-15", "2024-06-20")
        assert session.state == FlowState.AVAILABLE
        assert session.conflicts == []

    @pytest.mark.asyncio
    async def test_too_long_rental_conflicts(self, store, equipment):
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-08-15")
        assert session.state == FlowState.CONFLICTED
        assert ConflictType.MAXIMUM_DAYS in [c.type for c in session.conflicts]

    @pytest.mark.asyncio
    async def test_owner_blocked_dates(self, store, equipment):
        store.set_availability(EQUIPMENT_ID, "2024-07-02", is_available=False)
        session = BookingSession(equipment, store)
        await session.load_availability(today=date(2024, 6, 1))
        await session.select_dates("2024-07-01", "2024-07-04")
        assert session.state == FlowState.CONFLICTED
        assert session.conflicts[0].conflicting_dates == ["2024-07-02"]

    @pytest.mark.asyncio
    async def test_submission_blocked_while_checking(self, equipment):
        store = GatedStore()
        gate = store.gate("2024-07-01", "2024-07-04")
        session = BookingSession(equipment, store)
        task = asyncio.create_task(session.select_dates("2024-07-01", "2024-07-04"))
        await asyncio.sleep(0)
        assert session.loading
        assert session.state == FlowState.CHECKING
        with pytest.raises(BookingNotReadyError, match="being checked"):
            session.proceed_to_payment()
        gate.set()
        await task
        assert session.can_submit


class TestInvalidSelection:
    @pytest.mark.asyncio
    async def test_same_day_selection(self, store, equipment):
        session = BookingSession(equipment, store)
        outcome = await session.select_dates("2024-07-01", "2024-07-01")
        assert outcome is None
        assert session.state == FlowState.INVALID_SELECTION
        assert session.calculation is None
        assert session.input_error.field == "end_date"
        assert not session.can_submit

    @pytest.mark.asyncio
    async def test_garbage_dates(self, store, equipment):
        session = BookingSession(equipment, store)
        assert await session.select_dates("soon", "later") is None
        assert session.state == FlowState.INVALID_SELECTION
        assert session.input_error.field == "dates"

    @pytest.mark.asyncio
    async def test_bad_listing_rate(self, store):
        session = BookingSession(make_equipment(daily_rate="0"), store)
        await session.select_dates("2024-07-01", "2024-07-04")
        assert session.input_error.field == "daily_rate"


class TestRaceAndRecovery:
    @pytest.mark.asyncio
    async def test_latest_selection_displayed(self, equipment):
        store = GatedStore()
        store.add_reservation(EQUIPMENT_ID, "2024-06-10", "2024-06-15")
        gate_a = store.gate("2024-06-12", "2024-06-20")
        gate_b = store.gate("2024-07-01", "2024-07-04")
        session = BookingSession(equipment, store)

        task_a = asyncio.create_task(session.select_dates("2024-06-12", "2024-06-20"))
        await asyncio.sleep(0)
        task_b = asyncio.create_task(session.select_dates("2024-07-01", "2024-07-04"))
        await asyncio.sleep(0)

        gate_b.set()
        assert (await task_b).status == CheckStatus.CLEAR
        gate_a.set()
        assert await task_a is None

        assert session.state == FlowState.AVAILABLE
        assert session.conflicts == []
        assert session.calculation.days == 3

    @pytest.mark.asyncio
    async def test_clearing_dates_discards_in_flight_check(self, equipment):
        store = GatedStore()
        gate = store.gate("2024-07-01", "2024-07-04")
        session = BookingSession(equipment, store)
        task = asyncio.create_task(session.select_dates("2024-07-01", "2024-07-04"))
        await asyncio.sleep(0)
        session.clear_dates()
        gate.set()
        assert await task is None
        assert session.state == FlowState.IDLE
        assert session.calculation is None

    @pytest.mark.asyncio
    async def test_timeout_then_retry(self, equipment):
        store = HangingStore()
        session = BookingSession(equipment, store, timeout=0.05)
        await session.select_dates("2024-07-01", "2024-07-04")
        assert session.state == FlowState.TIMED_OUT
        assert session.conflicts[0].type == ConflictType.TIMEOUT
        assert not session.can_submit

        store.hanging = False
        await session.retry_check()
        assert session.state == FlowState.AVAILABLE
        assert session.can_submit

    @pytest.mark.asyncio
    async def test_failure_then_retry(self, equipment):
        store = FailingStore()
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-07-04")
        assert session.state == FlowState.CHECK_FAILED

        store.failing = False
        await session.retry_check()
        assert session.state == FlowState.AVAILABLE

    @pytest.mark.asyncio
    async def test_retry_only_after_failure(self, store, equipment):
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-07-04")
        with pytest.raises(InvalidTransitionError):
            await session.retry_check()


class TestCalendarPricing:
    @pytest.mark.asyncio
    async def test_custom_rate_from_calendar(self, store, equipment):
        store.set_availability(EQUIPMENT_ID, "2024-07-02", custom_rate=Decimal("65"))
        session = BookingSession(equipment, store)
        assert await session.load_availability(today=date(2024, 6, 1)) == 1
        await session.select_dates("2024-07-01", "2024-07-04")
        assert session.calculation.subtotal == Decimal("165.00")

    @pytest.mark.asyncio
    async def test_insurance_change_reprices_without_recheck(self, equipment):
        store = GatedStore()
        session = BookingSession(equipment, store)
        await session.select_dates("2024-07-01", "2024-07-04")
        calls = len(store.calls)
        calc = session.select_insurance("premium")
        assert calc.insurance == Decimal("15.00")
        assert len(store.calls) == calls
        assert session.state == FlowState.AVAILABLE
