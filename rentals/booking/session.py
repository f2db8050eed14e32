"""
Booking session: everything a booking form does between date picking and payment.

Recomputes the price synchronously on every date or insurance change,
runs the availability check through a ``ConflictCheckTracker`` so only the
latest selection's answer is shown, and assembles ``PaymentBookingData``
once the range is clear. The session never writes a booking; the payment
step and the backend own that.
"""

import logging
from datetime import date, timedelta
from typing import Optional, Union

from rentals.availability.conflicts import check_blocked_dates, check_booking_conflicts_sync
from rentals.availability.store import ReservationStore
from rentals.availability.tracker import CheckOutcome, CheckStatus, CheckToken, ConflictCheckTracker
from rentals.booking.state_machine import (
    BookingFlowStateMachine,
    FlowState,
    FlowTrigger,
    InvalidTransitionError,
)
from rentals.config import settings
from rentals.pricing.calculator import calculate_booking_total, custom_rates_from_calendar
from rentals.pricing.deposit import calculate_damage_deposit
from rentals.pricing.result import InvalidInput
from rentals.schemas.booking_schema import (
    AvailabilityDay,
    BookingCalculation,
    BookingConflict,
    InsuranceType,
    PaymentBookingData,
)
from rentals.schemas.equipment_schema import Equipment
from rentals.utils import DateLike, format_date_for_storage, parse_storage_date

logger = logging.getLogger(__name__)

_OUTCOME_TRIGGERS: dict[CheckStatus, FlowTrigger] = {
    CheckStatus.CLEAR: FlowTrigger.NO_CONFLICTS,
    CheckStatus.CONFLICTED: FlowTrigger.CONFLICTS_FOUND,
    CheckStatus.FAILED: FlowTrigger.CHECK_FAILED,
    CheckStatus.TIMED_OUT: FlowTrigger.CHECK_TIMED_OUT,
}


class BookingNotReadyError(Exception):
    """Raised when payment is requested for a booking that cannot be submitted."""


class BookingSession:
    """State of one renter's booking form for one piece of equipment."""

    def __init__(
        self,
        equipment: Equipment,
        store: ReservationStore,
        *,
        timeout: Optional[float] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        self.equipment = equipment
        self._store = store
        self._exclude_booking_id = exclude_booking_id
        self._tracker = ConflictCheckTracker(store, timeout=timeout)
        self._flow = BookingFlowStateMachine()
        self._calendar: dict[date, AvailabilityDay] = {}
        self._insurance = InsuranceType.NONE
        self._start: Optional[date] = None
        self._end: Optional[date] = None
        self._calculation: Optional[BookingCalculation] = None
        self._input_error: Optional[InvalidInput] = None

    # ------------------------------------------------------------------ #
    # Read-only view
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> FlowState:
        return self._flow.current_state

    @property
    def calculation(self) -> Optional[BookingCalculation]:
        return self._calculation

    @property
    def input_error(self) -> Optional[InvalidInput]:
        return self._input_error

    @property
    def conflicts(self) -> list[BookingConflict]:
        return self._tracker.conflicts

    @property
    def check_status(self) -> CheckStatus:
        return self._tracker.status

    @property
    def loading(self) -> bool:
        return self._tracker.loading

    @property
    def insurance_type(self) -> InsuranceType:
        return self._insurance

    @property
    def can_submit(self) -> bool:
        return (
            self._flow.can_submit()
            and self._calculation is not None
            and self._tracker.status == CheckStatus.CLEAR
            and not self._tracker.conflicts
        )

    def trace(self) -> list[str]:
        return self._flow.get_state_trace()

    # ------------------------------------------------------------------ #
    # Inputs
    # ------------------------------------------------------------------ #

    async def load_availability(
        self, horizon_days: Optional[int] = None, today: Optional[date] = None
    ) -> int:
        """Load the owner's calendar (custom rates and blocked dates).

        Returns the number of calendar rows loaded.
        """
        start = today or date.today()
        horizon = horizon_days or settings.rules.availability_horizon_days
        days = await self._store.fetch_availability(
            self.equipment.id, start, start + timedelta(days=horizon)
        )
        self._calendar = {day.date: day for day in days}
        logger.info("Loaded %d calendar rows for %s", len(self._calendar), self.equipment.id)
        return len(self._calendar)

    async def select_dates(
        self, start_date: DateLike, end_date: DateLike
    ) -> Optional[CheckOutcome]:
        """Price the new range and check it against reservations.

        Returns the committed check outcome, or None when the selection
        was invalid or was superseded before its answer arrived.
        """
        self._ensure_editable()
        try:
            start = parse_storage_date(start_date)
            end = parse_storage_date(end_date)
        except (ValueError, TypeError):
            return self._reject(InvalidInput("dates", f"invalid range {start_date!r}..{end_date!r}"))

        self._start, self._end = start, end
        if not self._recalculate():
            return self._reject(self._input_error)

        token = self._tracker.begin()
        self._flow.transition(FlowTrigger.DATES_SELECTED)
        return await self._run_check(token)

    def select_insurance(self, insurance_type: Union[InsuranceType, str]) -> Optional[BookingCalculation]:
        """Change the insurance tier and reprice. Availability is unaffected."""
        self._ensure_editable()
        self._insurance = InsuranceType(insurance_type)
        if self._start is not None and self._end is not None:
            self._recalculate()
        return self._calculation

    def clear_dates(self) -> None:
        """Forget the selection; in-flight checks become stale."""
        self._ensure_editable()
        self._start = self._end = None
        self._calculation = None
        self._input_error = None
        self._tracker.invalidate()
        self._flow.transition(FlowTrigger.DATES_CLEARED)

    async def retry_check(self) -> Optional[CheckOutcome]:
        """Re-run a failed or timed-out availability check."""
        self._flow.transition(FlowTrigger.RETRY)
        token = self._tracker.begin()
        return await self._run_check(token)

    # ------------------------------------------------------------------ #
    # Payment handoff
    # ------------------------------------------------------------------ #

    def proceed_to_payment(self) -> PaymentBookingData:
        """Build the payment payload. No booking row is created here."""
        if not self.can_submit:
            raise BookingNotReadyError(
                f"Booking cannot be submitted from state '{self.state.value}'"
                + (" while availability is being checked" if self.loading else "")
            )
        calc = self._calculation
        data = PaymentBookingData(
            equipment_id=self.equipment.id,
            start_date=format_date_for_storage(self._start),
            end_date=format_date_for_storage(self._end),
            total_amount=calc.total,
            insurance_type=self._insurance,
            insurance_cost=calc.insurance,
            damage_deposit_amount=calc.deposit,
            currency=settings.pricing.currency,
        )
        self._flow.transition(FlowTrigger.PROCEED_TO_PAYMENT)
        logger.info(
            "Handing off %s %s..%s total=%s to payment",
            data.equipment_id, data.start_date, data.end_date, data.total_amount,
        )
        return data

    def cancel_payment(self) -> None:
        self._flow.transition(FlowTrigger.PAYMENT_CANCELLED)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _ensure_editable(self) -> None:
        if self.state == FlowState.PAYMENT:
            raise InvalidTransitionError("Cancel payment before changing the booking")

    def _recalculate(self) -> bool:
        result = calculate_booking_total(
            self.equipment.daily_rate,
            self._start,
            self._end,
            custom_rates=custom_rates_from_calendar(self._calendar.values()),
            insurance_type=self._insurance,
            deposit_amount=calculate_damage_deposit(self.equipment),
        )
        if result.is_ok:
            self._calculation = result.value
            self._input_error = None
            return True
        self._calculation = None
        self._input_error = result.error
        logger.info("Rejected booking input for %s: %s", self.equipment.id, result.error)
        return False

    def _reject(self, error: Optional[InvalidInput]) -> None:
        self._calculation = None
        self._input_error = error
        self._tracker.invalidate()
        self._flow.transition(FlowTrigger.DATES_INVALID)
        return None

    async def _run_check(self, token: CheckToken) -> Optional[CheckOutcome]:
        # Rental-length rules and owner-blocked nights are known locally.
        local = check_booking_conflicts_sync(self._start, self._end, [])
        local += check_blocked_dates(self._start, self._end, self._calendar)
        outcome = await self._tracker.run(
            token,
            self.equipment.id,
            self._start,
            self._end,
            exclude_booking_id=self._exclude_booking_id,
            extra_conflicts=local,
        )
        if outcome is None:
            return None
        self._flow.transition(_OUTCOME_TRIGGERS[outcome.status])
        return outcome
