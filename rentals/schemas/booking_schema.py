"""Booking, availability and payment handoff data models."""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rentals.utils import format_date_for_storage


class InsuranceType(str, Enum):
    NONE = "none"
    BASIC = "basic"
    PREMIUM = "premium"


class BookingStatus(str, Enum):
    """Server-side lifecycle of a booking request."""

    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DECLINED = "declined"


# Reservations in these states hold the equipment for their date range.
BLOCKING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.APPROVED, BookingStatus.ACTIVE}
)


class ConflictType(str, Enum):
    OVERLAP = "overlap"
    UNAVAILABLE = "unavailable"
    TIMEOUT = "timeout"
    MINIMUM_DAYS = "minimum_days"
    MAXIMUM_DAYS = "maximum_days"


class DateRange(BaseModel):
    """Calendar range of a rental. Nights run from start_date up to end_date."""

    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days


class InsuranceOption(BaseModel):
    """One row of the insurance table shown to renters."""

    model_config = ConfigDict(frozen=True)

    type: InsuranceType
    label: str
    coverage: str
    cost_percentage: Decimal
    description: str


class BookingCalculation(BaseModel):
    """Cost breakdown for a proposed rental. Recomputed on every input change."""

    model_config = ConfigDict(frozen=True)

    daily_rate: Decimal
    days: int
    subtotal: Decimal
    service_fee: Decimal
    tax: Decimal = Decimal("0.00")
    insurance: Decimal
    deposit: Decimal
    total: Decimal


class BookingConflict(BaseModel):
    """Reason a proposed date range cannot be booked."""

    type: ConflictType
    message: str
    conflicting_dates: list[str] = Field(default_factory=list)


class ExistingReservation(BaseModel):
    """A reservation row read from the store."""

    id: str
    start_date: date
    end_date: date
    status: BookingStatus


class AvailabilityDay(BaseModel):
    """Owner calendar entry for a single date. Missing rows mean available."""

    date: date
    is_available: bool = True
    custom_rate: Optional[Decimal] = None


class PaymentBookingData(BaseModel):
    """Payload handed to the external payment-intent step."""

    model_config = ConfigDict(frozen=True)

    equipment_id: str
    start_date: str
    end_date: str
    total_amount: Decimal
    insurance_type: InsuranceType
    insurance_cost: Decimal
    damage_deposit_amount: Decimal
    currency: str = "usd"

    def to_payload(self) -> dict[str, Any]:
        """JSON body with plain numbers, as the payment function expects."""
        return {
            "equipment_id": self.equipment_id,
            "start_date": format_date_for_storage(self.start_date),
            "end_date": format_date_for_storage(self.end_date),
            "total_amount": float(self.total_amount),
            "insurance_type": self.insurance_type.value,
            "insurance_cost": float(self.insurance_cost),
            "damage_deposit_amount": float(self.damage_deposit_amount),
            "currency": self.currency,
        }
