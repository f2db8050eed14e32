"""
Booking price calculator.

Pure function of its inputs: the nightly subtotal (with per-date custom
rates), the service fee, the insurance cost and the refundable deposit.
The deposit is carried on the result but is never part of ``total``.

Usage:
    result = calculate_booking_total(
        Decimal("50"), "2024-07-01", "2024-07-04",
        insurance_type=InsuranceType.BASIC, deposit_amount=Decimal("100"),
    )
    calc = result.unwrap()
    assert calc.total == calc.subtotal + calc.service_fee + calc.insurance
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from rentals.config import settings
from rentals.pricing.insurance import calculate_insurance_cost
from rentals.pricing.result import CalculationResult, Err, InvalidInput, Ok
from rentals.schemas.booking_schema import AvailabilityDay, BookingCalculation, InsuranceType
from rentals.utils import DateLike, count_nights, iter_nights, parse_storage_date

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
# Keeps rate * nights rounded to cents inside the default 28-digit context.
MAX_AMOUNT = Decimal("1e12")

Amount = Union[Decimal, int, float, str]
CustomRates = Union[Mapping[DateLike, Optional[Amount]], Iterable[AvailabilityDay]]


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _to_decimal(value: Amount, field: str) -> Union[Decimal, InvalidInput]:
    if isinstance(value, bool):
        return InvalidInput(field, f"expected a number, got {value!r}")
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return InvalidInput(field, f"expected a number, got {value!r}")
    if not number.is_finite():
        return InvalidInput(field, f"must be finite, got {value!r}")
    if number.copy_abs() >= MAX_AMOUNT:
        return InvalidInput(field, f"amount out of range, got {value!r}")
    return number


def custom_rates_from_calendar(days: Iterable[AvailabilityDay]) -> dict[date, Decimal]:
    """Keep only calendar rows that override the nightly rate."""
    return {day.date: day.custom_rate for day in days if day.custom_rate}


def _normalize_custom_rates(
    custom_rates: Optional[CustomRates],
) -> Union[dict[date, Optional[Decimal]], InvalidInput]:
    if not custom_rates:
        return {}
    if not isinstance(custom_rates, Mapping):
        custom_rates = custom_rates_from_calendar(custom_rates)

    rates: dict[date, Optional[Decimal]] = {}
    for raw_date, raw_rate in custom_rates.items():
        try:
            night = parse_storage_date(raw_date)
        except (ValueError, TypeError):
            return InvalidInput("custom_rates", f"invalid date {raw_date!r}")
        if raw_rate is None:
            rates[night] = None
            continue
        rate = _to_decimal(raw_rate, "custom_rates")
        if isinstance(rate, InvalidInput):
            return rate
        if rate < 0:
            return InvalidInput("custom_rates", f"negative rate for {night.isoformat()}")
        rates[night] = rate
    return rates


def calculate_booking_days(start_date: DateLike, end_date: DateLike) -> int:
    """Number of nights between the two dates."""
    return count_nights(start_date, end_date)


def calculate_booking_total(
    daily_rate: Amount,
    start_date: DateLike,
    end_date: DateLike,
    custom_rates: Optional[CustomRates] = None,
    insurance_type: Union[InsuranceType, str, None] = None,
    deposit_amount: Optional[Amount] = None,
    *,
    service_fee_rate: Optional[Amount] = None,
) -> CalculationResult[BookingCalculation]:
    """
    Price a rental over the nights ``[start_date, end_date)``.

    Args:
        daily_rate: Base nightly rate, must be positive.
        start_date: First night, ``YYYY-MM-DD`` or a date.
        end_date: Return date (not charged), ``YYYY-MM-DD`` or a date.
        custom_rates: Per-date overrides. A missing, empty or zero override
            falls back to ``daily_rate``.
        insurance_type: Tier to price, ``None`` meaning no insurance.
        deposit_amount: Refundable deposit to carry on the result.
        service_fee_rate: Overrides the configured fee rate.

    Returns:
        ``Ok(BookingCalculation)`` or ``Err(InvalidInput)``.
    """
    rate = _to_decimal(daily_rate, "daily_rate")
    if isinstance(rate, InvalidInput):
        return Err(rate)
    if rate <= 0:
        return Err(InvalidInput("daily_rate", f"must be positive, got {daily_rate!r}"))

    try:
        start = parse_storage_date(start_date)
    except (ValueError, TypeError):
        return Err(InvalidInput("start_date", f"invalid date {start_date!r}"))
    try:
        end = parse_storage_date(end_date)
    except (ValueError, TypeError):
        return Err(InvalidInput("end_date", f"invalid date {end_date!r}"))

    days = count_nights(start, end)
    if days < 1:
        return Err(InvalidInput("end_date", "must be at least one day after start_date"))

    tier: Optional[InsuranceType] = None
    if insurance_type is not None:
        try:
            tier = InsuranceType(insurance_type)
        except ValueError:
            return Err(InvalidInput("insurance_type", f"unknown tier {insurance_type!r}"))

    deposit = Decimal("0")
    if deposit_amount is not None:
        parsed = _to_decimal(deposit_amount, "deposit_amount")
        if isinstance(parsed, InvalidInput):
            return Err(parsed)
        if parsed < 0:
            return Err(InvalidInput("deposit_amount", f"must not be negative, got {deposit_amount!r}"))
        deposit = parsed

    fee_source = settings.pricing.service_fee_rate if service_fee_rate is None else service_fee_rate
    fee_rate = _to_decimal(fee_source, "service_fee_rate")
    if isinstance(fee_rate, InvalidInput):
        return Err(fee_rate)
    if not 0 <= fee_rate < 1:
        return Err(InvalidInput("service_fee_rate", f"must be in [0, 1), got {fee_source!r}"))

    overrides = _normalize_custom_rates(custom_rates)
    if isinstance(overrides, InvalidInput):
        return Err(overrides)

    if overrides:
        subtotal = sum((overrides.get(night) or rate for night in iter_nights(start, end)), Decimal("0"))
    else:
        subtotal = rate * days
    subtotal = _money(subtotal)

    service_fee = _money(subtotal * fee_rate)
    insurance = calculate_insurance_cost(subtotal, tier)
    total = subtotal + service_fee + insurance

    logger.debug(
        "Priced %d nights at base %s: subtotal=%s fee=%s insurance=%s total=%s",
        days, rate, subtotal, service_fee, insurance, total,
    )
    return Ok(BookingCalculation(
        daily_rate=rate,
        days=days,
        subtotal=subtotal,
        service_fee=service_fee,
        insurance=insurance,
        deposit=_money(deposit),
        total=total,
    ))
