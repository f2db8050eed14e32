from rentals.pricing.calculator import (
    calculate_booking_days,
    calculate_booking_total,
    custom_rates_from_calendar,
)
from rentals.pricing.deposit import calculate_damage_deposit
from rentals.pricing.insurance import (
    INSURANCE_OPTIONS,
    calculate_insurance_cost,
    get_insurance_option,
)
from rentals.pricing.result import Err, InvalidBookingInputError, InvalidInput, Ok

__all__ = [
    "calculate_booking_total",
    "calculate_booking_days",
    "custom_rates_from_calendar",
    "calculate_damage_deposit",
    "INSURANCE_OPTIONS",
    "calculate_insurance_cost",
    "get_insurance_option",
    "Ok",
    "Err",
    "InvalidInput",
    "InvalidBookingInputError",
]
