"""Insurance tiers offered to renters, with coverage text and cost rate."""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from rentals.schemas.booking_schema import InsuranceOption, InsuranceType

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

INSURANCE_OPTIONS: list[InsuranceOption] = [
    InsuranceOption(
        type=InsuranceType.NONE,
        label="No Insurance",
        coverage="No coverage",
        cost_percentage=Decimal("0"),
        description="You assume full liability for any damage",
    ),
    InsuranceOption(
        type=InsuranceType.BASIC,
        label="Basic Protection",
        coverage="Up to 50% of equipment value",
        cost_percentage=Decimal("5"),
        description="Covers accidental damage up to 50% of equipment value",
    ),
    InsuranceOption(
        type=InsuranceType.PREMIUM,
        label="Premium Protection",
        coverage="Up to 100% of equipment value",
        cost_percentage=Decimal("10"),
        description="Full coverage for accidental damage",
    ),
]

_OPTIONS_BY_TYPE: dict[InsuranceType, InsuranceOption] = {
    option.type: option for option in INSURANCE_OPTIONS
}


def _coerce_type(insurance_type: Union[InsuranceType, str, None]) -> Optional[InsuranceType]:
    if insurance_type is None:
        return None
    try:
        return InsuranceType(insurance_type)
    except ValueError:
        return None


def get_insurance_option(insurance_type: Union[InsuranceType, str]) -> Optional[InsuranceOption]:
    """Look up the option for a tier. Unknown tiers return None."""
    tier = _coerce_type(insurance_type)
    if tier is None:
        return None
    return _OPTIONS_BY_TYPE.get(tier)


def calculate_insurance_cost(
    rental_subtotal: Decimal, insurance_type: Union[InsuranceType, str, None]
) -> Decimal:
    """Subtotal times the tier's percentage, rounded to cents.

    ``none`` and unrecognized tiers cost nothing.
    """
    option = get_insurance_option(insurance_type) if insurance_type is not None else None
    if option is None:
        if insurance_type is not None:
            logger.debug("Unknown insurance tier %r priced at zero", insurance_type)
        return Decimal("0.00")
    cost = Decimal(rental_subtotal) * option.cost_percentage / Decimal(100)
    return cost.quantize(CENTS, rounding=ROUND_HALF_UP)
