"""Refundable damage deposit derived from a listing's configuration."""

from decimal import ROUND_HALF_UP, Decimal

from rentals.schemas.equipment_schema import Equipment

CENTS = Decimal("0.01")


def calculate_damage_deposit(equipment: Equipment) -> Decimal:
    """Fixed amount if the owner set one, else a percentage of the daily rate.

    Listings with neither hold no deposit.
    """
    if equipment.damage_deposit_amount:
        return Decimal(equipment.damage_deposit_amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    if equipment.damage_deposit_percentage:
        amount = Decimal(equipment.daily_rate) * Decimal(equipment.damage_deposit_percentage) / 100
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    return Decimal("0.00")
