"""Equipment listing data models."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel


class Equipment(BaseModel):
    """The subset of a listing the booking kernel needs."""
    id: str
    title: str = ""
    daily_rate: Decimal
    damage_deposit_amount: Optional[Decimal] = None
    damage_deposit_percentage: Optional[Decimal] = None
