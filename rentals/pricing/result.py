"""
Tagged result type returned by the price calculator.

Bad numeric or date input yields ``Err(InvalidInput(...))`` instead of a
calculation full of NaN. Callers branch on ``is_ok`` or call ``unwrap()``
to get the value or an exception.

Usage:
    result = calculate_booking_total(50, "2024-07-01", "2024-07-04")
    if result.is_ok:
        show(result.value)
    else:
        warn(result.error.reason)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class InvalidInput:
    """Which input was rejected and why."""
    field: str
    reason: str

    def __str__(self) -> str:
        return f"{self.field}: {self.reason}"


class InvalidBookingInputError(ValueError):
    """Raised by ``Err.unwrap()``."""

    def __init__(self, error: InvalidInput) -> None:
        super().__init__(str(error))
        self.error = error


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: InvalidInput

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        raise InvalidBookingInputError(self.error)


CalculationResult = Union[Ok[T], Err]
