"""
Generation-counter guard for overlapping conflict checks.

Each date selection calls ``begin()`` and receives a ``CheckToken``. The
token travels into ``run()``, which awaits the check and commits the
outcome only if no newer token was issued in the meantime. Stale
responses are dropped whatever order the network returns them in; the
underlying request is not cancelled.

Usage:
    tracker = ConflictCheckTracker(store)
    token = tracker.begin()
    outcome = await tracker.run(token, "eq-1", "2024-06-12", "2024-06-20")
    if outcome is None:
        ...  # superseded by a newer selection
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from rentals.availability.conflicts import check_booking_conflicts
from rentals.availability.store import ReservationStore
from rentals.logging_context import check_scope, get_check_logger
from rentals.schemas.booking_schema import BookingConflict, ConflictType
from rentals.utils import DateLike

logger = get_check_logger(__name__)


class CheckStatus(str, Enum):
    """What the most recent committed check concluded."""

    IDLE = "idle"
    CHECKING = "checking"
    CLEAR = "clear"
    CONFLICTED = "conflicted"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class CheckToken:
    generation: int


@dataclass(frozen=True)
class CheckOutcome:
    """A committed check result."""
    token: CheckToken
    status: CheckStatus
    conflicts: list[BookingConflict] = field(default_factory=list)


def _status_for(
    store_conflicts: list[BookingConflict], all_conflicts: list[BookingConflict]
) -> CheckStatus:
    # The store only reports timeout/unavailable when it could not answer.
    if any(c.type == ConflictType.TIMEOUT for c in store_conflicts):
        return CheckStatus.TIMED_OUT
    if any(c.type == ConflictType.UNAVAILABLE for c in store_conflicts):
        return CheckStatus.FAILED
    return CheckStatus.CONFLICTED if all_conflicts else CheckStatus.CLEAR


class ConflictCheckTracker:
    """Owns the latest committed conflict state for one booking form."""

    def __init__(self, store: ReservationStore, timeout: Optional[float] = None) -> None:
        self._store = store
        self._timeout = timeout
        self._generation = 0
        self._status = CheckStatus.IDLE
        self._conflicts: list[BookingConflict] = []

    @property
    def status(self) -> CheckStatus:
        return self._status

    @property
    def conflicts(self) -> list[BookingConflict]:
        return list(self._conflicts)

    @property
    def loading(self) -> bool:
        return self._status == CheckStatus.CHECKING

    @property
    def generation(self) -> int:
        return self._generation

    def begin(self) -> CheckToken:
        """Issue a new token, superseding every earlier one."""
        self._generation += 1
        self._status = CheckStatus.CHECKING
        return CheckToken(self._generation)

    def invalidate(self) -> None:
        """Drop all in-flight checks and return to idle."""
        self._generation += 1
        self._status = CheckStatus.IDLE
        self._conflicts = []

    def is_current(self, token: CheckToken) -> bool:
        return token.generation == self._generation

    async def run(
        self,
        token: CheckToken,
        equipment_id: str,
        start_date: DateLike,
        end_date: DateLike,
        *,
        exclude_booking_id: Optional[str] = None,
        extra_conflicts: Optional[list[BookingConflict]] = None,
    ) -> Optional[CheckOutcome]:
        """Run a check under ``token``. Returns None if it went stale.

        ``extra_conflicts`` (blocked calendar dates, for instance) are
        committed together with the store's answer.
        """
        with check_scope(f"CHK-{token.generation}"):
            conflicts = await check_booking_conflicts(
                self._store,
                equipment_id,
                start_date,
                end_date,
                exclude_booking_id=exclude_booking_id,
                timeout=self._timeout,
            )
            if not self.is_current(token):
                logger.debug(
                    "Discarding stale conflict check (current is CHK-%d)", self._generation
                )
                return None

            merged = list(extra_conflicts or []) + conflicts
            self._conflicts = merged
            self._status = _status_for(conflicts, merged)
            logger.debug("Committed %s with %d conflict(s)", self._status.value, len(merged))
            return CheckOutcome(token=token, status=self._status, conflicts=list(merged))
