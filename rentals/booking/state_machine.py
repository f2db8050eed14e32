"""
Finite state machine for the booking form.

Defines the states a renter's booking passes through between picking
dates and handing off to payment. Submission is only reachable from
AVAILABLE, so a conflicted, failed, timed-out or still-running check
always keeps the booking blocked.

Usage:
    sm = BookingFlowStateMachine()
    sm.transition(FlowTrigger.DATES_SELECTED)
    assert sm.current_state == FlowState.CHECKING
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    """All possible states of a booking form."""
    IDLE = "idle"
    INVALID_SELECTION = "invalid_selection"
    CHECKING = "checking"
    AVAILABLE = "available"
    CONFLICTED = "conflicted"
    CHECK_FAILED = "check_failed"
    TIMED_OUT = "timed_out"
    PAYMENT = "payment"


class FlowTrigger(str, Enum):
    """Events that cause state transitions."""
    DATES_SELECTED = "dates_selected"
    DATES_INVALID = "dates_invalid"
    DATES_CLEARED = "dates_cleared"
    NO_CONFLICTS = "no_conflicts"
    CONFLICTS_FOUND = "conflicts_found"
    CHECK_FAILED = "check_failed"
    CHECK_TIMED_OUT = "check_timed_out"
    RETRY = "retry"
    PROCEED_TO_PAYMENT = "proceed_to_payment"
    PAYMENT_CANCELLED = "payment_cancelled"


@dataclass
class Transition:
    """A single valid state transition."""
    from_state: FlowState
    to_state: FlowState
    trigger: FlowTrigger


@dataclass
class StateEntry:
    """Recorded history entry for a state visit."""
    state: FlowState
    entered_at: datetime
    trigger: Optional[FlowTrigger] = None


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""


# States from which the renter can still edit dates.
_EDITABLE = [
    FlowState.IDLE,
    FlowState.INVALID_SELECTION,
    FlowState.CHECKING,
    FlowState.AVAILABLE,
    FlowState.CONFLICTED,
    FlowState.CHECK_FAILED,
    FlowState.TIMED_OUT,
]


class BookingFlowStateMachine:
    """
    Deterministic state machine for one booking form.

    Every transition must be explicitly defined; anything else is rejected
    with the list of triggers allowed from the current state.
    """

    TRANSITIONS: list[Transition] = [
        # --- Date edits, allowed anywhere before payment ---
        *[Transition(s, FlowState.CHECKING, FlowTrigger.DATES_SELECTED) for s in _EDITABLE],
        *[Transition(s, FlowState.INVALID_SELECTION, FlowTrigger.DATES_INVALID) for s in _EDITABLE],
        *[Transition(s, FlowState.IDLE, FlowTrigger.DATES_CLEARED) for s in _EDITABLE],

        # --- Check results ---
        Transition(FlowState.CHECKING, FlowState.AVAILABLE, FlowTrigger.NO_CONFLICTS),
        Transition(FlowState.CHECKING, FlowState.CONFLICTED, FlowTrigger.CONFLICTS_FOUND),
        Transition(FlowState.CHECKING, FlowState.CHECK_FAILED, FlowTrigger.CHECK_FAILED),
        Transition(FlowState.CHECKING, FlowState.TIMED_OUT, FlowTrigger.CHECK_TIMED_OUT),

        # --- Recovery ---
        Transition(FlowState.CHECK_FAILED, FlowState.CHECKING, FlowTrigger.RETRY),
        Transition(FlowState.TIMED_OUT, FlowState.CHECKING, FlowTrigger.RETRY),

        # --- Payment handoff ---
        Transition(FlowState.AVAILABLE, FlowState.PAYMENT, FlowTrigger.PROCEED_TO_PAYMENT),
        Transition(FlowState.PAYMENT, FlowState.AVAILABLE, FlowTrigger.PAYMENT_CANCELLED),
    ]

    def __init__(self) -> None:
        self._current_state = FlowState.IDLE
        self._history: list[StateEntry] = [
            StateEntry(state=FlowState.IDLE, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_state(self) -> FlowState:
        return self._current_state

    def transition(self, trigger: FlowTrigger) -> FlowState:
        """
        Execute a state transition.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == self._current_state and t.trigger == trigger:
                old_state = self._current_state
                self._current_state = t.to_state
                self._history.append(StateEntry(
                    state=self._current_state,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Booking flow: %s -> %s (trigger: %s)",
                    old_state.value, self._current_state.value, trigger.value,
                )
                return self._current_state

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_state.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self) -> list[FlowTrigger]:
        """Return all triggers valid from the current state."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == self._current_state]

    def get_state_trace(self) -> list[str]:
        """Return ordered list of state names visited."""
        return [entry.state.value for entry in self._history]

    def can_submit(self) -> bool:
        return self._current_state == FlowState.AVAILABLE
