"""
Offline console demo: prices and checks rentals without any backend.

Runs the real calculator, conflict checker, tracker and booking flow
against an in-memory reservation store. No Supabase, no payment
provider, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario conflict
    python console_demo.py --scenario race
"""

import argparse
import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

from rentals.availability.store import InMemoryReservationStore
from rentals.booking.formatting import format_booking_date, format_booking_duration
from rentals.booking.session import BookingNotReadyError, BookingSession
from rentals.booking.state_machine import InvalidTransitionError
from rentals.pricing.insurance import INSURANCE_OPTIONS
from rentals.schemas.equipment_schema import Equipment

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_EQUIPMENT = Equipment(
    id="kayak-01",
    title="Two-person touring kayak",
    daily_rate=Decimal("50"),
    damage_deposit_amount=Decimal("100"),
)


class DelayedStore(InMemoryReservationStore):
    """In-memory store whose answers arrive after a per-range delay."""

    def __init__(self) -> None:
        super().__init__()
        self.delays: dict[tuple[date, date], float] = {}

    async def fetch_reservations(self, equipment_id, start_date, end_date, *args, **kwargs):
        await asyncio.sleep(self.delays.get((start_date, end_date), 0.0))
        return await super().fetch_reservations(equipment_id, start_date, end_date, *args, **kwargs)


class ConsoleSession:
    """Drives a BookingSession from the terminal."""

    def __init__(self, store: Optional[InMemoryReservationStore] = None, timeout: Optional[float] = None) -> None:
        self.store = store or DelayedStore()
        self.store.add_reservation(DEMO_EQUIPMENT.id, "2024-06-10", "2024-06-15")
        self.store.set_availability(DEMO_EQUIPMENT.id, "2024-07-02", custom_rate=Decimal("65"))
        self.store.set_availability(DEMO_EQUIPMENT.id, "2024-08-01", is_available=False)
        self.booking = BookingSession(DEMO_EQUIPMENT, self.store, timeout=timeout)

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "dates 2024-07-01 2024-07-04",
            "insurance basic",
            "pay",
        ],
        "conflict": [
            "dates 2024-06-12 2024-06-20",
            "pay",
            "dates 2024-06-15 2024-06-20",
            "pay",
        ],
        "blocked": [
            "dates 2024-07-30 2024-08-03",
        ],
    }

    def show_quote(self) -> None:
        calc = self.booking.calculation
        if calc is None:
            error = self.booking.input_error
            self.say(f"{RED}No quote: {error}{RESET}" if error else "No dates selected.")
            return
        self.say(f"  {calc.days} night(s) ............ ${calc.subtotal}")
        self.say(f"  Service fee ............. ${calc.service_fee}")
        self.say(f"  Insurance ({self.booking.insurance_type.value}) ...... ${calc.insurance}")
        self.say(f"  {BOLD}Total ................... ${calc.total}{RESET}")
        self.say(f"  Refundable deposit ...... ${calc.deposit}")

    def show_availability(self) -> None:
        if self.booking.can_submit:
            self.say("  Available. Ready to book.")
            return
        for conflict in self.booking.conflicts:
            print(f"{YELLOW}  ! {conflict.message}{RESET}")
        self.system_log(f"Check status: {self.booking.check_status.value}")

    async def handle(self, command: str) -> None:
        parts = command.split()
        if not parts:
            return
        verb, args = parts[0].lower(), parts[1:]
        try:
            if verb == "dates" and len(args) == 2:
                await self.booking.select_dates(args[0], args[1])
                if self.booking.calculation is not None:
                    self.say(
                        f"{format_booking_date(args[0])} to {format_booking_date(args[1])} "
                        f"({format_booking_duration(args[0], args[1])})"
                    )
                self.show_quote()
                self.show_availability()
            elif verb == "insurance" and len(args) == 1:
                self.booking.select_insurance(args[0])
                self.show_quote()
            elif verb == "clear":
                self.booking.clear_dates()
                self.say("Dates cleared.")
            elif verb == "retry":
                await self.booking.retry_check()
                self.show_availability()
            elif verb == "pay":
                data = self.booking.proceed_to_payment()
                self.say(f"Payment handoff: {data.to_payload()}")
            elif verb == "back":
                self.booking.cancel_payment()
            else:
                self.say("Commands: dates START END | insurance none|basic|premium | clear | retry | pay | back")
        except BookingNotReadyError as exc:
            print(f"{RED}  Cannot book yet: {exc}{RESET}")
        except (InvalidTransitionError, ValueError) as exc:
            print(f"{RED}  {exc}{RESET}")
        self.system_log(f"State: {self.booking.state.value}")

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        if scenario == "race":
            await self._run_race()
            return
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        await self.booking.load_availability(today=date(2024, 6, 1))
        for step in steps:
            print(f"\n{BLUE}[Renter] {RESET}{step}")
            await self.handle(step)
        self._footer(scenario)

    async def _run_race(self) -> None:
        """Two quick selections; the first one's answer arrives last."""
        self._banner("Scenario: race")
        first = (date(2024, 6, 12), date(2024, 6, 20))
        second = (date(2024, 7, 1), date(2024, 7, 4))
        if isinstance(self.store, DelayedStore):
            self.store.delays[first] = 0.2
            self.store.delays[second] = 0.05
        print(f"\n{BLUE}[Renter] {RESET}dates {first[0]} {first[1]}  (slow answer)")
        print(f"{BLUE}[Renter] {RESET}dates {second[0]} {second[1]}  (fast answer)")
        stale, latest = await asyncio.gather(
            self.booking.select_dates(*first),
            self.booking.select_dates(*second),
        )
        self.system_log(f"First check committed: {stale is not None}")
        self.system_log(f"Second check committed: {latest is not None}")
        self.show_quote()
        self.show_availability()
        self._footer("race")

    async def run(self) -> None:
        self._banner("Interactive")
        for option in INSURANCE_OPTIONS:
            self.system_log(f"{option.type.value}: {option.label} ({option.coverage}, {option.cost_percentage}%)")
        await self.booking.load_availability(today=date(2024, 6, 1))

        while True:
            user_input = input(f"\n{BLUE}[Renter] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            await self.handle(user_input)

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  RENTAL BOOKING KERNEL - {title}{RESET}")
        print(f"{BOLD}  Equipment: {DEMO_EQUIPMENT.title} (${DEMO_EQUIPMENT.daily_rate}/day){RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _footer(self, scenario: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  State trace: {' -> '.join(self.booking.trace())}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=["booking", "conflict", "blocked", "race"],
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for availability answers (default: CONFLICT_CHECK_TIMEOUT)",
    )
    args = parser.parse_args()

    session = ConsoleSession(timeout=args.timeout)
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
