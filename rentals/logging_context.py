"""Check-id tagging for availability log lines.

A renter who changes dates quickly has several conflict checks in flight
at once, and their log lines interleave. ``check_scope`` binds a ``CHK-n``
id to the running task for the duration of one check; ``CheckIdFormatter``
renders it as a ``[CHK-n]`` prefix so the lines of one check can be
followed through the store, the conflict logic and the tracker.

Usage:
    with check_scope("CHK-12"):
        logger.info("Querying reservations")
    # 2024-07-01 10:00:00 [rentals.availability.conflicts] INFO [CHK-12] Querying reservations
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

NO_CHECK = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(check_tag)s%(message)s"

_current_check: ContextVar[str] = ContextVar("current_check", default=NO_CHECK)


def current_check_id() -> str:
    """The check id bound to this task, or ``NO_CHECK`` outside a check."""
    return _current_check.get()


@contextmanager
def check_scope(check_id: str) -> Iterator[str]:
    """Bind ``check_id`` until the block exits, then restore the previous id."""
    token = _current_check.set(check_id)
    try:
        yield check_id
    finally:
        _current_check.reset(token)


class CheckIdFilter(logging.Filter):
    """Stamps ``check_id`` on records that do not already carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "check_id"):
            record.check_id = _current_check.get()  # type: ignore[attr-defined]
        return True


class CheckIdFormatter(logging.Formatter):
    """Exposes ``%(check_tag)s``: ``"[CHK-n] "`` inside a check, empty outside."""

    def format(self, record: logging.LogRecord) -> str:
        check_id = getattr(record, "check_id", None) or _current_check.get()
        record.check_tag = "" if check_id == NO_CHECK else f"[{check_id}] "  # type: ignore[attr-defined]
        return super().format(record)


def get_check_logger(name: str) -> logging.Logger:
    """Module logger whose records carry ``check_id`` for handlers and tests."""
    logger = logging.getLogger(name)
    if not any(isinstance(f, CheckIdFilter) for f in logger.filters):
        logger.addFilter(CheckIdFilter())
    return logger
