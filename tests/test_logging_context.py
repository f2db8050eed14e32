"""Tests for check-id tagging of log lines."""

import logging

import pytest

from rentals.config import _log_handler
from rentals.logging_context import (
    NO_CHECK,
    CheckIdFilter,
    CheckIdFormatter,
    check_scope,
    current_check_id,
)


def _record(msg="Querying reservations"):
    return logging.LogRecord("rentals.test", logging.INFO, __file__, 1, msg, None, None)


class TestCheckScope:
    def test_default_outside_a_check(self):
        assert current_check_id() == NO_CHECK

    def test_nested_scopes_restore(self):
        with check_scope("CHK-1"):
            with check_scope("CHK-2"):
                assert current_check_id() == "CHK-2"
            assert current_check_id() == "CHK-1"
        assert current_check_id() == NO_CHECK

    def test_reset_on_error(self):
        with pytest.raises(RuntimeError):
            with check_scope("CHK-3"):
                raise RuntimeError("store exploded")
        assert current_check_id() == NO_CHECK


class TestFormatting:
    def test_prefix_inside_check(self):
        formatter = CheckIdFormatter("%(check_tag)s%(message)s")
        with check_scope("CHK-7"):
            assert formatter.format(_record()) == "[CHK-7] Querying reservations"

    def test_no_prefix_outside_check(self):
        formatter = CheckIdFormatter("%(check_tag)s%(message)s")
        assert formatter.format(_record()) == "Querying reservations"

    def test_stamped_id_wins_over_current(self):
        record = _record()
        with check_scope("CHK-4"):
            CheckIdFilter().filter(record)
        formatter = CheckIdFormatter("%(check_tag)s%(message)s")
        with check_scope("CHK-5"):
            assert formatter.format(record).startswith("[CHK-4]")

    def test_configured_handler_renders_check_id(self):
        handler = _log_handler()
        with check_scope("CHK-9"):
            line = handler.format(_record())
        assert "[rentals.test] INFO [CHK-9] Querying reservations" in line
