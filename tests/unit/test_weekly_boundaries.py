"""Unit tests for Friday-aligned week scopes."""

from datetime import date, datetime, timezone

import pytest

from updown.leaderboard.week_utils import (
    get_friday,
    get_previous_week_id,
    get_week_boundaries,
    get_week_id,
    parse_week_id,
)


def _ms(*args: int) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


class TestWeekId:
    """Week scopes start Friday 00:00 UTC."""

    def test_friday_starts_its_own_week(self):
        assert get_week_id(_ms(2026, 10, 16, 0, 0, 0)) == "2026-10-16"

    def test_thursday_belongs_to_previous_friday(self):
        assert get_week_id(_ms(2026, 10, 15, 23, 59, 59)) == "2026-10-09"

    def test_whole_week_shares_an_id(self):
        ids = {get_week_id(_ms(2026, 10, day, 12, 0, 0)) for day in range(16, 23)}
        assert ids == {"2026-10-16"}

    def test_previous_week_id(self):
        assert get_previous_week_id(_ms(2026, 10, 18, 8, 0, 0)) == "2026-10-09"

    def test_get_friday_from_date(self):
        assert get_friday(date(2026, 10, 20)) == date(2026, 10, 16)


class TestWeekBoundaries:
    def test_boundaries_span_seven_days(self):
        start, end = get_week_boundaries("2026-10-16")
        assert start == datetime(2026, 10, 16, tzinfo=timezone.utc)
        assert (end - start).days == 7
        assert end.weekday() == 4

    def test_non_friday_rejected(self):
        with pytest.raises(ValueError):
            parse_week_id("2026-10-15")

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_week_id("last-week")
