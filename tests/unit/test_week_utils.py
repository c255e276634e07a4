"""Unit tests for calendar week and weeks-since-join computation."""

from datetime import date, datetime, timedelta, timezone

from karmaledger.week_utils import (
    calendar_week_for_date,
    current_calendar_week,
    ensure_utc,
    get_monday,
    weeks_between,
    week_upper_bound,
    weeks_since_join,
)


class TestCalendarWeek:
    """Weeks run Monday 00:00:00.000 to Sunday 23:59:59.999 UTC."""

    def test_wednesday_maps_to_surrounding_monday_and_sunday(self):
        wednesday = datetime(2026, 10, 14, 15, 30, tzinfo=timezone.utc)
        start, end = current_calendar_week(wednesday)
        assert start == datetime(2026, 10, 12, 0, 0, 0, tzinfo=timezone.utc)
        assert end.date() == date(2026, 10, 18)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)
        assert end.microsecond == 999000

    def test_sunday_is_last_day_of_week(self):
        sunday = datetime(2026, 10, 18, 22, 0, tzinfo=timezone.utc)
        start, _ = calendar_week_for_date(sunday)
        assert start.date() == date(2026, 10, 12)

    def test_monday_starts_a_new_week(self):
        monday = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)
        start, _ = calendar_week_for_date(monday)
        assert start.date() == date(2026, 10, 19)

    def test_accepts_plain_dates(self):
        start, end = calendar_week_for_date(date(2026, 10, 16))
        assert start.weekday() == 0
        assert end.weekday() == 6

    def test_non_utc_input_is_converted_first(self):
        # Monday 01:00 at UTC+2 is still Sunday in UTC
        plus_two = timezone(timedelta(hours=2))
        dt = datetime(2026, 10, 19, 1, 0, tzinfo=plus_two)
        assert get_monday(dt) == date(2026, 10, 12)

    def test_window_is_consecutive(self):
        _, end = calendar_week_for_date(date(2026, 10, 14))
        next_start, _ = calendar_week_for_date(date(2026, 10, 21))
        assert next_start - end == timedelta(milliseconds=1)

    def test_upper_bound_is_next_monday(self):
        start, end = calendar_week_for_date(date(2026, 10, 14))
        bound = week_upper_bound(start)
        assert bound == datetime(2026, 10, 19, tzinfo=timezone.utc)
        assert end < datetime(2026, 10, 18, 23, 59, 59, 999500, tzinfo=timezone.utc) < bound


class TestWeeksSinceJoin:
    """Personal week number: max(1, ceil(days / 7))."""

    joined = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_join_day_is_week_one(self):
        assert weeks_since_join(self.joined, self.joined) == 1

    def test_first_seven_days_are_week_one(self):
        assert weeks_since_join(self.joined, self.joined + timedelta(days=7)) == 1

    def test_eighth_day_is_week_two(self):
        assert weeks_since_join(self.joined, self.joined + timedelta(days=8)) == 2

    def test_partial_days_are_floored(self):
        assert weeks_since_join(self.joined, self.joined + timedelta(days=7, hours=23)) == 1

    def test_event_before_join_clamps_to_week_one(self):
        assert weeks_between(self.joined, self.joined - timedelta(days=3)) == 1

    def test_naive_datetimes_are_treated_as_utc(self):
        naive_join = datetime(2026, 1, 1, 12, 0)
        assert weeks_between(naive_join, self.joined + timedelta(days=15)) == 3


def test_ensure_utc_attaches_timezone():
    assert ensure_utc(datetime(2026, 1, 1)).tzinfo == timezone.utc
