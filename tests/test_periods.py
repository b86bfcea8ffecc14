"""Tests for period presets and the sampling step policy."""

from datetime import date, datetime

import pytest

from wardflow.membership import ALL_TIME
from wardflow.periods import (
    DEFAULT_SAMPLING_STEPS,
    end_of_day,
    lookback_range,
    resolve_period,
    step_days_for_range,
    step_days_for_span,
)

# A Wednesday afternoon
NOW = datetime(2025, 3, 12, 15, 30)


class TestResolvePeriod:
    def test_all_time(self):
        assert resolve_period("All Time", NOW) is ALL_TIME

    def test_today(self):
        today = resolve_period("Today", NOW)
        assert today.start == datetime(2025, 3, 12)
        assert today.end == datetime(2025, 3, 12, 23, 59, 59, 999000)

    def test_this_week_starts_on_sunday(self):
        week = resolve_period("This Week", NOW)
        assert week.start == datetime(2025, 3, 9)
        assert week.end == end_of_day(date(2025, 3, 15))

    def test_this_week_on_a_sunday(self):
        week = resolve_period("This Week", datetime(2025, 3, 9, 1, 0))
        assert week.start == datetime(2025, 3, 9)

    def test_this_month(self):
        month = resolve_period("This Month", NOW)
        assert month.start == datetime(2025, 3, 1)
        assert month.end == end_of_day(date(2025, 3, 31))

    def test_explicit_month(self):
        february = resolve_period("2024-02", NOW)
        assert february.start == datetime(2024, 2, 1)
        assert february.end == end_of_day(date(2024, 2, 29))

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            resolve_period("2025-13", NOW)

    def test_custom(self):
        custom = resolve_period("Custom", NOW, date(2025, 1, 5), "2025-01-07")
        assert custom.start == datetime(2025, 1, 5)
        assert custom.end == end_of_day(date(2025, 1, 7))

    def test_incomplete_custom_is_all_time(self):
        assert resolve_period("Custom", NOW, date(2025, 1, 5), None).is_all_time
        assert resolve_period("Custom", NOW).is_all_time

    def test_reversed_custom_is_malformed(self):
        custom = resolve_period("Custom", NOW, date(2025, 1, 7), date(2025, 1, 5))
        assert custom.is_malformed

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            resolve_period("Last Fortnight", NOW)


class TestLookbackRange:
    def test_preset_name(self):
        lookback = lookback_range(NOW, "7days")
        assert lookback.start == datetime(2025, 3, 5)
        assert lookback.end == NOW

    def test_days(self):
        assert lookback_range(NOW, 30).start == datetime(2025, 2, 10)

    def test_unknown_preset(self):
        with pytest.raises(ValueError):
            lookback_range(NOW, "2weeks")


class TestStepPolicy:
    @pytest.mark.parametrize(
        "span,expected",
        [(7, 1), (30, 1), (31, 3), (90, 3), (91, 7), (180, 7), (181, 15), (365, 15), (1000, 15)],
    )
    def test_default_steps(self, span, expected):
        assert step_days_for_span(span) == expected

    def test_custom_steps(self):
        assert step_days_for_span(10, [(5, 1), (20, 2)]) == 2
        assert step_days_for_span(10, []) == 1

    def test_step_for_range(self):
        assert step_days_for_range(ALL_TIME) == 1
        assert step_days_for_range(resolve_period("Today", NOW)) == 1
        assert DEFAULT_SAMPLING_STEPS[0] == (30, 1)

    @pytest.mark.parametrize(
        "lookback,expected",
        [("7days", 1), ("30days", 1), ("3months", 3), ("6months", 7), ("12months", 15)],
    )
    def test_step_for_lookback_presets(self, lookback, expected):
        assert step_days_for_range(lookback_range(NOW, lookback)) == expected
        late = datetime(2025, 6, 15, 23, 59)
        assert step_days_for_range(lookback_range(late, lookback)) == expected
