"""
Reporting period presets and sampling step policy.

This is the policy layer above the engine: it turns the period choices offered
to users ("Today", "This Week", "2025-01", a custom range, ...) into explicit
``DateRange`` values, and picks a sampling step for an occupancy chart. The
current time is always passed in as ``now`` so that results are reproducible.

Period presets
--------------
- "All Time": ``ALL_TIME``, no filtering
- "Today": 00:00 to 23:59:59.999 of the day of ``now``
- "This Week": Sunday 00:00 to Saturday 23:59:59.999 of the week of ``now``
- "This Month": first to last day of the month of ``now``
- "YYYY-MM": first to last day of that month
- "Custom": 00:00 of ``start_date`` to 23:59:59.999 of ``end_date``; when
  either date is missing the range is incomplete and ``ALL_TIME`` is used

Occupancy lookbacks
-------------------
``LOOKBACK_DAYS`` maps the occupancy chart presets ("7days", ..., "12months")
to a number of days, see :func:`lookback_range`.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence, Tuple, Union

from wardflow.membership import ALL_TIME, DateRange
from wardflow.records import parse_instant, to_local_naive

ALL_TIME_PERIOD = "All Time"
TODAY = "Today"
THIS_WEEK = "This Week"
THIS_MONTH = "This Month"
CUSTOM = "Custom"

PERIOD_PRESETS = [ALL_TIME_PERIOD, TODAY, THIS_WEEK, THIS_MONTH, CUSTOM]

LOOKBACK_DAYS = {
    "7days": 7,
    "30days": 30,
    "3months": 90,
    "6months": 180,
    "12months": 365,
}

# (maximum span in days, step in days); spans beyond the last entry use its step
DEFAULT_SAMPLING_STEPS: Tuple[Tuple[int, int], ...] = (
    (30, 1),
    (90, 3),
    (180, 7),
    (365, 15),
)

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")
_END_OF_DAY = time(23, 59, 59, 999000)

DateLike = Union[date, datetime, str]


def start_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, time.min)


def end_of_day(day: Union[date, datetime]) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    return datetime.combine(day, _END_OF_DAY)


def month_range(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(
        start_of_day(date(year, month, 1)), end_of_day(date(year, month, last_day))
    )


def _as_day(value: Optional[DateLike]) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_local_naive(value).date()
    if isinstance(value, date):
        return value
    parsed = parse_instant(value)
    return parsed.date() if parsed is not None else None


def resolve_period(
    period: str,
    now: datetime,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
) -> DateRange:
    """Turn a period preset into a ``DateRange``.

    Parameters
    ----------
    period : str
        One of ``PERIOD_PRESETS`` or a "YYYY-MM" month
    now : datetime
        Current time, used by the relative presets
    start_date, end_date : date, datetime or str, optional
        Bounds of a "Custom" period

    Returns
    -------
    DateRange
        ``ALL_TIME`` for "All Time" and for incomplete custom ranges

    Raises
    ------
    ValueError
        If ``period`` is not a known preset or a valid "YYYY-MM" month
    """
    now = to_local_naive(now)

    match = _MONTH_PATTERN.match(period or "")
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month in period {period!r}")
        return month_range(year, month)

    if period == ALL_TIME_PERIOD:
        return ALL_TIME
    if period == TODAY:
        return DateRange(start_of_day(now), end_of_day(now))
    if period == THIS_WEEK:
        # Python weekdays start on Monday; reporting weeks start on Sunday
        days_since_sunday = (now.weekday() + 1) % 7
        first_day = now.date() - timedelta(days=days_since_sunday)
        return DateRange(
            start_of_day(first_day), end_of_day(first_day + timedelta(days=6))
        )
    if period == THIS_MONTH:
        return month_range(now.year, now.month)
    if period == CUSTOM:
        first_day = _as_day(start_date)
        last_day = _as_day(end_date)
        if first_day is None or last_day is None:
            return ALL_TIME
        return DateRange(start_of_day(first_day), end_of_day(last_day))

    raise ValueError(
        f"Unknown period {period!r}; expected one of {PERIOD_PRESETS} or 'YYYY-MM'"
    )


def lookback_range(now: datetime, days: Union[int, str]) -> DateRange:
    """Range from midnight ``days`` days before ``now`` up to ``now``.

    ``days`` may also be one of the ``LOOKBACK_DAYS`` preset names.
    """
    if isinstance(days, str):
        if days not in LOOKBACK_DAYS:
            raise ValueError(
                f"Unknown lookback {days!r}; expected one of {sorted(LOOKBACK_DAYS)}"
            )
        days = LOOKBACK_DAYS[days]
    now = to_local_naive(now)
    return DateRange(start_of_day(now - timedelta(days=days)), now)


def step_days_for_span(
    span_days: float, steps: Sequence[Tuple[int, int]] = DEFAULT_SAMPLING_STEPS
) -> int:
    """Pick a sampling step for a chart covering ``span_days`` days.

    Parameters
    ----------
    span_days : float
        Length of the sampled range in days
    steps : sequence of (max_span_days, step_days)
        Step table sorted by span; spans longer than the last entry use its step

    Returns
    -------
    int
        Step in days, at least 1
    """
    if not steps:
        return 1
    for max_span, step in sorted(steps):
        if span_days <= max_span:
            return max(1, step)
    return max(1, sorted(steps)[-1][1])


def step_days_for_range(
    date_range: DateRange, steps: Sequence[Tuple[int, int]] = DEFAULT_SAMPLING_STEPS
) -> int:
    """Sampling step for a range, measured in calendar days between its bounds.

    A lookback from midnight 30 days ago up to the current time spans 30
    calendar days and is sampled daily.
    """
    if date_range.is_all_time or date_range.is_malformed:
        return 1
    span = (date_range.end.date() - date_range.start.date()).days
    return step_days_for_span(span, steps)
