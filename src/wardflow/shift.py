"""Shift window filtering.

A shift window is a recurring daily time-of-day interval such as 08:00-20:00.
When the start is later than the end (20:00-08:00) the window runs overnight
and wraps past midnight. Both ends are inclusive, at minute resolution.
"""

from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional, Union

from wardflow.lifecycle import event_instant
from wardflow.records import PatientRecord, to_local_naive

TimeOfDay = Union[str, time]

DEFAULT_SHIFT_START = "08:00"
DEFAULT_SHIFT_END = "20:00"


def parse_time_of_day(value: TimeOfDay) -> time:
    """Parse "HH:MM" text (or pass a ``datetime.time`` through)."""
    if isinstance(value, time):
        return value
    try:
        hour_text, minute_text = str(value).strip().split(":")
        return time(int(hour_text), int(minute_text))
    except ValueError as exc:
        raise ValueError(f"Expected a time of day as 'HH:MM', got {value!r}") from exc


def minutes_since_midnight(value: Union[datetime, time]) -> int:
    return value.hour * 60 + value.minute


def in_shift(instant: datetime, start: TimeOfDay, end: TimeOfDay) -> bool:
    """Return True if the local time of day of ``instant`` falls in the window.

    Parameters
    ----------
    instant : datetime
        Instant to test; aware instants are converted to local time first
    start : str or datetime.time
        Window start, "HH:MM"
    end : str or datetime.time
        Window end, "HH:MM"; earlier than ``start`` for an overnight window

    Returns
    -------
    bool
    """
    minute = minutes_since_midnight(to_local_naive(instant))
    start_minute = minutes_since_midnight(parse_time_of_day(start))
    end_minute = minutes_since_midnight(parse_time_of_day(end))

    if start_minute <= end_minute:
        return start_minute <= minute <= end_minute
    return minute >= start_minute or minute <= end_minute


@dataclass(frozen=True)
class ShiftWindow:
    """Shift filter settings as chosen by the user."""

    enabled: bool = False
    start: TimeOfDay = DEFAULT_SHIFT_START
    end: TimeOfDay = DEFAULT_SHIFT_END

    def __post_init__(self):
        # Fail on bad text when the window is built, not on first use
        object.__setattr__(self, "start", parse_time_of_day(self.start))
        object.__setattr__(self, "end", parse_time_of_day(self.end))

    @property
    def is_overnight(self) -> bool:
        return self.start > self.end

    def contains(self, instant: Optional[datetime]) -> bool:
        if not self.enabled:
            return True
        if instant is None:
            return False
        return in_shift(instant, self.start, self.end)

    def matches(self, record: PatientRecord) -> bool:
        """Test the record's defining event (exit for terminal outcomes, else admission).

        Records with an unrecognised outcome never match an enabled window.
        """
        if not self.enabled:
            return True
        if record.outcome is None:
            return False
        return self.contains(event_instant(record))
