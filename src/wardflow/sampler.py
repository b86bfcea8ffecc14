"""
Occupancy time series.

This submodule samples the occupied bed count of one or more units across a
date range, for occupancy charts. Sample timestamps are midnight-aligned: the
first sample is 00:00 on the day of ``range_start`` and each following sample
is ``step_days`` later, up to and including ``range_end`` when a step lands on
it exactly.

The sampler has no step policy of its own; see
:func:`wardflow.periods.step_days_for_span` for the policy used by the charts.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Union

import pandas as pd

from wardflow.occupancy import is_active_at
from wardflow.periods import start_of_day
from wardflow.records import PatientRecord, Unit, to_local_naive


@dataclass(frozen=True)
class OccupancySample:
    """Occupied bed counts per unit at one instant."""

    timestamp: datetime
    per_unit_counts: Dict[Unit, int]

    @property
    def total(self) -> int:
        return sum(self.per_unit_counts.values())


def sample_timestamps(
    range_start: datetime, range_end: datetime, step_days: int
) -> List[datetime]:
    """Midnight-aligned sample instants; empty when ``range_start > range_end``.

    Raises
    ------
    ValueError
        If ``step_days`` is less than 1
    """
    if step_days < 1:
        raise ValueError(f"step_days must be at least 1, got {step_days}")

    range_start = to_local_naive(range_start)
    range_end = to_local_naive(range_end)
    if range_start > range_end:
        return []

    timestamps = []
    current = start_of_day(range_start)
    step = timedelta(days=step_days)
    while current <= range_end:
        timestamps.append(current)
        current = current + step
    return timestamps


def sample(
    population: Iterable[PatientRecord],
    units: Union[Unit, Sequence[Unit], None],
    range_start: datetime,
    range_end: datetime,
    step_days: int,
) -> List[OccupancySample]:
    """Sample occupancy per unit across a date range.

    Parameters
    ----------
    population : iterable of PatientRecord
        Full patient population
    units : Unit, sequence of Unit or None
        Units to count; ``None`` counts every unit
    range_start : datetime
        Start of the range; sampling starts at midnight of this day
    range_end : datetime
        Inclusive end of the range
    step_days : int
        Days between consecutive samples

    Returns
    -------
    List[OccupancySample]
        One sample per timestamp, each with a count for every requested unit.
        Empty when ``range_start`` is after ``range_end``.
    """
    if units is None:
        units = list(Unit)
    elif isinstance(units, Unit):
        units = [units]
    else:
        units = list(units)

    timestamps = sample_timestamps(range_start, range_end, step_days)
    if not timestamps:
        return []

    # Partition once so each sample only scans the records of requested units
    by_unit: Dict[Unit, List[PatientRecord]] = {unit: [] for unit in units}
    for record in population:
        if record.unit in by_unit:
            by_unit[record.unit].append(record)

    samples = []
    for timestamp in timestamps:
        counts = {
            unit: sum(1 for record in records if is_active_at(record, timestamp))
            for unit, records in by_unit.items()
        }
        samples.append(OccupancySample(timestamp=timestamp, per_unit_counts=counts))
    return samples


def samples_to_frame(
    samples: Sequence[OccupancySample], units: Optional[Sequence[Unit]] = None
) -> pd.DataFrame:
    """Convert samples to a DataFrame indexed by timestamp, one column per unit name."""
    if units is None:
        units = list(samples[0].per_unit_counts) if samples else []
    df = pd.DataFrame(
        [
            {unit.name: s.per_unit_counts.get(unit, 0) for unit in units}
            for s in samples
        ],
        index=pd.DatetimeIndex([s.timestamp for s in samples], name="timestamp"),
        columns=[unit.name for unit in units],
    )
    return df.astype(int)
