"""
Point-in-time occupancy.

This submodule answers "which patients were occupying a unit at instant T",
and turns an occupied count into a bed status against the unit's capacity.

Both bounds of a stay are inclusive: a patient admitted exactly at T is
occupying a bed at T, and a patient whose exit instant is exactly T is still
occupying it at T (the exit happens at the end of that instant).

Functions
---------
is_active_at : function
    Whether a record occupies its unit at an instant.

outcome_at : function
    The outcome state of a record as seen at an instant.

active_at : function
    Records occupying a bed at an instant, optionally for one unit.

count_active_by_unit : function
    Occupied bed counts per unit at an instant.

bed_status : function
    Overflow and occupancy rate for an occupied count and a capacity.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from wardflow.lifecycle import exit_instant
from wardflow.records import Outcome, PatientRecord, Unit, to_local_naive


def is_active_at(record: PatientRecord, instant: datetime) -> bool:
    """Return True if the record occupies its unit at ``instant``.

    Parameters
    ----------
    record : PatientRecord
        Record to test
    instant : datetime
        Reference instant

    Returns
    -------
    bool
        True iff the admission is at or before ``instant`` and there is either
        no exit instant or the exit is at or after ``instant``. Records with an
        unrecognised outcome or no admission instant are never active.
    """
    if record.outcome is None or record.admission_instant is None:
        return False

    instant = to_local_naive(instant)
    if record.admission_instant > instant:
        return False

    exit_at = exit_instant(record)
    return exit_at is None or exit_at >= instant


def outcome_at(record: PatientRecord, instant: datetime) -> Optional[Outcome]:
    """Return the outcome state of a record as it stood at ``instant``.

    Returns ``None`` before admission (and for unrecognised outcomes),
    ``Outcome.IN_PROGRESS`` while the patient is active, and the record's own
    outcome once the exit instant has passed.
    """
    if record.outcome is None or record.admission_instant is None:
        return None
    if record.admission_instant > to_local_naive(instant):
        return None
    if is_active_at(record, instant):
        return Outcome.IN_PROGRESS
    return record.outcome


def active_at(
    population: Iterable[PatientRecord],
    instant: datetime,
    unit: Optional[Unit] = None,
) -> List[PatientRecord]:
    """Records occupying a bed at ``instant``, restricted to ``unit`` if given."""
    return [
        record
        for record in population
        if (unit is None or record.unit == unit) and is_active_at(record, instant)
    ]


def count_active_by_unit(
    population: Iterable[PatientRecord],
    instant: datetime,
    units: Optional[Iterable[Unit]] = None,
) -> Dict[Unit, int]:
    """Occupied bed counts per unit at ``instant``.

    Every requested unit (all units by default) appears in the result, with a
    zero count when no patient occupies it.
    """
    counts = {unit: 0 for unit in (units if units is not None else Unit)}
    for record in population:
        if record.unit in counts and is_active_at(record, instant):
            counts[record.unit] += 1
    return counts


@dataclass(frozen=True)
class BedStatus:
    """Occupancy of a unit against its bed capacity.

    ``occupancy_rate_pct`` may exceed 100 to signal overflow; only
    ``bar_width_pct`` is clamped, for progress-bar display.
    """

    occupied: int
    capacity: int
    overflow: int
    occupancy_rate_pct: float

    @property
    def is_overflow(self) -> bool:
        return self.overflow > 0

    @property
    def available(self) -> int:
        return max(0, self.capacity - self.occupied)

    @property
    def bar_width_pct(self) -> float:
        return min(self.occupancy_rate_pct, 100.0)


def bed_status(occupied_count: int, capacity: int) -> BedStatus:
    """Compute overflow and occupancy rate.

    Parameters
    ----------
    occupied_count : int
        Number of occupied beds
    capacity : int
        Number of beds in the unit; a capacity of zero gives a 0.0 rate

    Returns
    -------
    BedStatus
    """
    overflow = max(0, occupied_count - capacity)
    if capacity > 0:
        rate = round(occupied_count / capacity * 100, 1)
    else:
        rate = 0.0
    return BedStatus(
        occupied=occupied_count,
        capacity=capacity,
        overflow=overflow,
        occupancy_rate_pct=rate,
    )
