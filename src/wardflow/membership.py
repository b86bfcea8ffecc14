"""
Range membership and registry queries.

This submodule decides which patients belong to a reporting period. Each
outcome has its own notion of "happened during the period":

- Discharged, Step Down, Referred, Deceased: the exit instant (falling back to
  the admission instant when the exit timestamp is missing) lies inside the
  range, both ends inclusive.
- In Progress: the stay overlaps the range, i.e. the patient was admitted no
  later than the range end and had not left before the range start.

A registry query composes unit, cohort, range and shift filters in that order.

Functions
---------
qualifying_instant : function
    The instant a terminal record is tested against a range.

qualifies : function
    Whether a record belongs to a date range.

matches_cohort : function
    Whether a record belongs to an admission-type cohort.

filter_population : function
    Apply a ``PopulationQuery`` to a population.

filter_by_outcome, search_population, new_admissions : functions
    Secondary registry filters.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from wardflow.lifecycle import event_instant, exit_instant
from wardflow.records import Outcome, PatientRecord, Unit, to_local_naive
from wardflow.shift import ShiftWindow

ALL_COHORTS = "All"


@dataclass(frozen=True)
class DateRange:
    """Closed interval ``[start, end]`` of instants.

    ``DateRange.all_time()`` (also available as ``ALL_TIME``) has no bounds and
    admits every record without evaluating it. A range whose start is after its
    end is malformed and admits nothing.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if (self.start is None) != (self.end is None):
            raise ValueError("DateRange needs both start and end, or neither")
        if self.start is not None:
            object.__setattr__(self, "start", to_local_naive(self.start))
            object.__setattr__(self, "end", to_local_naive(self.end))

    @classmethod
    def all_time(cls) -> "DateRange":
        return cls()

    @property
    def is_all_time(self) -> bool:
        return self.start is None

    @property
    def is_malformed(self) -> bool:
        return not self.is_all_time and self.start > self.end

    def contains(self, instant: Optional[datetime]) -> bool:
        if self.is_all_time:
            return True
        if instant is None or self.is_malformed:
            return False
        return self.start <= instant <= self.end


ALL_TIME = DateRange.all_time()


def qualifying_instant(record: PatientRecord) -> Optional[datetime]:
    """Instant tested against a range for terminal outcomes.

    Returns ``None`` for in-progress records, which are tested for overlap
    instead, and for unrecognised outcomes.
    """
    if record.outcome is None or record.outcome == Outcome.IN_PROGRESS:
        return None
    return event_instant(record)


def qualifies(
    record: PatientRecord, range_start: datetime, range_end: datetime
) -> bool:
    """Return True if the record's qualifying event falls in the range.

    Parameters
    ----------
    record : PatientRecord
        Record to test
    range_start : datetime
        Inclusive range start
    range_end : datetime
        Inclusive range end

    Returns
    -------
    bool
        False for malformed ranges (start after end) and for records with an
        unrecognised outcome or no admission instant.
    """
    range_start = to_local_naive(range_start)
    range_end = to_local_naive(range_end)
    if range_start > range_end:
        return False
    if record.outcome is None or record.admission_instant is None:
        return False

    if record.outcome == Outcome.IN_PROGRESS:
        exit_at = exit_instant(record)
        return record.admission_instant <= range_end and (
            exit_at is None or exit_at >= range_start
        )

    instant = qualifying_instant(record)
    return range_start <= instant <= range_end


def in_range(record: PatientRecord, date_range: Optional[DateRange]) -> bool:
    """Range test that short-circuits for ``None`` and ``ALL_TIME``."""
    if date_range is None or date_range.is_all_time:
        return True
    return qualifies(record, date_range.start, date_range.end)


def cohort_family(cohort: Optional[str]) -> Optional[str]:
    """Collapse an admission type onto its family ("Inborn" or "Outborn").

    "Outborn (Health Facility Referred)" and "Outborn (Community Referred)"
    both belong to the "Outborn" family. Other values are returned unchanged.
    """
    if cohort is None:
        return None
    text = cohort.strip()
    for family in ("Inborn", "Outborn"):
        if text.lower().startswith(family.lower()):
            return family
    return text


def matches_cohort(record: PatientRecord, cohort: Optional[str]) -> bool:
    """Return True if the record belongs to ``cohort``.

    ``None`` and "All" match every record. A family name ("Inborn",
    "Outborn") matches every admission type of that family; any other value
    must match the record's admission type exactly.
    """
    if cohort is None or cohort == ALL_COHORTS:
        return True
    if record.cohort is None:
        return False
    if cohort in ("Inborn", "Outborn"):
        return cohort_family(record.cohort) == cohort
    return record.cohort == cohort


@dataclass(frozen=True)
class PopulationQuery:
    """Parameters of a registry or statistics query.

    Parameters
    ----------
    units : tuple of Unit, optional
        Units to include; all units when empty
    cohort : str, optional
        Admission-type cohort, see :func:`matches_cohort`
    date_range : DateRange
        Reporting period, ``ALL_TIME`` by default
    shift : ShiftWindow
        Shift window, disabled by default
    """

    units: Tuple[Unit, ...] = ()
    cohort: Optional[str] = None
    date_range: DateRange = ALL_TIME
    shift: ShiftWindow = field(default_factory=ShiftWindow)

    @classmethod
    def for_unit(cls, unit: Unit, **kwargs) -> "PopulationQuery":
        return cls(units=(unit,), **kwargs)

    def matches(self, record: PatientRecord) -> bool:
        if self.units and record.unit not in self.units:
            return False
        if not matches_cohort(record, self.cohort):
            return False
        if not in_range(record, self.date_range):
            return False
        return self.shift.matches(record)


def filter_population(
    population: Iterable[PatientRecord], query: PopulationQuery
) -> List[PatientRecord]:
    """Records matching the query, in population order."""
    return [record for record in population if query.matches(record)]


def filter_by_outcome(
    population: Iterable[PatientRecord], outcome: Optional[Outcome]
) -> List[PatientRecord]:
    """Records with the given outcome; ``None`` keeps every record."""
    if outcome is None:
        return list(population)
    return [record for record in population if record.outcome == outcome]


def search_population(
    population: Iterable[PatientRecord], text: Optional[str]
) -> List[PatientRecord]:
    """Case-insensitive substring search on name, id and diagnosis."""
    query = (text or "").strip().lower()
    if not query:
        return list(population)

    def haystack(record: PatientRecord) -> Iterable[str]:
        return (value.lower() for value in (record.name, record.id, record.diagnosis) if value)

    return [record for record in population if any(query in v for v in haystack(record))]


def new_admissions(
    population: Iterable[PatientRecord],
    now: datetime,
    window: timedelta = timedelta(hours=24),
) -> List[PatientRecord]:
    """In-progress records admitted within ``window`` before ``now``."""
    since = to_local_naive(now) - window
    return [
        record
        for record in population
        if record.outcome == Outcome.IN_PROGRESS
        and record.admission_instant is not None
        and record.admission_instant >= since
    ]
