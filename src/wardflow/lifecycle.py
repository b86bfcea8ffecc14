"""Lifecycle view of a patient record.

A ``PatientRecord`` carries several optional exit timestamps. Which one is
authoritative depends on the outcome, and this module is the only place that
rule lives:

- Discharged: final discharge time, falling back to the release time
- Referred, Deceased: release time
- Step Down: step-down time (a step-down is an exit from the unit)
- In Progress: no exit; the patient is still occupying a bed
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from wardflow.records import Outcome, PatientRecord, Unit


@dataclass(frozen=True)
class Lifecycle:
    """Normalised admission and exit of one patient record."""

    admission_instant: Optional[datetime]
    exit_instant: Optional[datetime]
    outcome: Optional[Outcome]
    unit: Optional[Unit]
    cohort: Optional[str]

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not None and self.outcome != Outcome.IN_PROGRESS


def exit_instant(record: PatientRecord) -> Optional[datetime]:
    """Return the instant at which the patient stopped occupying their unit.

    Parameters
    ----------
    record : PatientRecord
        Record to inspect

    Returns
    -------
    datetime or None
        ``None`` for in-progress records, for unrecognised outcomes, and for
        terminal records whose exit timestamp is missing
    """
    outcome = record.outcome
    if outcome == Outcome.DISCHARGED:
        if record.final_discharge_instant is not None:
            return record.final_discharge_instant
        return record.release_instant
    if outcome in (Outcome.REFERRED, Outcome.DECEASED):
        return record.release_instant
    if outcome == Outcome.STEP_DOWN:
        return record.step_down_instant
    return None


def event_instant(record: PatientRecord) -> Optional[datetime]:
    """Instant of the event that defines the record for period and shift queries.

    This is the exit instant for terminal outcomes and the admission instant
    otherwise, including terminal records whose exit timestamp is missing.
    """
    exit_at = exit_instant(record)
    if exit_at is not None:
        return exit_at
    return record.admission_instant


def to_lifecycle(record: PatientRecord) -> Lifecycle:
    """Normalise a record into its admission and exit.

    Parameters
    ----------
    record : PatientRecord
        Record to normalise; it is not modified

    Returns
    -------
    Lifecycle
        Missing optional fields resolve to ``None``; never raises
    """
    return Lifecycle(
        admission_instant=record.admission_instant,
        exit_instant=exit_instant(record),
        outcome=record.outcome,
        unit=record.unit,
        cohort=record.cohort,
    )
