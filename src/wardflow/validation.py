"""Data-quality checks for patient populations."""

import warnings
from collections import Counter
from typing import Dict, Iterable

from wardflow.records import PatientRecord


def find_unrecognised_values(
    population: Iterable[PatientRecord],
) -> Dict[str, Counter]:
    """Count stored unit and outcome values that could not be recognised.

    Returns
    -------
    dict
        ``{"unit": Counter, "outcome": Counter, "admission": Counter}``; the
        admission counter is keyed by record id for records without a usable
        admission timestamp
    """
    found = {"unit": Counter(), "outcome": Counter(), "admission": Counter()}
    for record in population:
        if record.unit is None:
            found["unit"][record.raw_unit or "<missing>"] += 1
        if record.outcome is None:
            found["outcome"][record.raw_outcome or "<missing>"] += 1
        if record.admission_instant is None:
            found["admission"][record.id or "<missing>"] += 1
    return found


def warn_unrecognised_values(
    population: Iterable[PatientRecord],
    source_label: str = "patient snapshot",
    *,
    stacklevel: int = 3,
) -> Dict[str, Counter]:
    """Emit warnings for records the engine will leave out of its counts.

    Records with an unrecognised outcome are never active and never match a
    period, so they silently lower occupancy and registry counts. This helper
    makes that visible to the caller.

    Parameters
    ----------
    population : iterable of PatientRecord
        Records to check
    source_label : str, optional
        Human-readable name of the data source, used in messages
    stacklevel : int, optional
        Passed to :func:`warnings.warn` so the warning points to the
        caller rather than this helper.  Default is 3 (caller's caller).

    Returns
    -------
    dict
        The counters from :func:`find_unrecognised_values`
    """
    found = find_unrecognised_values(population)
    if found["outcome"]:
        warnings.warn(
            f"{sum(found['outcome'].values())} records in the {source_label} have "
            f"an unrecognised outcome and are excluded from occupancy and period "
            f"counts: {sorted(found['outcome'])}",
            stacklevel=stacklevel,
        )
    if found["unit"]:
        warnings.warn(
            f"{sum(found['unit'].values())} records in the {source_label} have "
            f"an unrecognised unit: {sorted(found['unit'])}",
            stacklevel=stacklevel,
        )
    if found["admission"]:
        warnings.warn(
            f"{sum(found['admission'].values())} records in the {source_label} have "
            f"no usable admission timestamp: {sorted(found['admission'])}",
            stacklevel=stacklevel,
        )
    return found
