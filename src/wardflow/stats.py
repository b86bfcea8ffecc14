"""
Outcome statistics for a filtered population.

The functions here reduce a population that has already been narrowed by a
``PopulationQuery`` (unit, cohort, period, shift) to the figures shown on
summary cards.

Rates
-----
Every rate is ``count / total * 100`` rounded to one decimal place. When the
population is empty all rates are ``0.0``; no function here divides by zero.

Functions
---------
aggregate : function
    Counts per outcome with mortality, discharge, referral and step-down rates.

cohort_mortality : function
    Mortality per admission-type family (Inborn / Outborn).

length_of_stay_days : function
    Whole days between admission and exit for each record that has exited.

length_of_stay_summary : function
    Mean, median, minimum and maximum length of stay.

length_of_stay_buckets : function
    Length-of-stay histogram with fixed day ranges.

monthly_outcome_counts : function
    Admissions per calendar month broken down by outcome.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from wardflow.lifecycle import exit_instant
from wardflow.membership import cohort_family
from wardflow.records import Outcome, PatientRecord

RATE_PRECISION = 1

LENGTH_OF_STAY_BUCKETS: Tuple[Tuple[str, int, Optional[int]], ...] = (
    ("0-3 Days", 0, 3),
    ("4-7 Days", 4, 7),
    ("8-14 Days", 8, 14),
    ("15-30 Days", 15, 30),
    ("30+ Days", 31, None),
)


def rate_pct(count: int, total: int) -> float:
    """Percentage of ``count`` in ``total``, 0.0 when ``total`` is zero."""
    if total <= 0:
        return 0.0
    return round(count / total * 100, RATE_PRECISION)


@dataclass(frozen=True)
class AggregateStats:
    """Outcome counts and rates for a population.

    Attributes
    ----------
    total : int
        Number of records, including any with an unrecognised outcome
    per_outcome_counts : dict[Outcome, int]
        Count for every outcome, zero when absent
    mortality_rate_pct, discharge_rate_pct, referral_rate_pct,
    step_down_rate_pct : float
        Outcome counts as a percentage of ``total``
    unrecognised : int
        Records whose outcome could not be recognised
    """

    total: int
    per_outcome_counts: Dict[Outcome, int]
    mortality_rate_pct: float
    discharge_rate_pct: float
    referral_rate_pct: float
    step_down_rate_pct: float = 0.0
    unrecognised: int = 0

    @property
    def survival_rate_pct(self) -> float:
        if self.total == 0:
            return 0.0
        return round(100 - self.mortality_rate_pct, RATE_PRECISION)

    def count(self, outcome: Outcome) -> int:
        return self.per_outcome_counts.get(outcome, 0)


def aggregate(population: Iterable[PatientRecord]) -> AggregateStats:
    """Count outcomes in a single pass and derive the outcome rates."""
    counts = {outcome: 0 for outcome in Outcome}
    total = 0
    unrecognised = 0
    for record in population:
        total += 1
        if record.outcome is None:
            unrecognised += 1
        else:
            counts[record.outcome] += 1

    return AggregateStats(
        total=total,
        per_outcome_counts=counts,
        mortality_rate_pct=rate_pct(counts[Outcome.DECEASED], total),
        discharge_rate_pct=rate_pct(counts[Outcome.DISCHARGED], total),
        referral_rate_pct=rate_pct(counts[Outcome.REFERRED], total),
        step_down_rate_pct=rate_pct(counts[Outcome.STEP_DOWN], total),
        unrecognised=unrecognised,
    )


def cohort_mortality(
    population: Iterable[PatientRecord], families: Sequence[str] = ("Inborn", "Outborn")
) -> Dict[str, Dict[str, float]]:
    """Mortality per admission-type family.

    Returns
    -------
    dict
        ``{family: {"total": n, "deceased": d, "mortality_rate_pct": r}}`` for
        each requested family; records without a cohort are ignored
    """
    result = {
        family: {"total": 0, "deceased": 0, "mortality_rate_pct": 0.0}
        for family in families
    }
    for record in population:
        family = cohort_family(record.cohort)
        if family not in result:
            continue
        result[family]["total"] += 1
        if record.outcome == Outcome.DECEASED:
            result[family]["deceased"] += 1

    for values in result.values():
        values["mortality_rate_pct"] = rate_pct(values["deceased"], values["total"])
    return result


def length_of_stay_days(population: Iterable[PatientRecord]) -> List[int]:
    """Length of stay in whole days, rounded up, for records that have exited."""
    days = []
    for record in population:
        exit_at = exit_instant(record)
        if exit_at is None or record.admission_instant is None:
            continue
        elapsed = (exit_at - record.admission_instant).total_seconds() / 86400
        days.append(max(0, math.ceil(elapsed)))
    return days


def length_of_stay_summary(population: Iterable[PatientRecord]) -> Dict[str, float]:
    """Mean, median, min and max length of stay; all zero when nobody has exited."""
    days = np.array(length_of_stay_days(population))
    if days.size == 0:
        return {"count": 0, "mean": 0.0, "median": 0.0, "min": 0, "max": 0}
    return {
        "count": int(days.size),
        "mean": round(float(days.mean()), RATE_PRECISION),
        "median": float(np.median(days)),
        "min": int(days.min()),
        "max": int(days.max()),
    }


def length_of_stay_buckets(population: Iterable[PatientRecord]) -> Dict[str, int]:
    """Count stays falling into each of ``LENGTH_OF_STAY_BUCKETS``."""
    counts = {label: 0 for label, _, _ in LENGTH_OF_STAY_BUCKETS}
    for days in length_of_stay_days(population):
        for label, low, high in LENGTH_OF_STAY_BUCKETS:
            if days >= low and (high is None or days <= high):
                counts[label] += 1
                break
    return counts


def monthly_outcome_counts(population: Iterable[PatientRecord]) -> pd.DataFrame:
    """Admissions per calendar month of admission, broken down by outcome.

    Returns
    -------
    pandas.DataFrame
        Indexed by month period (``"2025-01"``), with an ``admissions`` column
        and one column per outcome value. Months without admissions between the
        first and last month are included with zero counts.
    """
    columns = ["admissions"] + [outcome.value for outcome in Outcome]
    rows = [
        {
            "month": pd.Period(record.admission_instant, freq="M"),
            "outcome": record.outcome.value if record.outcome is not None else None,
        }
        for record in population
        if record.admission_instant is not None
    ]
    if not rows:
        return pd.DataFrame(columns=columns, index=pd.PeriodIndex([], freq="M", name="month"))

    df = pd.DataFrame(rows)
    months = pd.period_range(df["month"].min(), df["month"].max(), freq="M", name="month")

    by_outcome = pd.crosstab(df["month"], df["outcome"]).reindex(
        index=months, columns=columns[1:], fill_value=0
    )
    by_outcome.insert(
        0, "admissions", df.groupby("month").size().reindex(months, fill_value=0)
    )
    by_outcome.columns.name = None
    return by_outcome.astype(int)
