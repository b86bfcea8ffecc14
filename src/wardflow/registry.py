"""
Patient registry filtering for tabular data.

This module wraps the registry query (unit, cohort, period, shift) as a
scikit-learn transformer so that patient DataFrames can be filtered inside the
same pipelines as other tabular steps. ``fit`` records data-quality counts for
the snapshot; ``transform`` returns the rows that pass the query, with the
original index and columns untouched.

Columns are read by ``PatientRecord`` field name (``unit``, ``admission_instant``,
``outcome``, ``cohort``, ``release_instant``, ``final_discharge_instant``,
``step_down_instant``); see :func:`wardflow.records.records_from_dataframe`.
"""

from datetime import tzinfo
from typing import Optional, Sequence

import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin

from wardflow.membership import ALL_TIME, DateRange, PopulationQuery
from wardflow.records import Unit, records_from_dataframe
from wardflow.shift import ShiftWindow
from wardflow.validation import find_unrecognised_values

REQUIRED_COLUMNS = ("unit", "admission_instant", "outcome")


class RegistryFilter(BaseEstimator, TransformerMixin):
    """Select the patient rows that match a registry query.

    Parameters
    ----------
    units : sequence of Unit, optional
        Units to keep; all units when None or empty
    cohort : str, optional
        Admission-type cohort ("Inborn", "Outborn", or an exact admission type)
    date_range : DateRange, optional
        Reporting period; ``ALL_TIME`` when None
    shift : ShiftWindow, optional
        Shift window; disabled when None
    tz : tzinfo, optional
        Zone used when converting timezone-aware timestamp columns

    Attributes
    ----------
    n_records_ : int
        Number of rows seen by ``fit``
    unrecognised_ : dict
        Counters of unrecognised units, outcomes and admission timestamps
    is_fitted_ : bool
        Whether ``fit`` has been called

    Examples
    --------
    >>> registry = RegistryFilter(units=[Unit.NICU], cohort="Inborn")
    >>> nicu_inborn = registry.fit_transform(patients_df)
    """

    def __init__(
        self,
        units: Optional[Sequence[Unit]] = None,
        cohort: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        shift: Optional[ShiftWindow] = None,
        tz: Optional[tzinfo] = None,
    ):
        self.units = units
        self.cohort = cohort
        self.date_range = date_range
        self.shift = shift
        self.tz = tz
        self.is_fitted_ = False

    def __repr__(self) -> str:
        units = [unit.name for unit in self.units] if self.units else "all"
        period = "all time"
        if self.date_range is not None and not self.date_range.is_all_time:
            period = f"{self.date_range.start} to {self.date_range.end}"
        shift = "off"
        if self.shift is not None and self.shift.enabled:
            shift = f"{self.shift.start:%H:%M}-{self.shift.end:%H:%M}"
        return (
            f"{self.__class__.__name__}(units={units}, cohort={self.cohort!r}, "
            f"period={period}, shift={shift})"
        )

    def _query(self) -> PopulationQuery:
        return PopulationQuery(
            units=tuple(self.units or ()),
            cohort=self.cohort,
            date_range=self.date_range if self.date_range is not None else ALL_TIME,
            shift=self.shift if self.shift is not None else ShiftWindow(),
        )

    @staticmethod
    def _check_columns(X: pd.DataFrame) -> None:
        if not isinstance(X, pd.DataFrame):
            raise TypeError(f"X must be a pandas DataFrame, got {type(X).__name__}")
        missing = [column for column in REQUIRED_COLUMNS if column not in X.columns]
        if missing:
            raise ValueError(f"Missing required columns: {missing}")

    def fit(self, X: pd.DataFrame, y=None) -> "RegistryFilter":
        """Record data-quality counts for a patient snapshot.

        Raises
        ------
        TypeError
            If X is not a DataFrame
        ValueError
            If a required column is missing
        """
        self._check_columns(X)
        records = records_from_dataframe(X, self.tz)
        self.n_records_ = len(records)
        self.unrecognised_ = find_unrecognised_values(records)
        self.is_fitted_ = True
        return self

    def mask(self, X: pd.DataFrame) -> pd.Series:
        """Boolean Series, aligned with ``X``, marking the rows that match."""
        self._check_columns(X)
        query = self._query()
        records = records_from_dataframe(X, self.tz)
        return pd.Series(
            [query.matches(record) for record in records], index=X.index, dtype=bool
        )

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Return the rows of ``X`` matching the query.

        Raises
        ------
        ValueError
            If the filter has not been fitted
        """
        if not self.is_fitted_:
            raise ValueError("RegistryFilter must be fitted before calling transform")
        return X.loc[self.mask(X)]
