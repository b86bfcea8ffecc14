"""
Patient records as delivered by the event store.

This submodule normalises raw patient documents (dictionaries keyed the way the
store writes them, or rows of a pandas DataFrame) into immutable
``PatientRecord`` objects that the rest of the engine reads.

Normalisation is total: timestamps that are missing or cannot be parsed become
``None``, and unit or outcome values outside the known vocabularies are kept as
``None`` with the raw value preserved so that callers can report them as a
data-quality signal (see :mod:`wardflow.validation`).

Timestamps
----------
All instants handled by the engine are naive ``datetime`` objects expressing
local wall-clock time. Timezone-aware inputs are converted to the target zone
(``tz`` argument, defaulting to the system local zone) and the tzinfo is then
dropped, so that comparisons never mix naive and aware values and shift windows
are evaluated against the local time of day.

Functions
---------
parse_instant : function
    Parse a raw timestamp value into a naive local ``datetime`` or ``None``.

records_from_dataframe : function
    Build ``PatientRecord`` objects from the rows of a DataFrame.

records_to_dataframe : function
    Convert ``PatientRecord`` objects back into a DataFrame.
"""

from dataclasses import dataclass, fields
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd


class Unit(str, Enum):
    """Care units a patient can be assigned to."""

    NICU = "Neonatal Intensive Care Unit"
    PICU = "Pediatric Intensive Care Unit"
    SNCU = "Special New Born Care Unit"
    HDU = "High Dependency Unit"
    GENERAL_WARD = "General Ward"

    @classmethod
    def parse(cls, value: Any) -> Optional["Unit"]:
        """Look up a unit by value ("Pediatric Intensive Care Unit") or name ("PICU")."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip()
        for unit in cls:
            if text == unit.value or text.upper() == unit.name:
                return unit
        return None


class Outcome(str, Enum):
    """Lifecycle state of a patient record."""

    IN_PROGRESS = "In Progress"
    DISCHARGED = "Discharged"
    REFERRED = "Referred"
    DECEASED = "Deceased"
    STEP_DOWN = "Step Down"

    @classmethod
    def parse(cls, value: Any) -> Optional["Outcome"]:
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip()
        for outcome in cls:
            if text == outcome.value or text.upper() == outcome.name:
                return outcome
        return None


# Document keys written by the event store, mapped to PatientRecord fields
STORE_FIELDS = {
    "id": "id",
    "name": "name",
    "unit": "unit",
    "admissionDate": "admission_instant",
    "admissionType": "cohort",
    "outcome": "outcome",
    "releaseDate": "release_instant",
    "finalDischargeDate": "final_discharge_instant",
    "stepDownDate": "step_down_instant",
    "stepDownLocation": "step_down_location",
    "diagnosis": "diagnosis",
}

INSTANT_FIELDS = (
    "admission_instant",
    "release_instant",
    "final_discharge_instant",
    "step_down_instant",
)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_instant(value: Any, tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Parse a raw timestamp into a naive local ``datetime``.

    Parameters
    ----------
    value : str, datetime, date, pandas.Timestamp, int or float
        ISO-8601 text, a datetime-like object, or epoch milliseconds.
    tz : tzinfo, optional
        Zone that aware timestamps are converted to before the tzinfo is
        dropped. Defaults to the system local zone.

    Returns
    -------
    datetime or None
        ``None`` when the value is missing or cannot be parsed.
    """
    if _is_missing(value):
        return None

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        ts = pd.to_datetime(value, unit="ms", utc=True, errors="coerce")
    elif isinstance(value, date) and not isinstance(value, datetime):
        ts = pd.Timestamp(datetime(value.year, value.month, value.day))
    else:
        try:
            ts = pd.to_datetime(value, errors="coerce")
        except (TypeError, ValueError):
            return None

    if ts is None or pd.isna(ts):
        return None

    if ts.tzinfo is not None:
        if tz is not None:
            ts = ts.tz_convert(tz)
        else:
            ts = pd.Timestamp(ts.to_pydatetime().astimezone())
        ts = ts.tz_localize(None)

    return ts.to_pydatetime()


def to_local_naive(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Bring a query instant onto the same naive local clock as the records."""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(tz).replace(tzinfo=None)


@dataclass(frozen=True)
class PatientRecord:
    """A single patient lifecycle as delivered by the event store.

    Parameters
    ----------
    id : str
        Opaque record identifier
    name : str
        Display name
    unit : Unit or None
        Care unit; ``None`` when the stored value is not a known unit
    admission_instant : datetime or None
        Admission time; ``None`` only when the stored value is unusable
    outcome : Outcome or None
        Lifecycle state; ``None`` when the stored value is not a known outcome
    cohort : str, optional
        Admission-type tag such as "Inborn" or "Outborn"
    release_instant : datetime, optional
        Referral or death time, and the legacy discharge time
    final_discharge_instant : datetime, optional
        Authoritative discharge time
    step_down_instant : datetime, optional
        Time the patient was stepped down out of the unit
    step_down_location : str, optional
        Free-text step-down destination, not used by the engine
    diagnosis : str, optional
        Free-text diagnosis, used only for registry search
    raw_unit : str, optional
        Stored unit value, kept when it could not be recognised
    raw_outcome : str, optional
        Stored outcome value, kept when it could not be recognised
    """

    id: str
    name: str
    unit: Optional[Unit]
    admission_instant: Optional[datetime]
    outcome: Optional[Outcome]
    cohort: Optional[str] = None
    release_instant: Optional[datetime] = None
    final_discharge_instant: Optional[datetime] = None
    step_down_instant: Optional[datetime] = None
    step_down_location: Optional[str] = None
    diagnosis: Optional[str] = None
    raw_unit: Optional[str] = None
    raw_outcome: Optional[str] = None

    @property
    def has_known_outcome(self) -> bool:
        return self.outcome is not None

    @classmethod
    def from_fields(
        cls, values: Mapping[str, Any], tz: Optional[tzinfo] = None
    ) -> "PatientRecord":
        """Create a record from a mapping keyed by ``PatientRecord`` field names."""
        raw_unit = values.get("unit")
        raw_outcome = values.get("outcome")
        unit = Unit.parse(raw_unit)
        outcome = Outcome.parse(raw_outcome)

        def text(key: str) -> Optional[str]:
            value = values.get(key)
            return None if _is_missing(value) else str(value)

        return cls(
            id=text("id") or "",
            name=text("name") or "",
            unit=unit,
            admission_instant=parse_instant(values.get("admission_instant"), tz),
            outcome=outcome,
            cohort=text("cohort"),
            release_instant=parse_instant(values.get("release_instant"), tz),
            final_discharge_instant=parse_instant(
                values.get("final_discharge_instant"), tz
            ),
            step_down_instant=parse_instant(values.get("step_down_instant"), tz),
            step_down_location=text("step_down_location"),
            diagnosis=text("diagnosis"),
            raw_unit=None if unit is not None or _is_missing(raw_unit) else str(raw_unit),
            raw_outcome=(
                None
                if outcome is not None or _is_missing(raw_outcome)
                else str(raw_outcome)
            ),
        )

    @classmethod
    def from_dict(
        cls, document: Mapping[str, Any], tz: Optional[tzinfo] = None
    ) -> "PatientRecord":
        """Create a record from a document as written by the event store.

        Store keys (``admissionDate``, ``releaseDate``, ...) are mapped through
        ``STORE_FIELDS``; keys that already use field names are accepted too.
        """
        values: Dict[str, Any] = {}
        for key, value in document.items():
            field_name = STORE_FIELDS.get(key, key)
            values.setdefault(field_name, value)
        return cls.from_fields(values, tz)


def records_from_dicts(
    documents: Iterable[Mapping[str, Any]], tz: Optional[tzinfo] = None
) -> List[PatientRecord]:
    """Normalise a list of store documents."""
    return [PatientRecord.from_dict(document, tz) for document in documents]


def records_from_dataframe(
    df: pd.DataFrame, tz: Optional[tzinfo] = None
) -> List[PatientRecord]:
    """Build records from a DataFrame with one row per patient.

    Columns are matched against ``PatientRecord`` field names; missing columns
    are treated as missing values. If there is no ``id`` column the index is
    used as the identifier.

    Parameters
    ----------
    df : pandas.DataFrame
        Patient rows
    tz : tzinfo, optional
        Zone for converting aware timestamps, see :func:`parse_instant`

    Returns
    -------
    List[PatientRecord]
        One record per row, in row order
    """
    records = []
    for index, row in df.iterrows():
        values = row.to_dict()
        if "id" not in values:
            values["id"] = index
        records.append(PatientRecord.from_fields(values, tz))
    return records


def records_to_dataframe(records: Iterable[PatientRecord]) -> pd.DataFrame:
    """Convert records to a DataFrame with one column per ``PatientRecord`` field."""
    columns = [f.name for f in fields(PatientRecord)]
    rows = []
    for record in records:
        row = {name: getattr(record, name) for name in columns}
        row["unit"] = record.unit.value if record.unit is not None else record.raw_unit
        row["outcome"] = (
            record.outcome.value if record.outcome is not None else record.raw_outcome
        )
        rows.append(row)
    df = pd.DataFrame(rows, columns=columns)
    for name in INSTANT_FIELDS:
        df[name] = pd.to_datetime(df[name])
    return df
