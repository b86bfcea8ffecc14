"""Simple FastAPI application exposing occupancy and registry queries.

Usage
=====
1. Export the patient snapshot from the event store as a JSON list of patient
   documents (the store's own keys: ``admissionDate``, ``releaseDate``,
   ``outcome``, ``unit``, ...).

2. Point the API to that file via the ``PATIENT_SNAPSHOT_PATH`` environment
   variable, and optionally to a ward configuration YAML file via
   ``WARD_CONFIG_PATH``, before starting uvicorn, e.g.::

       export PATIENT_SNAPSHOT_PATH=/path/to/patients.json
       uvicorn wardflow.api.main:app

3. Call the HTTP endpoints. For example::

       GET /api/occupancy?at=2025-01-15T08:00:00
       GET /api/registry/NICU?period=This%20Month&cohort=Inborn
       GET /api/occupancy-series?lookback=30days

   Whenever the store reports a change, the new snapshot replaces the old one
   as a whole (``replace_population``); nothing is patched in place.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from fastapi import FastAPI, HTTPException, Query

from wardflow.config import WardConfig
from wardflow.membership import (
    DateRange,
    PopulationQuery,
    filter_by_outcome,
    filter_population,
    new_admissions,
    search_population,
)
from wardflow.occupancy import bed_status, count_active_by_unit
from wardflow.periods import lookback_range, resolve_period, step_days_for_range
from wardflow.records import Outcome, PatientRecord, Unit, records_from_dicts
from wardflow.sampler import sample
from wardflow.shift import ShiftWindow
from wardflow.stats import AggregateStats, aggregate
from wardflow.validation import warn_unrecognised_values

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="WardFlow Occupancy")

_population: List[PatientRecord] = []
_config: WardConfig = WardConfig()


def replace_population(
    documents: List[Mapping[str, Any]], config: Optional[WardConfig] = None
) -> None:
    """Replace the in-memory snapshot (and optionally the configuration)."""
    global _population, _config
    records = records_from_dicts(documents)
    warn_unrecognised_values(records, source_label="patient snapshot")
    _population = records
    if config is not None:
        _config = config
    LOGGER.info("Loaded snapshot with %s patient records", len(records))


def _load_snapshot() -> List[Mapping[str, Any]]:
    path_value = os.getenv("PATIENT_SNAPSHOT_PATH")
    if not path_value:
        raise RuntimeError("PATIENT_SNAPSHOT_PATH environment variable is not set")

    path = Path(path_value).expanduser()
    if not path.is_file():
        raise RuntimeError(f"PATIENT_SNAPSHOT_PATH does not point to a file: {path}")

    try:
        with path.open("r", encoding="utf-8") as file:
            documents = json.load(file)
    except (OSError, ValueError) as exc:
        LOGGER.exception("Failed to load patient snapshot from %s", path)
        raise RuntimeError("Unable to load patient snapshot") from exc

    if not isinstance(documents, list):
        raise RuntimeError(f"Patient snapshot must be a JSON list: {path}")
    return documents


@app.on_event("startup")
def _on_startup() -> None:
    config_path = os.getenv("WARD_CONFIG_PATH")
    config = WardConfig.from_yaml(config_path) if config_path else WardConfig()
    replace_population(_load_snapshot(), config)


def _parse_unit(unit: str) -> Unit:
    parsed = Unit.parse(unit)
    if parsed is None:
        raise HTTPException(
            status_code=404,
            detail={
                "message": f"Unknown unit '{unit}'",
                "available_units": [u.name for u in Unit],
            },
        )
    return parsed


def _parse_outcome(outcome: Optional[str]) -> Optional[Outcome]:
    if outcome is None:
        return None
    parsed = Outcome.parse(outcome)
    if parsed is None:
        raise HTTPException(
            status_code=400,
            detail={
                "message": f"Unknown outcome '{outcome}'",
                "available_outcomes": [o.value for o in Outcome],
            },
        )
    return parsed


def _date_range(
    period: str, now: datetime, start_date: Optional[str], end_date: Optional[str]
) -> DateRange:
    try:
        return resolve_period(period, now, start_date, end_date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"message": str(exc)}) from exc


def _shift(shift_start: Optional[str], shift_end: Optional[str]) -> ShiftWindow:
    if shift_start is None and shift_end is None:
        return _config.shift
    try:
        return ShiftWindow(
            enabled=True,
            start=shift_start or _config.shift.start,
            end=shift_end or _config.shift.end,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"message": str(exc)}) from exc


def _serialize_stats(stats: AggregateStats) -> Dict[str, Any]:
    return {
        "total": stats.total,
        "counts": {o.value: stats.count(o) for o in Outcome},
        "unrecognised": stats.unrecognised,
        "mortality_rate_pct": stats.mortality_rate_pct,
        "survival_rate_pct": stats.survival_rate_pct,
        "discharge_rate_pct": stats.discharge_rate_pct,
        "referral_rate_pct": stats.referral_rate_pct,
        "step_down_rate_pct": stats.step_down_rate_pct,
    }


def _serialize_record(record: PatientRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "name": record.name,
        "unit": record.unit.name if record.unit is not None else None,
        "cohort": record.cohort,
        "outcome": record.outcome.value if record.outcome is not None else None,
        "admission_instant": (
            record.admission_instant.isoformat() if record.admission_instant else None
        ),
    }


@app.get("/api/occupancy")
def read_occupancy(at: Optional[datetime] = None) -> Dict[str, Any]:
    instant = at or datetime.now()
    counts = count_active_by_unit(_population, instant)
    units = {}
    for unit, occupied in counts.items():
        status = bed_status(occupied, _config.capacity_for(unit))
        units[unit.name] = {
            "occupied": status.occupied,
            "capacity": status.capacity,
            "available": status.available,
            "overflow": status.overflow,
            "occupancy_rate_pct": status.occupancy_rate_pct,
            "bar_width_pct": status.bar_width_pct,
        }
    return {"at": instant.isoformat(), "units": units}


@app.get("/api/registry/{unit}")
def read_registry(
    unit: str,
    period: str = "All Time",
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    cohort: Optional[str] = None,
    shift_start: Optional[str] = None,
    shift_end: Optional[str] = None,
    outcome: Optional[str] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:
    now = datetime.now()
    query = PopulationQuery.for_unit(
        _parse_unit(unit),
        cohort=cohort,
        date_range=_date_range(period, now, start_date, end_date),
        shift=_shift(shift_start, shift_end),
    )
    unit_patients = filter_population(_population, query)
    listed = search_population(
        filter_by_outcome(unit_patients, _parse_outcome(outcome)), search
    )
    return {
        "stats": _serialize_stats(aggregate(unit_patients)),
        "new_admissions": len(new_admissions(unit_patients, now)),
        "patients": [_serialize_record(record) for record in listed],
    }


@app.get("/api/occupancy-series")
def read_occupancy_series(
    lookback: str = Query("30days", description="7days, 30days, 3months, 6months or 12months"),
    step_days: Optional[int] = Query(None, ge=1),
) -> Dict[str, Any]:
    try:
        date_range = lookback_range(datetime.now(), lookback)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail={"message": str(exc)}) from exc

    step = step_days or step_days_for_range(date_range, _config.sampling_steps)
    samples = sample(_population, None, date_range.start, date_range.end, step)
    return {
        "step_days": step,
        "capacity": {unit.name: cap for unit, cap in _config.capacities().items()},
        "samples": [
            {
                "timestamp": s.timestamp.isoformat(),
                "counts": {unit.name: n for unit, n in s.per_unit_counts.items()},
            }
            for s in samples
        ],
    }


@app.get("/health")
def health() -> Dict[str, Any]:
    if not _population:
        return {"status": "error", "details": "Patient snapshot not loaded"}
    return {"status": "ok", "patients": len(_population)}
