"""Tests for point-in-time occupancy and bed status."""

from datetime import datetime, timedelta, timezone

import pytest

from wardflow.occupancy import (
    active_at,
    bed_status,
    count_active_by_unit,
    is_active_at,
    outcome_at,
)
from wardflow.records import Outcome, PatientRecord, Unit

T = datetime(2025, 2, 10, 12, 0)
ONE_MS = timedelta(milliseconds=1)


def make_record(outcome, admitted=T, unit=Unit.NICU, record_id="p", **kwargs):
    return PatientRecord(
        id=record_id,
        name=record_id,
        unit=unit,
        admission_instant=admitted,
        outcome=outcome,
        **kwargs,
    )


class TestIsActiveAt:
    def test_admission_bound_is_inclusive(self):
        record = make_record(Outcome.IN_PROGRESS, admitted=T)
        assert is_active_at(record, T)
        assert not is_active_at(record, T - ONE_MS)

    def test_exit_bound_is_inclusive(self):
        record = make_record(
            Outcome.DISCHARGED,
            admitted=T - timedelta(days=3),
            final_discharge_instant=T,
        )
        assert is_active_at(record, T)
        assert not is_active_at(record, T + ONE_MS)

    def test_step_down_leaves_the_unit(self):
        record = make_record(
            Outcome.STEP_DOWN,
            admitted=T - timedelta(days=2),
            step_down_instant=T,
        )
        assert is_active_at(record, T - timedelta(hours=1))
        assert is_active_at(record, T)
        assert not is_active_at(record, T + timedelta(hours=1))

    def test_in_progress_stays_active(self):
        record = make_record(Outcome.IN_PROGRESS, admitted=T - timedelta(days=400))
        assert is_active_at(record, T + timedelta(days=400))

    def test_unrecognised_outcome_is_never_active(self):
        assert not is_active_at(make_record(None), T)

    def test_missing_admission_is_never_active(self):
        assert not is_active_at(make_record(Outcome.IN_PROGRESS, admitted=None), T)

    def test_aware_query_instant(self):
        record = make_record(Outcome.IN_PROGRESS, admitted=datetime(2000, 1, 1))
        assert is_active_at(record, datetime(2025, 1, 1, tzinfo=timezone.utc))


class TestOutcomeAt:
    def setup_method(self):
        self.record = make_record(
            Outcome.DECEASED,
            admitted=T,
            release_instant=T + timedelta(days=2),
        )

    def test_before_admission(self):
        assert outcome_at(self.record, T - ONE_MS) is None

    def test_during_stay(self):
        assert outcome_at(self.record, T + timedelta(days=1)) == Outcome.IN_PROGRESS
        assert outcome_at(self.record, T + timedelta(days=2)) == Outcome.IN_PROGRESS

    def test_after_exit(self):
        assert outcome_at(self.record, T + timedelta(days=3)) == Outcome.DECEASED

    def test_unrecognised(self):
        assert outcome_at(make_record(None), T) is None


class TestPopulationOccupancy:
    def setup_method(self):
        self.population = [
            make_record(Outcome.IN_PROGRESS, record_id="n1", unit=Unit.NICU),
            make_record(Outcome.IN_PROGRESS, record_id="n2", unit=Unit.NICU),
            make_record(Outcome.IN_PROGRESS, record_id="p1", unit=Unit.PICU),
            make_record(
                Outcome.DISCHARGED,
                record_id="p2",
                unit=Unit.PICU,
                admitted=T - timedelta(days=5),
                release_instant=T - timedelta(days=1),
            ),
            make_record(Outcome.IN_PROGRESS, record_id="x", unit=None),
        ]

    def test_active_at_for_unit(self):
        assert [r.id for r in active_at(self.population, T, Unit.NICU)] == ["n1", "n2"]

    def test_active_at_all_units(self):
        assert len(active_at(self.population, T)) == 4

    def test_count_active_by_unit_includes_empty_units(self):
        counts = count_active_by_unit(self.population, T)
        assert counts[Unit.NICU] == 2
        assert counts[Unit.PICU] == 1
        assert counts[Unit.HDU] == 0
        assert set(counts) == set(Unit)

    def test_count_active_for_requested_units(self):
        counts = count_active_by_unit(self.population, T, [Unit.PICU])
        assert counts == {Unit.PICU: 1}


class TestBedStatus:
    def test_overflow(self):
        status = bed_status(12, 10)
        assert status.overflow == 2
        assert status.occupancy_rate_pct == 120.0
        assert status.is_overflow
        assert status.bar_width_pct == 100.0
        assert status.available == 0

    def test_under_capacity(self):
        status = bed_status(7, 20)
        assert status.overflow == 0
        assert status.occupancy_rate_pct == 35.0
        assert status.available == 13
        assert not status.is_overflow

    def test_zero_capacity(self):
        status = bed_status(3, 0)
        assert status.occupancy_rate_pct == 0.0
        assert status.overflow == 3

    @pytest.mark.parametrize("occupied,capacity,expected", [(1, 3, 33.3), (2, 3, 66.7)])
    def test_rate_rounded_to_one_decimal(self, occupied, capacity, expected):
        assert bed_status(occupied, capacity).occupancy_rate_pct == expected
