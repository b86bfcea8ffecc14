"""Tests for the FastAPI occupancy service."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from wardflow.api.main import app, replace_population
from wardflow.config import WardConfig


def _iso(instant):
    return instant.isoformat()


@pytest.fixture
def client():
    now = datetime.now()
    documents = [
        {
            "id": "n1",
            "name": "Baby of Asha",
            "unit": "Neonatal Intensive Care Unit",
            "admissionType": "Inborn",
            "admissionDate": _iso(now - timedelta(hours=5)),
            "outcome": "In Progress",
        },
        {
            "id": "n2",
            "name": "Baby of Meera",
            "unit": "NICU",
            "admissionType": "Outborn (Community Referred)",
            "admissionDate": _iso(now - timedelta(days=3)),
            "outcome": "In Progress",
            "diagnosis": "Sepsis",
        },
        {
            "id": "n3",
            "name": "Baby of Lata",
            "unit": "NICU",
            "admissionType": "Inborn",
            "admissionDate": _iso(datetime(2024, 5, 1, 9)),
            "outcome": "Deceased",
            "releaseDate": _iso(datetime(2024, 5, 4, 9)),
        },
        {
            "id": "p1",
            "name": "Ravi",
            "unit": "Pediatric Intensive Care Unit",
            "admissionDate": _iso(now - timedelta(days=2)),
            "outcome": "In Progress",
        },
    ]
    replace_population(
        documents, WardConfig(bed_capacity={"NICU": 1, "PICU": 10})
    )
    return TestClient(app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "patients": 4}


def test_occupancy_now(client):
    response = client.get("/api/occupancy")
    assert response.status_code == 200
    units = response.json()["units"]
    assert units["NICU"]["occupied"] == 2
    assert units["NICU"]["overflow"] == 1
    assert units["NICU"]["occupancy_rate_pct"] == 200.0
    assert units["NICU"]["bar_width_pct"] == 100.0
    assert units["PICU"]["occupied"] == 1
    assert units["HDU"]["capacity"] == 0


def test_occupancy_at_past_instant(client):
    response = client.get("/api/occupancy", params={"at": "2024-05-02T12:00:00"})
    assert response.status_code == 200
    assert response.json()["units"]["NICU"]["occupied"] == 1


def test_registry_all_time(client):
    response = client.get("/api/registry/NICU")
    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["total"] == 3
    assert body["stats"]["counts"]["Deceased"] == 1
    assert body["stats"]["mortality_rate_pct"] == 33.3
    assert body["new_admissions"] == 1
    assert [p["id"] for p in body["patients"]] == ["n1", "n2", "n3"]


def test_registry_filters(client):
    response = client.get(
        "/api/registry/NICU",
        params={"period": "2024-05", "cohort": "Inborn"},
    )
    body = response.json()
    assert body["stats"]["total"] == 1
    assert body["patients"][0]["id"] == "n3"

    response = client.get("/api/registry/NICU", params={"search": "sepsis"})
    assert [p["id"] for p in response.json()["patients"]] == ["n2"]

    response = client.get("/api/registry/NICU", params={"outcome": "Deceased"})
    assert [p["id"] for p in response.json()["patients"]] == ["n3"]


def test_registry_unknown_unit(client):
    response = client.get("/api/registry/Maternity")
    assert response.status_code == 404
    assert "NICU" in response.json()["detail"]["available_units"]


def test_registry_bad_period(client):
    response = client.get("/api/registry/NICU", params={"period": "Last Fortnight"})
    assert response.status_code == 400


def test_registry_bad_outcome(client):
    response = client.get("/api/registry/NICU", params={"outcome": "Absconded"})
    assert response.status_code == 400


def test_occupancy_series(client):
    response = client.get("/api/occupancy-series", params={"lookback": "7days"})
    assert response.status_code == 200
    body = response.json()
    assert body["step_days"] == 1
    assert body["capacity"]["NICU"] == 1
    assert len(body["samples"]) == 8
    assert body["samples"][-1]["counts"]["PICU"] == 1


@pytest.mark.parametrize(
    "lookback,expected_step",
    [("7days", 1), ("30days", 1), ("3months", 3), ("6months", 7), ("12months", 15)],
)
def test_occupancy_series_step_per_lookback(client, lookback, expected_step):
    response = client.get("/api/occupancy-series", params={"lookback": lookback})
    assert response.status_code == 200
    assert response.json()["step_days"] == expected_step


def test_occupancy_series_unknown_lookback(client):
    response = client.get("/api/occupancy-series", params={"lookback": "2weeks"})
    assert response.status_code == 400
