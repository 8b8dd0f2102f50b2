from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from facility_risk.focus_areas.api import get_focus_areas_service, get_session_factory
from facility_risk.focus_areas.quality_measures import NeutralQualityMeasures
from facility_risk.focus_areas.services import FocusAreasService
from facility_risk.main import app

from .factories import add_deficiency, add_facility


class BrokenQualityMeasures(NeutralQualityMeasures):
    def factor_scores(self, facility, category_id):
        raise RuntimeError("quality measure feed unavailable")


@pytest.fixture
def client(db, session_factory):
    recent = date.today() - timedelta(days=60)
    add_facility(db, "105001", "FL", 100)
    add_deficiency(db, "105001", recent, "F0689", "G")
    add_deficiency(db, "105001", recent, "F0880", "J")
    db.commit()

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_get_focus_areas(client):
    response = client.get("/api/v1/facilities/105001/focus-areas")

    assert response.status_code == 200
    body = response.json()
    assert body["facility_id"] == "105001"
    assert body["overall_risk_tier"] in {"Low", "Medium", "High", "Very High"}
    assert [fa["rank"] for fa in body["focus_areas"]] == list(range(1, 8))
    assert body["focus_areas"][0]["category_name"] == "Infection Control"
    assert body["model_version"] == "1.0"


def test_unknown_facility_returns_404(client):
    response = client.get("/api/v1/facilities/999999/focus-areas")

    assert response.status_code == 404
    assert response.json() == {"error": "Facility not found"}


def test_calculation_failure_returns_500(client, session_factory):
    app.dependency_overrides[get_focus_areas_service] = lambda: FocusAreasService(
        session_factory=session_factory, quality_measures=BrokenQualityMeasures()
    )

    response = client.get("/api/v1/facilities/105001/focus-areas")

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Failed to calculate focus areas"
    assert "quality measure feed unavailable" in body["details"]


def test_recalculate_then_history(client):
    response = client.post("/api/v1/focus-areas/recalculate", params={"state": "FL"})

    assert response.status_code == 200
    report = response.json()
    assert report["processed"] == 1
    assert report["errors"] == 0

    history = client.get("/api/v1/facilities/105001/focus-areas/history", params={"limit": 5})
    assert history.status_code == 200
    snapshots = history.json()
    assert len(snapshots) == 1
    assert snapshots[0]["scoring_profile"] == "nightly_v1"
    assert len(snapshots[0]["focus_areas"]) == 7


def test_history_limit_is_validated(client):
    response = client.get("/api/v1/facilities/105001/focus-areas/history", params={"limit": 0})
    assert response.status_code == 422
