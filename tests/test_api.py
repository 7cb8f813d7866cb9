"""Tests for the FastAPI web API."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from perfsight.api import app
from perfsight.core.config import PerfSightConfig, reset_config, set_config

client = TestClient(app)

START = datetime(2026, 3, 1, 19, 0, tzinfo=UTC)
RATINGS = [0.8, 0.85, 0.9, 0.95, 1.0, 1.05, 1.1, 1.15, 1.2, 1.25]


def _make_matches(ratings=RATINGS):
    return [
        {
            "match_id": f"match-{i}",
            "finished_at": (START + timedelta(hours=i)).isoformat(),
            "map_name": "de_mirage",
            "rating": rating,
            "kills": 18,
            "deaths": 15,
            "adr": 50 + 40 * rating,
            "kast": 70.0,
        }
        for i, rating in enumerate(ratings)
    ]


def _make_request(**overrides):
    body = {
        "player_id": "76561198000000000",
        "premier_rating": 14200,
        "matches": _make_matches(),
    }
    body.update(overrides)
    return body


@pytest.fixture(autouse=True)
def _default_config():
    set_config(PerfSightConfig())
    yield
    reset_config()


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self):
        """Health endpoint returns OK status."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert isinstance(data["version"], str)


class TestAboutEndpoint:
    """Tests for the /about endpoint."""

    def test_about_lists_components_and_limits(self):
        response = client.get("/about")
        assert response.status_code == 200
        data = response.json()
        assert "tilt_detection" in data["components"]
        assert data["limits"] == {"min_matches": 5, "max_matches": 50}
        assert "POST /api/analysis/enhanced" in data["endpoints"]


class TestEnhancedAnalysisEndpoint:
    """Tests for POST /api/analysis/enhanced."""

    def test_full_analysis(self):
        """Valid history returns every result section."""
        response = client.post("/api/analysis/enhanced", json=_make_request())
        assert response.status_code == 200
        data = response.json()
        assert data["type"] == "enhanced_analysis"
        assert data["player_id"] == "76561198000000000"
        assert data["components"] == ["all"]
        assert data["match_count"] == 10
        analysis = data["analysis"]
        assert analysis["tier"] == "blue"
        assert "current_state" in analysis["performance_state_analysis"]
        assert "tilt_indicators" in analysis["performance_state_analysis"]["detected_patterns"]
        assert analysis["metric_correlation_analysis"]["primary_performance_drivers"]
        assert "immediate_alerts" in analysis["predictive_warning_system"]
        assert data["data_quality"]["score"] in ("high", "moderate", "low")

    def test_insufficient_matches(self):
        """Fewer than five matches is a structured 422."""
        request = _make_request(matches=_make_matches([1.0, 1.1, 0.9]))
        response = client.post("/api/analysis/enhanced", json=request)
        assert response.status_code == 422
        data = response.json()
        assert data["type"] == "enhanced_analysis_error"
        assert data["error"] == "Insufficient match data"
        assert data["observed"] == 3
        assert data["required"] == 5

    def test_too_many_matches(self):
        """More than 50 matches is rejected by request validation."""
        matches = _make_matches([1.0] * 51)
        response = client.post("/api/analysis/enhanced", json=_make_request(matches=matches))
        assert response.status_code == 422

    def test_unknown_component(self):
        request = _make_request(components=["tilt_detection", "astrology"])
        response = client.post("/api/analysis/enhanced", json=request)
        assert response.status_code == 422
        assert "Unknown analysis component" in response.json()["detail"]

    def test_invalid_player_id(self):
        request = _make_request(player_id="bad id; drop table")
        response = client.post("/api/analysis/enhanced", json=request)
        assert response.status_code == 400
        assert "Invalid player_id" in response.json()["detail"]

    def test_premier_rating_out_of_range(self):
        response = client.post("/api/analysis/enhanced", json=_make_request(premier_rating=-5))
        assert response.status_code == 422

    def test_missing_matches(self):
        response = client.post("/api/analysis/enhanced", json={"player_id": "player1"})
        assert response.status_code == 422

    def test_component_filtering(self):
        request = _make_request(components=["correlation_analysis"])
        response = client.post("/api/analysis/enhanced", json=request)
        assert response.status_code == 200
        analysis = response.json()["analysis"]
        assert "metric_correlation_analysis" in analysis
        assert "performance_state_analysis" not in analysis
        assert "pattern_recognition" not in analysis
        assert "predictive_warning_system" in analysis

    def test_without_premier_rating(self):
        request = _make_request()
        del request["premier_rating"]
        response = client.post("/api/analysis/enhanced", json=request)
        assert response.status_code == 200
        data = response.json()
        assert any("No premier rating supplied" in w for w in data["analysis"]["warnings"])
        assert "No premier rating supplied - using blue tier thresholds" in (
            data["data_quality"]["issues"]
        )
