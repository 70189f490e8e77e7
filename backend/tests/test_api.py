"""Tests for API endpoints."""
import pytest
from fastapi.testclient import TestClient

from tripeaks_tuner.main import app


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def single_seven(make_card, make_level):
    return make_level([make_card("seven", 0, 0)], stack=[6], level_id="single_seven")


class TestRootEndpoint:
    """Tests for root endpoint."""

    def test_root_returns_info(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert "name" in data
        assert "version" in data
        assert data["endpoints"]["tune"] == "/api/tune"


class TestHealthEndpoint:
    """Tests for health endpoint."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAnalyzeEndpoint:
    """Tests for layout analysis endpoint."""

    def test_analyze_valid_level(self, client, pyramid_level):
        response = client.post("/api/analyze", json={"level_json": pyramid_level})

        assert response.status_code == 200
        data = response.json()
        assert data["level_id"] == "pyramid"
        assert data["metrics"]["card_count"] == 3

    def test_analyze_invalid_level(self, client):
        response = client.post("/api/analyze", json={"level_json": {"cards": []}})

        assert response.status_code == 400
        assert "Invalid level" in response.json()["detail"]

    def test_analyze_malformed_card_field(self, client, make_card, make_level):
        card = make_card("a", 0, 0)
        card["angle"] = "abc"

        response = client.post("/api/analyze", json={"level_json": make_level([card])})

        assert response.status_code == 400
        assert "'angle' must be an integer" in response.json()["detail"]

    def test_tune_malformed_settings_field(self, client, make_card, make_level):
        data = make_level([make_card("a", 0, 0)])
        data["settings"]["star_1"] = "high"

        response = client.post("/api/tune", json={"level_json": data})

        assert response.status_code == 400

    def test_analyze_missing_body(self, client):
        response = client.post("/api/analyze", json={})

        assert response.status_code == 422


class TestSimulateEndpoint:
    """Tests for simulation endpoints."""

    def test_simulate_deck_size(self, client, two_sevens_level):
        response = client.post("/api/simulate", json={
            "level_json": two_sevens_level,
            "deck_size": 1,
            "iterations": 20,
            "seed": 3,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["seed"] == 3
        assert data["result"]["total_games"] == 20
        assert data["result"]["wins"] == 0
        assert data["result"]["loss_reasons"] == {"stuck": 20}

    def test_simulate_rejects_bad_probability(self, client, two_sevens_level):
        response = client.post("/api/simulate", json={
            "level_json": two_sevens_level,
            "deck_size": 5,
            "favorable": {"base": 1.5},
        })

        assert response.status_code == 422

    def test_playout_with_level_stack(self, client, single_seven):
        response = client.post("/api/simulate/playout", json={
            "level_json": single_seven,
            "use_level_stack": True,
            "seed": 1,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["won"] is True
        assert data["close_win"] is True
        assert data["history"][0]["card_id"] == "seven"

    def test_playout_requires_deck_source(self, client, single_seven):
        response = client.post("/api/simulate/playout", json={"level_json": single_seven})

        assert response.status_code == 422


class TestTuneEndpoint:
    """Tests for tuning endpoints."""

    def test_tune_small_range(self, client, zap_row_level):
        response = client.post("/api/tune", json={
            "level_json": zap_row_level,
            "min_deck_size": 5,
            "max_deck_size": 7,
            "simulations_per_size": 30,
            "seed": 1,
            "include_optimized_level": True,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["base_seed"] == 1
        assert [r["deck_size"] for r in data["results"]] == [5, 6, 7]
        recommended = data["optimal"]["recommended_size"]
        assert data["optimized_level"]["settings"]["cards_in_stack"] == [-1] * recommended

    def test_tune_rejects_inverted_range(self, client, zap_row_level):
        response = client.post("/api/tune", json={
            "level_json": zap_row_level,
            "min_deck_size": 10,
            "max_deck_size": 5,
        })

        assert response.status_code == 422

    def test_tune_invalid_level(self, client):
        response = client.post("/api/tune", json={"level_json": {"id": "broken"}})

        assert response.status_code == 400

    def test_export_csv(self, client, zap_row_level):
        response = client.post("/api/tune/export", json={
            "level_json": zap_row_level,
            "min_deck_size": 5,
            "max_deck_size": 6,
            "simulations_per_size": 20,
            "seed": 2,
            "delimiter": ";",
        })

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.splitlines()
        assert lines[0] == "# Simulation Metadata"
        assert "deck_size;total_games;wins" in response.text

    def test_optimized_level(self, client, pyramid_level):
        response = client.post("/api/tune/optimized-level", json={
            "level_json": pyramid_level,
            "deck_size": 18,
            "source_name": "pyramid.json",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["file_name"] == "pyramid_optimized_18cards.json"
        assert data["original_deck_size"] == 10
        assert data["deck_size"] == 18
        assert data["level_json"]["settings"]["cards_in_stack"] == [-1] * 18
