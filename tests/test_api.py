"""Tests for the REST API endpoints."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from teslajustice.api.app import app, get_ingestor
from teslajustice.core.database import init_db
from teslajustice.core.errors import RepositoryError
from teslajustice.data.repository import CaseRepository
from teslajustice.data.schemas import SearchPage, SourceCreate


def make_post(platform_id, content):
    return SourceCreate(
        platform="twitter",
        platform_id=platform_id,
        author_username="witness",
        content=content,
        posted_at=datetime(2025, 3, 1, 8, 0),
    )


class StubIngestor:
    platform = "twitter"

    def __init__(self, posts=()):
        self.posts = list(posts)

    def search(self, query, count=20, cursor=None):
        return SearchPage(posts=self.posts, raw_count=len(self.posts))

    def fetch_replies(self, platform_id):
        return []


@pytest.fixture(autouse=True)
def setup_db(tmp_path, monkeypatch):
    """Use a temporary database for all API tests."""
    db_url = f"sqlite:///{tmp_path / 'test_api.db'}"
    monkeypatch.setenv("TESLAJUSTICE_DB_URL", db_url)
    from teslajustice.core import config
    monkeypatch.setattr(config, "DATABASE_URL", db_url)
    monkeypatch.setattr(config, "MONITORING_REQUEST_DELAY", 0)
    init_db(db_url)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def use_ingestor(ingestor):
    app.dependency_overrides[get_ingestor] = lambda: ingestor


def create_case(client, content="White Tesla Model 3 keyed in Austin, TX", platform_id="1"):
    resp = client.post("/api/sources", json={
        "platform": "twitter",
        "platform_id": platform_id,
        "author_username": "witness",
        "content": content,
        "posted_at": "2025-03-01T08:00:00",
    })
    assert resp.status_code == 200
    return resp.json()


class TestMonitoringTrigger:
    def test_successful_cycle(self, client):
        use_ingestor(StubIngestor([make_post("1", "White Tesla Model 3 keyed in Austin, TX")]))
        resp = client.get("/api/run-monitoring")
        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["message"] == "Monitoring cycle completed successfully"
        assert data["results"]["newCases"] == 1
        assert data["results"]["updatedCases"] == 0
        assert "processingTimeSeconds" in data["results"]
        assert "timestamp" in data["results"]

    def test_failed_cycle(self, client, monkeypatch):
        def broken(self, platform=None):
            raise RepositoryError("database is locked")

        monkeypatch.setattr(CaseRepository, "active_keywords", broken)
        use_ingestor(StubIngestor())
        resp = client.get("/api/run-monitoring")
        assert resp.status_code == 500
        data = resp.json()
        assert data["success"] is False
        assert data["message"] == "Failed to run monitoring cycle"
        assert "database is locked" in data["error"]

    def test_update_check(self, client):
        use_ingestor(StubIngestor())
        create_case(client)
        resp = client.post("/api/run-update-check")
        assert resp.status_code == 200
        assert resp.json()["cases_checked"] == 1


class TestSources:
    def test_relevant_source_creates_case(self, client):
        data = create_case(client)
        assert data["status"] == "processed"
        assert data["is_new_case"] is True

    def test_irrelevant_source_ignored(self, client):
        data = create_case(client, content="Washed my Tesla today")
        assert data["status"] == "ignored"

    def test_forced_source(self, client):
        resp = client.post("/api/sources?force=true", json={
            "platform_id": "9",
            "author_username": "witness",
            "content": "Tesla Supercharger station spray painted in Fremont, CA",
            "posted_at": "2025-03-01T08:00:00",
        })
        assert resp.json()["is_new_case"] is True

    def test_empty_content_rejected(self, client):
        resp = client.post("/api/sources", json={
            "platform_id": "9", "author_username": "w", "content": "",
            "posted_at": "2025-03-01T08:00:00",
        })
        assert resp.status_code == 422


class TestCases:
    def test_list_cases(self, client):
        create_case(client)
        resp = client.get("/api/cases?city=Austin")
        assert resp.status_code == 200
        data = resp.json()
        assert data["pagination"]["total_count"] == 1
        assert data["cases"][0]["location_state"] == "TX"

    def test_case_detail(self, client):
        case_id = create_case(client)["case_id"]
        resp = client.get(f"/api/cases/{case_id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["headline"] == "Tesla Model 3 vandalized in Austin, TX: Keyed by vandal"
        assert len(data["updates"]) == 1

    def test_missing_case(self, client):
        assert client.get("/api/cases/999").status_code == 404

    def test_status_change(self, client):
        case_id = create_case(client)["case_id"]
        resp = client.post(f"/api/cases/{case_id}/status", json={"status": "verified"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "verified"

    def test_invalid_status(self, client):
        case_id = create_case(client)["case_id"]
        resp = client.post(f"/api/cases/{case_id}/status", json={"status": "closed"})
        assert resp.status_code == 400

    def test_patch_case(self, client):
        case_id = create_case(client)["case_id"]
        resp = client.patch(f"/api/cases/{case_id}", json={"severity": "major"})
        assert resp.status_code == 200
        assert resp.json()["severity"] == "major"

    def test_mark_duplicate(self, client):
        first = create_case(client)["case_id"]
        second = create_case(client, content="Tesla Model Y keyed in Dallas, TX", platform_id="2")["case_id"]
        resp = client.post(f"/api/cases/{second}/duplicate", json={"duplicate_of": first})
        assert resp.status_code == 200
        assert resp.json()["duplicate_of"] == first
        assert client.post(f"/api/cases/{first}/duplicate", json={"duplicate_of": first}).status_code == 400


class TestMonitoringConfig:
    def test_keywords(self, client):
        resp = client.post("/api/monitoring/keywords", json={"keyword": "tesla keyed"})
        assert resp.status_code == 200
        keywords = client.get("/api/monitoring/keywords").json()["keywords"]
        assert [k["keyword"] for k in keywords] == ["tesla keyed"]

    def test_accounts(self, client):
        client.post("/api/monitoring/accounts", json={"username": "@TeslaJustice"})
        accounts = client.get("/api/monitoring/accounts").json()["accounts"]
        assert [a["username"] for a in accounts] == ["TeslaJustice"]

    def test_duplicate_account(self, client):
        client.post("/api/monitoring/accounts", json={"username": "TeslaJustice"})
        resp = client.post("/api/monitoring/accounts", json={"username": "TeslaJustice"})
        assert resp.status_code == 409


def test_status(client):
    resp = client.get("/api/status")
    assert resp.status_code == 200
    assert resp.json()["status"] == "operational"
