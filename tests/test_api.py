import pytest
from fastapi.testclient import TestClient

import main
from extractor import ExtractionError
from pipeline import AnalysisPipeline


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(main.app.state, "pipeline", AnalysisPipeline(sleep=lambda s: None), raising=False)
    return TestClient(main.app)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_evidence(client, thin_page_data):
    response = client.post("/analyze/evidence", json={"evidence": thin_page_data, "tier": "FREE"})

    assert response.status_code == 200
    body = response.json()
    assert isinstance(body["totalScore"], int)
    assert body["grade"] == "F"
    assert body["categories"]["technicalSetup"]["score"] == 18
    assert body["recommendations"]["tier"] == "free"
    assert body["recommendations"]["limits"]["recommendationsShown"] == 3


def test_analyze_evidence_with_progress(client, thin_page_data):
    response = client.post(
        "/analyze/evidence",
        json={
            "evidence": thin_page_data,
            "tier": "diy",
            "userProgress": {"activeRecommendations": 4, "unlocksToday": 5, "lastUnlockDate": "2026-01-15"},
            "today": "2026-01-15",
        },
    )
    limits = response.json()["recommendations"]["limits"]
    assert limits["recommendationsShown"] == 4
    assert limits["canUnlockMore"] is False


def test_unknown_tier_is_a_bad_request(client, thin_page_data):
    response = client.post("/analyze/evidence", json={"evidence": thin_page_data, "tier": "enterprise"})
    assert response.status_code == 400
    assert "enterprise" in response.json()["detail"]


def test_analyze_url(client, monkeypatch, thin_page_data):
    fetched = []

    def fake_fetch(url):
        fetched.append(url)
        return thin_page_data

    monkeypatch.setattr(main, "fetch_evidence", fake_fetch)
    response = client.post("/analyze", json={"url": "example.com", "includeRecommendations": False})

    assert response.status_code == 200
    assert fetched == ["https://example.com"]
    assert response.json()["recommendations"] is None


def test_fetch_failure_is_a_bad_gateway(client, monkeypatch):
    def fail(url):
        raise ExtractionError(f"Could not fetch {url}: timed out")

    monkeypatch.setattr(main, "fetch_evidence", fail)
    response = client.post("/analyze", json={"url": "https://example.com"})
    assert response.status_code == 502


def test_unknown_tier_is_checked_before_fetching(client, monkeypatch):
    def fail(url):
        raise AssertionError("should not fetch")

    monkeypatch.setattr(main, "fetch_evidence", fail)
    response = client.post("/analyze", json={"url": "https://example.com", "tier": "gold"})
    assert response.status_code == 400


def test_non_http_url_is_rejected(client):
    response = client.post("/analyze", json={"url": "ftp://example.com/file"})
    assert response.status_code == 422
