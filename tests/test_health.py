"""Tests for health endpoints."""

from unittest.mock import Mock

from fastapi.testclient import TestClient

from learnhub.core.database import AsyncCassandraConnection


def test_liveness(client: TestClient) -> None:
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness_degraded_without_database(client: TestClient) -> None:
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] is False
    assert data["redis"] is False


def test_readiness_with_database(app, client: TestClient, monkeypatch) -> None:
    app.state.course_service = Mock()
    monkeypatch.setattr(AsyncCassandraConnection, "is_connected", classmethod(lambda cls: True))

    data = client.get("/health/ready").json()

    assert data["status"] == "ready"
    assert data["database"] is True


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "learnhub"
    assert data["environment"] == "testing"


def test_root(client: TestClient) -> None:
    data = client.get("/").json()
    assert "LearnHub" in data["message"]
    assert "version" in data


def test_unknown_route_uses_error_envelope(client: TestClient) -> None:
    response = client.get("/v1/does-not-exist")
    assert response.status_code == 404
    data = response.json()
    assert data["error"] is True
    assert data["status_code"] == 404
