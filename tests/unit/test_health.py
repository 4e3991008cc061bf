"""Tests for health check endpoints."""

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_basic_health_check(self, client: TestClient):
        """Test /health returns 200."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data
        assert "timestamp" in data

    def test_readiness_probe_healthy(self, client: TestClient):
        """Test /health/ready with the directory loaded and the store reachable."""
        response = client.get("/health/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ready"
        assert data["checks"]["directory"]["users"] == 7
        assert data["checks"]["store"]["backend"] == "MemoryStore"

    def test_readiness_probe_store_down(self, client: TestClient, desk, monkeypatch):
        """Test /health/ready returns 503 when the store fails."""
        def broken(kind):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(desk.ledger.store, "values", broken)
        response = client.get("/health/ready")
        assert response.status_code == 503
        data = response.json()
        assert data["failed"] == ["store"]

    def test_root(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "AccessGate"
