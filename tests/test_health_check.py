from unittest.mock import patch

from django.db import DatabaseError


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_cache_failure_is_unhealthy(self, client):
        with patch("modules.core.views.cache") as cache:
            cache.set.side_effect = ConnectionError("down")
            response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["cache"] == {"status": "down"}
        assert data["services"]["database"]["status"] == "up"

    def test_database_failure_is_unhealthy(self, client):
        with patch("modules.core.views.connections") as connections:
            connections["default"].ensure_connection.side_effect = DatabaseError("gone")
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["services"]["database"] == {"status": "down"}
