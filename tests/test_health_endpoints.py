"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_endpoint_returns_ok(self, client):
        """GET /health reports database and security checks."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "test"
        assert data["checks"]["database"]["status"] == "healthy"
        assert data["checks"]["security"] == {"status": "healthy"}

    def test_short_secret_degrades(self, client, monkeypatch):
        monkeypatch.setenv("JWT_SECRET", "short")

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_database_down_is_503(self, client):
        with patch("web.routers.health.check_database_connection", AsyncMock(return_value=False)):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["checks"]["database"]["status"] == "unhealthy"

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness(self, client):
        assert client.get("/health/ready").json() == {"status": "ready"}

        with patch("web.routers.health.check_database_connection", AsyncMock(return_value=False)):
            response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["reason"] == "database"

    def test_no_auth_required(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert "x-request-id" in response.headers

    def test_email_check_reports_provider(self, client):
        data = client.get("/health").json()
        assert data["checks"]["email"] == {"status": "healthy", "provider": "null"}

    def test_email_check_with_smtp(self, client, monkeypatch):
        from config.settings import get_smtp_settings

        monkeypatch.setenv("SMTP_HOST", "smtp.mail.test")
        get_smtp_settings.cache_clear()

        data = client.get("/health").json()
        assert data["checks"]["email"]["provider"] == "smtp"
