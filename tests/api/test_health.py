"""Tests for health endpoints."""

from unittest.mock import MagicMock, patch


class TestHealth:

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"alive": True}

    def test_degraded_when_database_unreachable(self, client):
        factory = MagicMock(side_effect=OSError("connection refused"))
        with patch("site_analyzer.api.v1.routes.health.get_session_factory", return_value=factory):
            body = client.get("/health").json()
        assert body["status"] == "degraded"
        assert body["checks"]["database"].startswith("unhealthy")
