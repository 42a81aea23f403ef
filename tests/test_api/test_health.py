"""Tests for the health check endpoint and basic app setup."""

from __future__ import annotations


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200

    def test_health_response_body(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "0.1.0"
        assert "env" in data


class TestRouting:
    def test_api_routes_are_mounted(self, app):
        paths = set(app.openapi()["paths"])
        assert "/api/auth/login" in paths
        assert "/api/auth/exchange" in paths
        assert "/api/projects/{projectnumber}/items/{item_seq}" in paths
        assert "/api/wbs/{node_id}" in paths
        assert "/api/jobcards/{qr_slug}/qr.png" in paths
        assert "/api/jobcards/{task_id}/hse/responses" in paths
        assert "/api/admin/users/{user_id}/memberships/{projectnumber}" in paths
