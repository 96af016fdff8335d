"""Tests for the health check endpoint."""

from datetime import datetime


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "OK"
    assert data["message"] == "Security Portal API is running!"
    assert data["version"] == "1.0.0"

    # Verify timestamp is a valid ISO format
    datetime.fromisoformat(data["timestamp"])


def test_health_check_does_not_touch_stores(client, request_store, role_store):
    client.get("/health")

    assert request_store.requests == {}
    assert role_store.lookups == []


def test_request_id_header_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"


def test_unknown_route_returns_404_body(client):
    response = client.get("/api/unknown")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Route GET /api/unknown not found"}


def test_openapi_available(client):
    response = client.get("/openapi.json")

    assert response.status_code == 200
    assert "/api/requests/{request_id}/status" in response.json()["paths"]
