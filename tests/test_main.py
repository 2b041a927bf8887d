"""
Tests for the main application endpoints.
"""
import asyncio
import json

from radcenter.exceptions import unhandled_exception_handler


def test_root_endpoint(client):
    """
    Test the root endpoint returns a welcome message.
    """
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "version" in data


def test_health_check(client):
    """
    Test the health check endpoint returns a healthy status.
    """
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "database" in data


def test_request_headers_are_set(client):
    """
    Test the logging middleware tags every response.
    """
    response = client.post("/exec", params={"action": "getAllData"})
    assert response.status_code == 200
    assert response.headers.get("X-Request-ID")
    assert float(response.headers["X-Process-Time"]) >= 0


def test_action_calls_report_the_lock(client):
    """
    Test action calls say whether they ran under the advisory lock.
    """
    response = client.get("/exec", params={"action": "getAllData"})
    assert response.headers["X-Lock"] == "held"
    assert client.get("/health").headers["X-Lock"] == "none"


def test_unexpected_errors_hide_details():
    """
    Test the catch-all handler never echoes internal error text.
    """
    response = asyncio.run(unhandled_exception_handler(None, RuntimeError("UNIQUE constraint failed: patients.id")))
    assert response.status_code == 500
    assert json.loads(response.body) == {"status": "error", "message": "Internal server error"}


def test_app_engine_stays_in_memory(client):
    """
    Startup migration runs against an in-memory database during tests.
    """
    from radcenter.database import engine

    assert engine.url.database in (None, "", ":memory:")
    assert client.get("/health").status_code == 200
