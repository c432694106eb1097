#!/usr/bin/env python3
"""
App Tests

Health endpoints and the common error envelope.
Run: pytest scripts/test_app.py
"""

import app.main as main


def test_root(client):
    body = client.get("/").json()
    assert body["status"] == "healthy"
    assert body["app"] == "StudentNest"


def test_health_reports_mongodb(client, monkeypatch):
    monkeypatch.setattr(main, "test_mongo_connection", lambda: True)
    assert client.get("/health").json() == {"status": "healthy", "mongodb": "connected"}

    monkeypatch.setattr(main, "test_mongo_connection", lambda: False)
    assert client.get("/health").json() == {"status": "degraded", "mongodb": "disconnected"}


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}


def test_validation_error_envelope(client):
    response = client.post("/api/auth/login", json={"identifier": "ab"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("identifier")
