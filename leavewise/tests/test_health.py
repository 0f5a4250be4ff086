"""
Tests for health and version endpoints
"""


def test_health_endpoint(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "leavewise-backend"}


def test_version_endpoint(client):
    response = client.get("/api/v1/version")

    assert response.status_code == 200
    data = response.json()
    assert data["service"] == "leavewise-backend"
    assert "version" in data
    assert data["env"] in ("local", "staging", "prod")
