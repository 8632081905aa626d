from fastapi.testclient import TestClient

from classpulse.api.dependencies import get_registry
from classpulse.api.main import app


class _BrokenRegistry:
    def list_courses(self, **kwargs):
        raise RuntimeError("database file is corrupt at /secret/path")


def test_status(client):
    resp = client.get("/api/status")
    assert resp.status_code == 200
    assert resp.json()["status"] == "online"


def test_unexpected_error_does_not_leak_details(db_service):
    app.dependency_overrides[get_registry] = lambda: _BrokenRegistry()
    try:
        resp = TestClient(app, raise_server_exceptions=False).get("/api/courses")
    finally:
        app.dependency_overrides.pop(get_registry, None)

    assert resp.status_code == 500
    assert resp.json()["code"] == "unexpected_error"
    assert "secret" not in resp.text


def test_malformed_body_is_a_validation_error(client, student_token, auth_header):
    resp = client.post(
        "/api/behavior/log",
        json={"login_frequency": "often"},
        headers=auth_header(student_token),
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "validation_error"
