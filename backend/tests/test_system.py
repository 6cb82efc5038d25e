from fastapi.testclient import TestClient
from listmod.main import app

client = TestClient(app)

def test_health_ok():
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "request_id" in data
    assert r.headers["X-Request-ID"] == data["request_id"]

def test_request_id_is_echoed():
    r = client.get("/health", headers={"x-request-id": "abc-123"})
    assert r.headers["X-Request-ID"] == "abc-123"
    assert r.json()["request_id"] == "abc-123"

def test_version_ok():
    r = client.get("/version")
    assert r.status_code == 200
    data = r.json()
    assert data["name"] == "listmod-api"
    assert "version" in data and "git_sha" in data

def test_unknown_list_is_404():
    r = client.get("/nope/submissions/status")
    assert r.status_code == 404
    assert r.json()["detail"] == "Unknown list: nope"
