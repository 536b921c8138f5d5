from fastapi.testclient import TestClient
from fitpool.main import app

client = TestClient(app)

def test_health_ok():
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert "request_id" in data

def test_health_echoes_request_id():
    r = client.get("/health", headers={"x-request-id": "req-123"})
    assert r.json()["request_id"] == "req-123"
    assert r.headers["X-Request-ID"] == "req-123"

def test_version_ok():
    r = client.get("/version")
    assert r.status_code == 200
    data = r.json()
    assert "version" in data and "git_sha" in data
    assert data["payout_mode"] == "wallet"

def test_run_serves_on_configured_address(monkeypatch):
    import uvicorn
    from fitpool import main
    from fitpool.config import settings

    seen = {}
    monkeypatch.setattr(uvicorn, "run", lambda target, **kw: seen.update(target=target, **kw))
    monkeypatch.setattr(settings, "api_host", "127.0.0.1")
    monkeypatch.setattr(settings, "api_port", 9001)
    main.run()
    assert seen == {"target": "fitpool.main:app", "host": "127.0.0.1", "port": 9001}
