from starlette.testclient import TestClient

from buffersearch.api.app import app
from buffersearch.core.errors import TransportError
from buffersearch.domain.models import Feature
from buffersearch.query.outcome import Empty, Failure, Success


class _StubQueryClient:
    def __init__(self, outcome):
        self.outcome = outcome

    async def query(self, layer, area):
        return self.outcome


def _patch_client(monkeypatch, outcome):
    import buffersearch.api.routes as routes

    monkeypatch.setattr(routes, "_query_client", lambda settings: _StubQueryClient(outcome))


def test_buffer_query_returns_rendered_rows(monkeypatch):
    features = tuple(
        Feature(geometry={"type": "Point", "coordinates": [10.0, 20.0]}, properties={"id": f"f{i}", "name": "x"})
        for i in range(3)
    )
    _patch_client(monkeypatch, Success(features))

    with TestClient(app) as c:
        resp = c.post("/api/buffer-query", json={"x": 10, "y": 20, "distance": 1000, "unit": "meters"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["outcome"] == "success"
    assert data["results"]["total"] == 3
    assert data["results"]["rows"][0]["_id"] == "f0"
    assert data["results"]["error"] is None


def test_buffer_query_empty_is_not_an_error(monkeypatch):
    _patch_client(monkeypatch, Empty())

    with TestClient(app) as c:
        resp = c.post("/api/buffer-query", json={"x": 10, "y": 20})

    assert resp.status_code == 200
    data = resp.json()
    assert data["outcome"] == "empty"
    assert data["results"]["rows"] == []
    assert data["notifications"][0]["severity"] == "info"


def test_buffer_query_transport_failure_is_502(monkeypatch):
    _patch_client(monkeypatch, Failure(TransportError("Backend unreachable")))

    with TestClient(app) as c:
        resp = c.post("/api/buffer-query", json={"x": 10, "y": 20})

    assert resp.status_code == 502
    assert resp.json()["detail"]["code"] == "TRANSPORT_ERROR"


def test_buffer_query_invalid_distance_is_400(monkeypatch):
    _patch_client(monkeypatch, Empty())

    with TestClient(app) as c:
        resp = c.post("/api/buffer-query", json={"x": 10, "y": 20, "distance": -5})

    assert resp.status_code == 400
    assert resp.json()["detail"]["code"] == "VALIDATION_ERROR"


def test_buffer_query_rejects_disallowed_overrides(monkeypatch):
    _patch_client(monkeypatch, Empty())

    with TestClient(app) as c:
        resp = c.post(
            "/api/buffer-query",
            json={"x": 10, "y": 20, "settings_overrides": {"backend": {"api_key": "x"}}},
        )

    assert resp.status_code == 400


def test_buffer_endpoint_returns_closed_polygon():
    with TestClient(app) as c:
        resp = c.post("/api/buffer", json={"x": 10, "y": 20, "distance": 1, "unit": "kilometers"})

    assert resp.status_code == 200
    data = resp.json()
    ring = data["geometry"]["coordinates"][0]
    assert data["distance_m"] == 1000
    assert ring[0] == ring[-1]


def test_public_settings_hide_api_key():
    with TestClient(app) as c:
        resp = c.get("/api/settings")

    assert resp.status_code == 200
    data = resp.json()
    assert "backend" not in data
    assert data["buffer"]["default_unit"] in {"meters", "kilometers"}
