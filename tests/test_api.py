"""
HTTP-level tests: merchant header handling, role checks and the error envelope.

Services are monkeypatched so no database is needed.
"""

from __future__ import annotations

from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from karigar.api.main import app
from karigar.api.routes import inventory as inventory_routes
from karigar.api.routes import production as production_routes
from karigar.core.deps import get_current_active_user
from karigar.core.errors import InvalidTransition, NotFoundError

from conftest import make_user


def _headers(merchant_id) -> dict:
    return {"X-Merchant-ID": str(merchant_id), "Authorization": "Bearer test"}


class TestHealth:
    def test_health(self, client) -> None:
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Healthy"
        assert resp.headers["X-Correlation-ID"]

    def test_correlation_id_is_echoed(self, client) -> None:
        resp = client.get("/api/v1/health", headers={"X-Correlation-ID": "abc-123"})
        assert resp.headers["X-Correlation-ID"] == "abc-123"

    def test_merchant_echo(self, client, merchant_id) -> None:
        resp = client.get("/api/v1/health/merchant", headers={"X-Merchant-ID": str(merchant_id)})
        assert resp.status_code == 200
        assert resp.json() == {"merchant_id": str(merchant_id)}

    def test_websocket_info(self, client) -> None:
        body = client.get("/api/v1/websocket-info").json()
        assert body["endpoints"][0]["path"] == "/ws/kanban"


class TestMerchantHeader:
    def test_missing_header(self, client) -> None:
        resp = client.get("/api/v1/health/merchant")
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["type"] == "http_error"
        assert "X-Merchant-ID" in body["error"]["message"]
        assert body["path"] == "/api/v1/health/merchant"

    def test_malformed_header(self, client) -> None:
        resp = client.get("/api/v1/health/merchant", headers={"X-Merchant-ID": "not-a-uuid"})
        assert resp.status_code == 400
        assert resp.json()["merchant_id"] == "not-a-uuid"


class TestErrorEnvelope:
    def test_request_validation(self, client, merchant_id) -> None:
        resp = client.post(f"/api/v1/production/steps/{uuid4()}/move", json={}, headers=_headers(merchant_id))
        assert resp.status_code == 422
        body = resp.json()
        assert body["error"]["type"] == "validation_error"
        assert any(e["loc"][-1] == "target_stage" for e in body["error"]["details"])

    def test_invalid_transition_maps_to_409(self, client, merchant_id, monkeypatch) -> None:
        async def _move(self, step_id, payload):
            raise InvalidTransition("Kanban card", "pending", payload.target_stage)

        monkeypatch.setattr(production_routes.ManufacturingService, "move_card", _move)
        resp = client.post(
            f"/api/v1/production/steps/{uuid4()}/move",
            json={"target_stage": "meena"},
            headers=_headers(merchant_id),
        )
        assert resp.status_code == 409
        body = resp.json()
        assert body["error"]["type"] == "invalid_transition"
        assert body["error"]["details"] == {"entity": "Kanban card", "from": "pending", "to": "meena"}
        assert body["merchant_id"] == str(merchant_id)

    def test_not_found_maps_to_404(self, client, merchant_id, monkeypatch) -> None:
        async def _lookup(self, tag_id):
            raise NotFoundError("Tag", tag_id)

        monkeypatch.setattr(inventory_routes.TagService, "lookup", _lookup)
        resp = client.get("/api/v1/inventory/tags/TAG000404", headers=_headers(merchant_id))
        assert resp.status_code == 404
        assert resp.json()["error"]["details"] == {"entity": "Tag", "key": "TAG000404"}

    def test_integrity_error_maps_to_conflict(self, client, merchant_id, monkeypatch) -> None:
        async def _move(self, step_id, payload):
            raise IntegrityError("INSERT ...", {}, Exception("duplicate key"))

        monkeypatch.setattr(production_routes.ManufacturingService, "move_card", _move)
        resp = client.post(
            f"/api/v1/production/steps/{uuid4()}/move",
            json={"target_stage": "jhalai"},
            headers=_headers(merchant_id),
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["type"] == "conflict"


class TestRoles:
    def test_worker_cannot_read_activity_log(self, client, merchant_id) -> None:
        async def _worker():
            return make_user("worker")

        app.dependency_overrides[get_current_active_user] = _worker
        resp = client.get("/api/v1/activity", headers=_headers(merchant_id))
        assert resp.status_code == 403
        assert resp.json()["error"]["message"] == "Insufficient role"

    def test_worker_can_look_up_tags(self, client, merchant_id, monkeypatch) -> None:
        async def _worker():
            return make_user("worker")

        async def _lookup(self, tag_id):
            raise NotFoundError("Tag", tag_id)

        app.dependency_overrides[get_current_active_user] = _worker
        monkeypatch.setattr(inventory_routes.TagService, "lookup", _lookup)
        resp = client.get("/api/v1/inventory/tags/TAG000001", headers=_headers(merchant_id))
        assert resp.status_code == 404
