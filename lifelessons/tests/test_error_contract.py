"""Tests for normalized error responses."""

from fastapi import APIRouter
from fastapi.testclient import TestClient

from lifelessons.main import create_app


def _assert_contract(resp, code):
    body = resp.json()
    rid = resp.headers.get("x-request-id")
    assert rid
    assert body["error"]["code"] == code
    assert body["error"]["request_id"] == rid
    assert body["message"] == body["error"]["message"] == body["detail"]


def test_validation_error_has_standard_shape(client):
    resp = client.post("/users/upsert", json={"uid": "u1"})
    assert resp.status_code == 400
    _assert_contract(resp, "validation_error")
    assert resp.json()["message"] == "Invalid or missing fields: email"


def test_not_found_normalized(client):
    resp = client.get("/lessons/missing")
    assert resp.status_code == 404
    _assert_contract(resp, "not_found")


def test_unknown_route_normalized(client):
    resp = client.get("/no/such/route")
    assert resp.status_code == 404
    _assert_contract(resp, "not_found")


def test_permission_error_normalized(client, make_user):
    make_user("u1")
    resp = client.get("/admin/users", headers={"X-User-Id": "u1"})
    assert resp.status_code == 403
    _assert_contract(resp, "forbidden")


def test_store_not_ready_normalized(test_settings, unready_store, provider):
    client = TestClient(create_app(settings=test_settings, store=unready_store, provider=provider))
    resp = client.get("/lessons/public")
    assert resp.status_code == 503
    _assert_contract(resp, "store_not_ready")
    assert resp.json()["message"] == "DB not ready"


def test_echoes_caller_request_id(client):
    resp = client.get("/lessons/missing", headers={"X-Request-Id": "rid-abc"})
    assert resp.headers["x-request-id"] == "rid-abc"
    assert resp.json()["error"]["request_id"] == "rid-abc"


def test_unhandled_exception_is_500(test_settings, store, provider):
    app = create_app(settings=test_settings, store=store, provider=provider)
    boom = APIRouter()

    @boom.get("/boom")
    def explode():
        raise RuntimeError("kaboom")

    app.include_router(boom)
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/boom")

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_error"
    assert "kaboom" not in resp.text
