"""Tests for structured logging and request_id propagation."""

import json
import logging

from lifelessons.core.logging import JsonFormatter, RequestIdFilter, latency_bucket_ms, log_event, request_id_ctx_var


def test_request_id_in_response_and_logs(client, caplog):
    with caplog.at_level(logging.INFO, logger="lifelessons"):
        response = client.get("/lessons/public")
    rid = response.headers.get("x-request-id")
    assert rid
    records = [r for r in caplog.records if getattr(r, "request_id", None) == rid]
    assert records, "Expected logs to contain request_id from response"
    assert any(r.getMessage() == "request.complete" for r in records)


def test_probe_requests_not_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="lifelessons"):
        client.get("/healthz")
    assert not [r for r in caplog.records if r.getMessage() == "request.complete"]


def test_request_id_in_error_response(client):
    response = client.get("/lessons/non-existent")
    rid = response.headers.get("x-request-id")
    assert response.status_code == 404
    assert rid
    assert response.json()["error"]["request_id"] == rid


def test_log_event_carries_context(caplog):
    token = request_id_ctx_var.set("rid-ctx")
    try:
        with caplog.at_level(logging.INFO, logger="lifelessons"):
            log_event("info", "billing.test", uid="u1", session_id="sess_1", extra={"note": "x" * 600})
    finally:
        request_id_ctx_var.reset(token)

    record = next(r for r in caplog.records if r.getMessage() == "billing.test")
    assert record.request_id == "rid-ctx"
    assert record.uid == "u1"
    assert record.session_id == "sess_1"
    assert record.note.endswith("...<truncated>")


def test_json_formatter_includes_structured_fields():
    record = logging.LogRecord("lifelessons", logging.INFO, __file__, 1, "webhook.applied", None, None)
    record.session_id = "sess_123"
    record.event_type = "checkout.session.completed"
    RequestIdFilter().filter(record)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "webhook.applied"
    assert payload["session_id"] == "sess_123"
    assert payload["event_type"] == "checkout.session.completed"
    assert payload["request_id"] is None
    assert "uid" not in payload


def test_latency_buckets():
    assert latency_bucket_ms(None) == "unknown"
    assert latency_bucket_ms(5) == "<10ms"
    assert latency_bucket_ms(250) == "100-500ms"
    assert latency_bucket_ms(2500) == ">=1000ms"
