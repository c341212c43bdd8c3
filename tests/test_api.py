"""End-to-end HTTP behavior through the FastAPI app."""

from datetime import datetime

import httpx
from fastapi.testclient import TestClient

from medpay.services.api.main import create_app

from conftest import (
    ALREADY_CAPTURED,
    APPROVE_URL,
    CAPTURE_PATH,
    NOT_APPROVED,
    ORDER_ID,
    ORDER_PATH,
    ORDERS_PATH,
    TOKEN_PATH,
    VERIFY_PATH,
    captured_body,
    raise_on_request,
)


def test_create_order(api_client, paypal):
    resp = api_client.post("/create-order", json={"amount": "25.50", "currency": "USD"})

    assert resp.status_code == 200
    assert resp.json() == {"id": ORDER_ID, "status": "CREATED", "approve": APPROVE_URL}
    assert paypal.count("POST", ORDERS_PATH) == 1


def test_create_order_without_body_uses_defaults(api_client, paypal):
    resp = api_client.post("/create-order")

    assert resp.status_code == 200
    assert paypal.count("POST", ORDERS_PATH) == 1


def test_create_order_auth_failure(api_client, paypal):
    paypal.on("POST", TOKEN_PATH, httpx.Response(401, json={"error": "invalid_client"}))

    resp = api_client.post("/create-order", json={})

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] is True
    assert body["message"] == "Failed to create PayPal order"
    assert body["error_type"] == "AuthenticationError"
    assert body["details"] == {"error": "invalid_client"}
    assert paypal.count("POST", ORDERS_PATH) == 0


def test_capture_order_success(api_client):
    resp = api_client.get("/capture-order", params={"token": ORDER_ID, "PayerID": "QYR5Z8XDVJNXQ"})

    assert resp.status_code == 200
    assert "Payment Successful!" in resp.text
    assert 'content="3;url=yourapp://payment-success"' in resp.text


def test_capture_order_missing_token(api_client, paypal):
    resp = api_client.get("/capture-order")

    assert resp.status_code == 400
    assert resp.text == "Missing order token"
    assert paypal.calls == []


def test_capture_order_never_approved(api_client, paypal):
    paypal.on("GET", ORDER_PATH, httpx.Response(200, json={"id": ORDER_ID, "status": "CREATED"}))
    paypal.on("POST", CAPTURE_PATH, httpx.Response(422, json=NOT_APPROVED))

    resp = api_client.get("/capture-order", params={"token": ORDER_ID})

    assert resp.status_code == 500
    assert "Payment Processing Error" in resp.text
    assert "yourapp://payment-error" in resp.text
    assert "ORDER_NOT_APPROVED" not in resp.text


def test_capture_order_twice(api_client, paypal):
    responses = iter(
        [
            httpx.Response(201, json=captured_body()),
            httpx.Response(422, json=ALREADY_CAPTURED),
        ]
    )
    paypal.on("POST", CAPTURE_PATH, lambda request: next(responses))

    first = api_client.get("/capture-order", params={"token": ORDER_ID})
    second = api_client.get("/capture-order", params={"token": ORDER_ID})

    assert first.status_code == 200
    assert second.status_code == 500
    assert "payment-success" not in second.text


def test_capture_order_timeout_is_pending(api_client, paypal):
    paypal.on("POST", CAPTURE_PATH, raise_on_request(httpx.ReadTimeout, "timed out"))

    resp = api_client.get("/capture-order", params={"token": ORDER_ID})

    assert resp.status_code == 504
    assert "Payment Pending Confirmation" in resp.text
    assert "yourapp://payment-pending" in resp.text
    assert "Successful" not in resp.text


def test_cancel_order(api_client, paypal):
    first = api_client.get("/cancel-order")
    second = api_client.get("/cancel-order")

    assert first.status_code == 200
    assert first.text == second.text
    assert "Payment Cancelled" in first.text
    assert "yourapp://payment-cancelled" in first.text
    assert paypal.calls == []


def test_webhook_acknowledges_raw_body(api_client):
    resp = api_client.post(
        "/paypal-webhook",
        content=b'{"id": "WH-1", "event_type": "CHECKOUT.ORDER.APPROVED"}',
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 200
    assert resp.text == "OK"


def test_webhook_acknowledges_non_json_body(api_client):
    resp = api_client.post("/paypal-webhook", content=b"\x00\x01 binary")

    assert resp.status_code == 200
    assert resp.text == "OK"


def test_webhook_with_verification_rejects_unsigned(test_settings, http_client, paypal):
    config = test_settings.model_copy(update={"paypal_webhook_id": "WH-ID-1"})
    with TestClient(create_app(config=config, http_client=http_client)) as client:
        resp = client.post("/paypal-webhook", content=b'{"id": "WH-1"}')

    assert resp.status_code == 400
    assert resp.text != "OK"
    assert paypal.count("POST", VERIFY_PATH) == 0


def test_webhook_verification_unavailable_asks_for_redelivery(test_settings, http_client, paypal):
    paypal.on("POST", VERIFY_PATH, httpx.Response(503, json={"name": "SERVICE_UNAVAILABLE"}))
    config = test_settings.model_copy(update={"paypal_webhook_id": "WH-ID-1"})
    headers = {
        "PAYPAL-AUTH-ALGO": "SHA256withRSA",
        "PAYPAL-CERT-URL": "https://api.sandbox.paypal.com/v1/notifications/certs/CERT-1",
        "PAYPAL-TRANSMISSION-ID": "tx-1",
        "PAYPAL-TRANSMISSION-SIG": "sig",
        "PAYPAL-TRANSMISSION-TIME": "2026-10-19T12:00:00Z",
    }
    with TestClient(create_app(config=config, http_client=http_client)) as client:
        resp = client.post("/paypal-webhook", content=b'{"id": "WH-1"}', headers=headers)

    assert resp.status_code == 503


def test_health(api_client):
    resp = api_client.get("/health")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "OK"
    datetime.fromisoformat(body["timestamp"])


def test_correlation_id_is_echoed(api_client):
    resp = api_client.get("/health", headers={"X-Correlation-Id": "corr-123"})

    assert resp.headers["x-correlation-id"] == "corr-123"


def test_metrics_exposes_capture_outcomes(api_client):
    api_client.get("/capture-order", params={"token": ORDER_ID})

    resp = api_client.get("/metrics")

    assert resp.status_code == 200
    assert "order_captures_total" in resp.text
