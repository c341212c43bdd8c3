"""Shared fixtures: a scripted provider behind `httpx.MockTransport`."""

import httpx
import pytest
from fastapi.testclient import TestClient

from medpay.common.config import CommonSettings
from medpay.services.api.main import create_app
from medpay.services.checkout.auth import TokenProvider
from medpay.services.checkout.paypal import PayPalClient
from medpay.services.checkout.service import CheckoutService, WebhookReceiver

ORDER_ID = "5O190127TN364715T"
CAPTURE_ID = "3C679366HH908993F"
APPROVE_URL = f"https://www.sandbox.paypal.com/checkoutnow?token={ORDER_ID}"

TOKEN_PATH = "/v1/oauth2/token"
ORDERS_PATH = "/v2/checkout/orders"
ORDER_PATH = f"/v2/checkout/orders/{ORDER_ID}"
CAPTURE_PATH = f"/v2/checkout/orders/{ORDER_ID}/capture"
VERIFY_PATH = "/v1/notifications/verify-webhook-signature"


def order_body(status: str = "CREATED", approve_url: str = APPROVE_URL) -> dict:
    return {
        "id": ORDER_ID,
        "status": status,
        "links": [
            {"href": f"https://api-m.sandbox.paypal.com{ORDER_PATH}", "rel": "self", "method": "GET"},
            {"href": approve_url, "rel": "approve", "method": "GET"},
            {"href": f"https://api-m.sandbox.paypal.com{CAPTURE_PATH}", "rel": "capture", "method": "POST"},
        ],
    }


def captured_body() -> dict:
    return {
        "id": ORDER_ID,
        "status": "COMPLETED",
        "purchase_units": [
            {"payments": {"captures": [{"id": CAPTURE_ID, "status": "COMPLETED"}]}},
        ],
    }


ALREADY_CAPTURED = {
    "name": "UNPROCESSABLE_ENTITY",
    "details": [{"issue": "ORDER_ALREADY_CAPTURED"}],
}
NOT_APPROVED = {
    "name": "UNPROCESSABLE_ENTITY",
    "details": [{"issue": "ORDER_NOT_APPROVED"}],
}


def raise_on_request(exc_type: type[httpx.TransportError], message: str = "boom"):
    def action(request: httpx.Request) -> httpx.Response:
        raise exc_type(message, request=request)

    return action


class FakePayPal:
    """Answers provider calls from a (method, path) table and records every request."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], object] = {}
        self.on("POST", TOKEN_PATH, httpx.Response(200, json={
            "access_token": "A21AA-test-token",
            "token_type": "Bearer",
            "expires_in": 32400,
        }))
        self.on("POST", ORDERS_PATH, httpx.Response(201, json=order_body()))
        self.on("GET", ORDER_PATH, httpx.Response(200, json={"id": ORDER_ID, "status": "APPROVED"}))
        self.on("POST", CAPTURE_PATH, httpx.Response(201, json=captured_body()))

    def on(self, method: str, path: str, action) -> None:
        """`action` is an `httpx.Response`, or a callable taking the request."""

        self.routes[(method, path)] = action

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        action = self.routes.get((request.method, request.url.path))
        if action is None:
            return httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})
        if callable(action):
            return action(request)
        return action

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call.method == method and call.url.path == path)


@pytest.fixture
def test_settings() -> CommonSettings:
    return CommonSettings(
        _env_file=None,
        paypal_client_id="client-id",
        paypal_secret="client-secret",
        paypal_api_base="https://api-m.sandbox.paypal.com",
        paypal_web_host="www.sandbox.paypal.com",
        paypal_webhook_id=None,
        app_base_url="https://medpay.example.com",
        app_deep_link_base="yourapp://",
    )


@pytest.fixture
def paypal() -> FakePayPal:
    return FakePayPal()


@pytest.fixture
def http_client(paypal: FakePayPal) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(paypal.handler))


@pytest.fixture
def paypal_client(test_settings, http_client) -> PayPalClient:
    return PayPalClient(test_settings.credentials(), http_client, timeout_seconds=2.0)


@pytest.fixture
def tokens(paypal_client) -> TokenProvider:
    return TokenProvider(paypal_client)


@pytest.fixture
def checkout_service(tokens, paypal_client, test_settings) -> CheckoutService:
    return CheckoutService(tokens, paypal_client, test_settings)


@pytest.fixture
def webhook_receiver(tokens, paypal_client) -> WebhookReceiver:
    return WebhookReceiver(tokens, paypal_client, webhook_id=None)


@pytest.fixture
def api_client(test_settings, http_client):
    app = create_app(config=test_settings, http_client=http_client)
    with TestClient(app) as client:
        yield client
