"""Thin async client for the PayPal OAuth2 and Orders v2 REST APIs.

Every call goes through `_send`, which turns the outcome of one HTTP exchange
into either a parsed JSON object or one of the `medpay.common.errors`
exceptions. Nothing here retries; a capture that may have reached the
provider is reported as `IndeterminateOutcome`.
"""

from time import perf_counter
from typing import Any
from urllib.parse import quote

import httpx

from medpay.common.config import PayPalCredentials
from medpay.common.errors import (
    AuthenticationError,
    CheckoutError,
    IndeterminateOutcome,
    IntegrationError,
    UpstreamFailure,
)
from medpay.common.logging import logger
from medpay.common.metrics import provider_request_duration_seconds, provider_requests_total

# The request never left this process for these, so retrying elsewhere is safe.
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


def _error_payload(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class PayPalClient:
    """Wraps one shared `httpx.AsyncClient` with provider credentials."""

    def __init__(
        self,
        credentials: PayPalCredentials,
        http: httpx.AsyncClient,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.credentials = credentials
        self.http = http
        self.timeout = httpx.Timeout(timeout_seconds)

    def _url(self, path: str) -> str:
        return f"{self.credentials.api_base}{path}"

    @staticmethod
    def _bearer(access_token: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        side_effecting: bool = False,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """Run one exchange and classify its outcome."""

        started = perf_counter()
        try:
            resp = await self.http.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except _NOT_SENT_ERRORS as exc:
            provider_requests_total.labels(operation=operation, outcome="unreachable").inc()
            raise UpstreamFailure(f"{operation}: provider unreachable", detail=str(exc)) from exc
        except httpx.TransportError as exc:
            if side_effecting:
                provider_requests_total.labels(operation=operation, outcome="indeterminate").inc()
                raise IndeterminateOutcome(
                    f"{operation}: no response from provider after request was sent",
                    detail=f"{exc.__class__.__name__}: {exc}",
                ) from exc
            provider_requests_total.labels(operation=operation, outcome="upstream_error").inc()
            raise UpstreamFailure(
                f"{operation}: provider request failed",
                detail=f"{exc.__class__.__name__}: {exc}",
            ) from exc
        finally:
            provider_request_duration_seconds.labels(operation=operation).observe(
                max(0.0, perf_counter() - started)
            )

        if resp.status_code >= 500:
            provider_requests_total.labels(operation=operation, outcome="upstream_error").inc()
            raise UpstreamFailure(
                f"{operation}: provider returned {resp.status_code}",
                detail=_error_payload(resp),
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            provider_requests_total.labels(operation=operation, outcome="rejected").inc()
            raise IntegrationError(
                f"{operation}: provider rejected request ({resp.status_code})",
                detail=_error_payload(resp),
                status_code=resp.status_code,
            )
        try:
            body = resp.json()
        except ValueError as exc:
            provider_requests_total.labels(operation=operation, outcome="malformed").inc()
            raise IntegrationError(f"{operation}: response is not JSON", detail=resp.text) from exc
        if not isinstance(body, dict):
            provider_requests_total.labels(operation=operation, outcome="malformed").inc()
            raise IntegrationError(f"{operation}: unexpected response shape", detail=body)

        provider_requests_total.labels(operation=operation, outcome="ok").inc()
        return body

    async def fetch_token(self) -> dict[str, Any]:
        """Client-credentials grant; any failure surfaces as `AuthenticationError`."""

        try:
            return await self._send(
                "oauth_token",
                "POST",
                "/v1/oauth2/token",
                headers={
                    "Accept": "application/json",
                    "Accept-Language": "en_US",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                auth=(self.credentials.client_id, self.credentials.secret.get_secret_value()),
                data={"grant_type": "client_credentials"},
            )
        except CheckoutError as exc:
            logger.error("paypal_token_failed error=%s detail=%s", exc.message, exc.detail)
            raise AuthenticationError("Failed to authenticate with PayPal", detail=exc.detail) from exc

    async def create_order(
        self,
        access_token: str,
        body: dict[str, Any],
        request_id: str | None = None,
    ) -> dict[str, Any]:
        headers = self._bearer(access_token)
        if request_id:
            # Provider-side dedup of retried creates within its own window.
            headers["PayPal-Request-Id"] = request_id
        return await self._send("create_order", "POST", "/v2/checkout/orders", headers=headers, json=body)

    async def get_order(self, access_token: str, order_id: str) -> dict[str, Any]:
        return await self._send(
            "get_order",
            "GET",
            f"/v2/checkout/orders/{quote(order_id, safe='')}",
            headers=self._bearer(access_token),
        )

    async def capture_order(self, access_token: str, order_id: str) -> dict[str, Any]:
        return await self._send(
            "capture_order",
            "POST",
            f"/v2/checkout/orders/{quote(order_id, safe='')}/capture",
            side_effecting=True,
            headers=self._bearer(access_token),
            json={},
        )

    async def verify_webhook_signature(self, access_token: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._send(
            "verify_webhook",
            "POST",
            "/v1/notifications/verify-webhook-signature",
            headers=self._bearer(access_token),
            json=payload,
        )
