"""Checkout orchestration against the payment provider.

The provider is the system of record: nothing here stores orders. Each call
acquires its own credential, talks to the provider, and returns a value
describing what it observed.
"""

import json
from typing import Any, Mapping

import httpx

from medpay.common.config import CommonSettings
from medpay.common.errors import (
    CheckoutError,
    IndeterminateOutcome,
    IntegrationError,
    ValidationError,
    WebhookVerificationError,
)
from medpay.common.logging import logger, order_id_ctx
from medpay.common.metrics import order_captures_total, orders_created_total, webhook_events_total
from medpay.common.state_machine import OrderStatus, from_provider, validate_transition
from medpay.services.checkout import views
from medpay.services.checkout.auth import TokenProvider
from medpay.services.checkout.paypal import PayPalClient
from medpay.services.checkout.schemas import (
    CaptureResult,
    CreateOrderRequest,
    CreateOrderResponse,
    FinalizeOutcome,
    FinalizeResult,
    WebhookAck,
)


class CheckoutService:
    """Creates provider orders and finalizes them after payer approval."""

    def __init__(
        self,
        tokens: TokenProvider,
        client: PayPalClient,
        config: CommonSettings,
        service_name: str = "checkout",
    ) -> None:
        self.tokens = tokens
        self.client = client
        self.config = config
        self.service_name = service_name

    def _order_body(self, req: CreateOrderRequest) -> dict[str, Any]:
        amount = req.amount if req.amount is not None else self.config.default_amount
        currency = req.currency if req.currency is not None else self.config.default_currency
        description = req.description if req.description is not None else self.config.default_description
        base_url = self.config.app_base_url.rstrip("/")
        return {
            "intent": "CAPTURE",
            "application_context": {
                "return_url": f"{base_url}/capture-order",
                "cancel_url": f"{base_url}/cancel-order",
                # Skip the review step; the payer commits on the provider page.
                "user_action": "PAY_NOW",
                "brand_name": self.config.brand_name,
                "shipping_preference": "NO_SHIPPING",
            },
            "purchase_units": [
                {
                    "amount": {"currency_code": currency, "value": amount},
                    "description": description,
                }
            ],
        }

    def _approve_link(self, order: dict[str, Any]) -> str:
        """Pick the payer approval URL out of the provider's HATEOAS links."""

        links = order.get("links")
        if not isinstance(links, list):
            raise IntegrationError("order response has no links", detail=order)
        href = next(
            (
                link.get("href")
                for link in links
                if isinstance(link, dict) and link.get("rel") == "approve"
            ),
            None,
        )
        if not isinstance(href, str) or not href:
            raise IntegrationError("order response has no approve link", detail=links)
        try:
            url = httpx.URL(href)
        except httpx.InvalidURL as exc:
            raise IntegrationError("approve link is not a valid URL", detail=href) from exc
        if url.scheme != "https" or url.host != self.config.paypal_web_host:
            raise IntegrationError("approve link points outside the provider web domain", detail=href)
        return href

    async def create_order(
        self,
        req: CreateOrderRequest,
        idempotency_key: str | None = None,
    ) -> CreateOrderResponse:
        """Open exactly one provider order and return where the payer must go.

        No retries: a repeated call opens a second order unless the caller
        supplies an idempotency key, which the provider honors.
        """

        credential = await self.tokens.acquire_token()
        try:
            order = await self.client.create_order(
                credential.access_token,
                self._order_body(req),
                request_id=idempotency_key,
            )
        except CheckoutError as exc:
            self.tokens.discard_if_rejected(exc)
            raise
        order_id = order.get("id")
        if not isinstance(order_id, str) or not order_id:
            raise IntegrationError("order response has no id", detail=order)
        approve = self._approve_link(order)
        status = order.get("status") or OrderStatus.CREATED.value

        orders_created_total.labels(service=self.service_name).inc()
        logger.info("paypal_order_created order_id=%s status=%s", order_id, status)
        return CreateOrderResponse(id=order_id, status=status, approve=approve)

    async def _check_order_state(self, access_token: str, order_id: str) -> None:
        order = await self.client.get_order(access_token, order_id)
        raw_status = str(order.get("status", ""))
        try:
            validate_transition(from_provider(raw_status), OrderStatus.CAPTURED)
        except ValueError:
            # Provider decides; this only leaves a trail for support.
            logger.warning("capture_unexpected_state order_id=%s provider_status=%s", order_id, raw_status)
        else:
            logger.info("capture_precheck order_id=%s provider_status=%s", order_id, raw_status)

    @staticmethod
    def _capture_result(captured: dict[str, Any]) -> CaptureResult:
        status = str(captured.get("status", ""))
        try:
            capture = captured["purchase_units"][0]["payments"]["captures"][0]
        except (KeyError, IndexError, TypeError):
            capture = None
        if not isinstance(capture, dict):
            return CaptureResult(capture_id=None, status=status)
        capture_id = capture.get("id")
        return CaptureResult(
            capture_id=str(capture_id) if capture_id is not None else None,
            status=str(capture.get("status") or status),
        )

    def _finish(self, result: FinalizeResult) -> FinalizeResult:
        order_captures_total.labels(service=self.service_name, outcome=result.outcome.value.lower()).inc()
        return result

    async def finalize_order(self, token: str | None) -> FinalizeResult:
        """Capture funds for an approved order.

        Provider errors never escape: they become FAILED, or INDETERMINATE
        when the capture request may have been applied upstream.
        """

        if not token:
            raise ValidationError("Missing order token")

        ctx_token = order_id_ctx.set(token)
        try:
            return await self._finalize(token)
        finally:
            order_id_ctx.reset(ctx_token)

    async def _finalize(self, token: str) -> FinalizeResult:
        capture_sent = False
        try:
            credential = await self.tokens.acquire_token()
            await self._check_order_state(credential.access_token, token)
            capture_sent = True
            captured = await self.client.capture_order(credential.access_token, token)
            status = captured.get("status")
            if status != "COMPLETED":
                logger.error("capture_not_completed order_id=%s status=%s", token, status)
                return self._finish(
                    FinalizeResult(
                        outcome=FinalizeOutcome.FAILED,
                        order_id=token,
                        error=f"capture returned status {status}",
                        detail=captured,
                    )
                )
            capture = self._capture_result(captured)
        except IndeterminateOutcome as exc:
            logger.error("capture_indeterminate order_id=%s error=%s detail=%s", token, exc.message, exc.detail)
            return self._finish(
                FinalizeResult(
                    outcome=FinalizeOutcome.INDETERMINATE,
                    order_id=token,
                    error=exc.message,
                    detail=exc.detail,
                )
            )
        except CheckoutError as exc:
            self.tokens.discard_if_rejected(exc)
            logger.error(
                "capture_failed order_id=%s type=%s error=%s detail=%s",
                token,
                exc.__class__.__name__,
                exc.message,
                exc.detail,
            )
            return self._finish(
                FinalizeResult(
                    outcome=FinalizeOutcome.FAILED,
                    order_id=token,
                    error=exc.message,
                    detail=exc.detail,
                )
            )
        except Exception as exc:
            logger.exception("capture_unexpected_error order_id=%s capture_sent=%s", token, capture_sent)
            outcome = FinalizeOutcome.INDETERMINATE if capture_sent else FinalizeOutcome.FAILED
            return self._finish(FinalizeResult(outcome=outcome, order_id=token, error=str(exc)))

        logger.info("payment_captured order_id=%s capture_id=%s", token, capture.capture_id)
        return self._finish(FinalizeResult(outcome=FinalizeOutcome.SUCCESS, order_id=token, capture=capture))

    def handle_cancel(self) -> views.OutcomePage:
        """Payer backed out; the unapproved order expires on the provider side."""

        logger.info("payment_cancelled_by_user")
        return views.cancelled_page(self.config.app_deep_link_base)


class WebhookReceiver:
    """Acknowledges provider event deliveries.

    Signature verification runs only when a webhook id is configured. Without
    one, every delivery is acknowledged unverified.
    """

    TRANSMISSION_HEADERS = {
        "auth_algo": "paypal-auth-algo",
        "cert_url": "paypal-cert-url",
        "transmission_id": "paypal-transmission-id",
        "transmission_sig": "paypal-transmission-sig",
        "transmission_time": "paypal-transmission-time",
    }

    def __init__(
        self,
        tokens: TokenProvider,
        client: PayPalClient,
        webhook_id: str | None = None,
        service_name: str = "checkout",
    ) -> None:
        self.tokens = tokens
        self.client = client
        self.webhook_id = webhook_id
        self.service_name = service_name

    @staticmethod
    def _parse(raw_body: bytes) -> dict[str, Any] | None:
        try:
            event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            return None
        return event if isinstance(event, dict) else None

    async def _verify(self, event: dict[str, Any] | None, headers: Mapping[str, str]) -> None:
        if event is None:
            raise WebhookVerificationError("webhook body is not a JSON object")
        lowered = {key.lower(): value for key, value in headers.items()}
        payload: dict[str, Any] = {}
        for field, header in self.TRANSMISSION_HEADERS.items():
            value = lowered.get(header)
            if not value:
                raise WebhookVerificationError(f"missing {header} header")
            payload[field] = value
        payload["webhook_id"] = self.webhook_id
        payload["webhook_event"] = event

        credential = await self.tokens.acquire_token()
        try:
            result = await self.client.verify_webhook_signature(credential.access_token, payload)
        except CheckoutError as exc:
            self.tokens.discard_if_rejected(exc)
            raise
        if result.get("verification_status") != "SUCCESS":
            raise WebhookVerificationError("webhook signature rejected", detail=result)

    async def receive_event(self, raw_body: bytes, headers: Mapping[str, str]) -> WebhookAck:
        """Accept one raw delivery.

        Redeliveries of an already-seen event must also be acknowledged, or
        the provider keeps retrying.
        """

        event = self._parse(raw_body)
        event_id = event.get("id") if event else None
        event_type = event.get("event_type") if event else None
        event_id = str(event_id) if event_id is not None else None
        event_type = str(event_type) if event_type is not None else None

        if self.webhook_id is None:
            logger.warning("paypal_webhook_unverified event_id=%s event_type=%s", event_id, event_type)
            webhook_events_total.labels(service=self.service_name, verified="false").inc()
            return WebhookAck(verified=False, event_id=event_id, event_type=event_type)

        await self._verify(event, headers)
        logger.info("paypal_webhook_received event_id=%s event_type=%s", event_id, event_type)
        webhook_events_total.labels(service=self.service_name, verified="true").inc()
        return WebhookAck(verified=True, event_id=event_id, event_type=event_type)
