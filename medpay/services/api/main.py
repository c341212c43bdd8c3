"""Public entrypoint for the medpay API.

Serves the payment redirect flow, provider webhooks, and prescription
documents from one process. Checkout and document rendering are separate
routers with no shared state, so a failure in one never reaches the other.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from medpay.common.config import CommonSettings, settings
from medpay.common.logging import configure_logging, logger, order_id_ctx, trace_id_ctx
from medpay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from medpay.common.startup import log_startup_config
from medpay.common.tracing import instrument_app, setup_tracing
from medpay.services.checkout.auth import TokenProvider
from medpay.services.checkout.paypal import PayPalClient
from medpay.services.checkout.routes import router as checkout_router
from medpay.services.checkout.service import CheckoutService, WebhookReceiver
from medpay.services.prescription.routes import router as prescription_router
from medpay.services.prescription.service import PrescriptionRenderer

configure_logging()
if settings.otel_enabled:
    setup_tracing(settings.service_name)
log_startup_config(
    settings,
    [
        "environment",
        "port",
        "app_base_url",
        "paypal_api_base",
        "paypal_web_host",
        "paypal_client_id",
        "paypal_secret",
        "paypal_webhook_id",
        "paypal_token_cache_enabled",
    ],
)


def install_services(app: FastAPI, http: httpx.AsyncClient, config: CommonSettings) -> None:
    """Wire provider client, token provider and request handlers onto app state."""

    client = PayPalClient(config.credentials(), http, timeout_seconds=config.paypal_timeout_seconds)
    tokens = TokenProvider(client, cache_enabled=config.paypal_token_cache_enabled)
    app.state.checkout_service = CheckoutService(tokens, client, config)
    app.state.webhook_receiver = WebhookReceiver(tokens, client, webhook_id=config.paypal_webhook_id or None)
    app.state.prescription_renderer = PrescriptionRenderer()


def create_app(
    config: CommonSettings = settings,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    """Build the FastAPI app; an injected `http_client` is not closed on shutdown."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the shared outbound HTTP client for the app lifecycle."""

        http = http_client or httpx.AsyncClient(timeout=config.paypal_timeout_seconds)
        install_services(app, http, config)
        yield
        if http_client is None:
            await http.aclose()

    app = FastAPI(title="medpay API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def context_middleware(request: Request, call_next):
        """Bind a correlation id and record request count and latency."""

        trace_id = request.headers.get("x-correlation-id") or str(uuid4())
        trace_token = trace_id_ctx.set(trace_id)
        order_token = order_id_ctx.set("")
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["X-Correlation-Id"] = trace_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=config.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=config.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            trace_id_ctx.reset(trace_token)
            order_id_ctx.reset(order_token)

    app.include_router(checkout_router)
    app.include_router(prescription_router)

    @app.get("/health")
    def health():
        """Liveness probe endpoint."""

        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    if config.otel_enabled:
        instrument_app(app)
    return app


app = create_app()


if __name__ == "__main__":
    logger.info("server_starting port=%s environment=%s", settings.port, settings.environment)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
