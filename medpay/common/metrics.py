"""Prometheus metric definitions for the API process."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
provider_requests_total = Counter(
    "provider_requests_total",
    "Outbound payment provider calls by operation and outcome",
    ["operation", "outcome"],
)
provider_request_duration_seconds = Histogram(
    "provider_request_duration_seconds",
    "Outbound payment provider call latency seconds",
    ["operation"],
)
orders_created_total = Counter("orders_created_total", "Provider orders opened", ["service"])
order_captures_total = Counter(
    "order_captures_total",
    "Capture attempts by terminal outcome",
    ["service", "outcome"],
)
webhook_events_total = Counter(
    "webhook_events_total",
    "Webhook deliveries acknowledged",
    ["service", "verified"],
)
documents_rendered_total = Counter(
    "documents_rendered_total",
    "Prescription documents rendered",
    ["service", "outcome"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
