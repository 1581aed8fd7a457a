"""Prometheus metric definitions shared across services."""

from time import perf_counter

from fastapi import Request
from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response

from gopass.common.config import settings


callbacks_received_total = Counter(
    "callbacks_received_total",
    "Provider callbacks received",
    ["service", "kind", "status"],
)
callback_outcomes_total = Counter(
    "callback_outcomes_total",
    "Deposit callback reconciliation outcomes",
    ["service", "outcome"],
)
duplicate_callbacks_skipped_total = Counter(
    "duplicate_callbacks_skipped_total",
    "Deposit callbacks skipped because the deposit was already processed",
    ["service"],
)
deposits_initiated_total = Counter(
    "deposits_initiated_total",
    "Deposit initiation attempts by result",
    ["service", "purpose", "result"],
)
provider_request_seconds = Histogram(
    "provider_request_seconds",
    "Latency of outbound payment provider calls",
    ["service", "operation"],
)
payout_decisions_total = Counter(
    "payout_decisions_total",
    "Admin payout request decisions",
    ["service", "decision"],
)
notifications_written_total = Counter(
    "notifications_written_total",
    "Notification records written by result",
    ["service", "result"],
)
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


async def http_metrics_middleware(request: Request, call_next):
    """Record request count and latency for every HTTP call."""

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
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
