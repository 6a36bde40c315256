"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "gym_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "gym_request_latency_seconds",
    "Latency of HTTP requests in seconds",
    ["endpoint"],
)
LIFECYCLE_TRANSITIONS = Counter(
    "gym_lifecycle_transitions_total",
    "Subscription, renewal and member-renewal transitions",
    ["kind", "outcome"],
)
WEBHOOK_EVENTS = Counter(
    "gym_identity_webhook_events_total",
    "Identity webhook deliveries by event type and result",
    ["event_type", "result"],
)


def record_request(method: str, endpoint: str, status: int, latency: float) -> None:
    REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)


def record_transition(kind: str, outcome: str) -> None:
    LIFECYCLE_TRANSITIONS.labels(kind=kind, outcome=outcome).inc()


def record_webhook(event_type: str, result: str) -> None:
    WEBHOOK_EVENTS.labels(event_type=event_type, result=result).inc()


def latest_metrics() -> tuple[bytes, str]:
    data = generate_latest()
    return data, CONTENT_TYPE_LATEST
