"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Handler outcomes
ticket_confirmations = Counter(
    'ticket_confirmations_total',
    'Ticket payment confirmations',
    ['outcome']  # confirmed, already_processed, unpaid
)

ticket_cancellations = Counter(
    'ticket_cancellations_total',
    'Ticket cancellations',
    ['outcome']  # cancelled, already_cancelled
)

tickets_issued = Counter(
    'tickets_issued_total',
    'Tickets issued',
    ['kind', 'outcome']  # paid/free, created/existing
)

webhook_events = Counter(
    'payment_webhook_events_total',
    'Payment provider webhook events received',
    ['event_type']
)

# Secondary writes that failed after the authoritative write succeeded
best_effort_failures = Counter(
    'best_effort_failures_total',
    'Best-effort write failures',
    ['step']
)

payment_provider_latency = Histogram(
    'payment_provider_latency_seconds',
    'Payment provider call latency',
    ['operation'],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_confirmation(outcome: str):
    ticket_confirmations.labels(outcome=outcome).inc()


def record_cancellation(outcome: str):
    ticket_cancellations.labels(outcome=outcome).inc()


def record_ticket_issued(kind: str, outcome: str):
    tickets_issued.labels(kind=kind, outcome=outcome).inc()


def record_webhook_event(event_type: str):
    webhook_events.labels(event_type=event_type).inc()


def record_best_effort_failure(step: str):
    best_effort_failures.labels(step=step).inc()
