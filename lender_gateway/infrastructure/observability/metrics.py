"""Prometheus metrics for monitoring fan-out volume, lender outcomes and latency"""

from prometheus_client import Counter, Histogram

# Submission metrics
submission_counter = Counter(
    "lender_gateway_submission_total",
    "Fan-out submissions attempted",
    ["outcome"],  # accepted | duplicate | no_lenders
)

lender_response_counter = Counter(
    "lender_gateway_lender_response_total",
    "Lender decisions received",
    ["lender_id", "status"],
)

lender_failure_counter = Counter(
    "lender_gateway_lender_failures_total",
    "Lender calls that raised or timed out",
    ["lender_id"],
)

lender_latency_histogram = Histogram(
    "lender_gateway_lender_latency_seconds",
    "Lender decision API response time",
    ["lender_id"],
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0],
)

retry_counter = Counter(
    "lender_gateway_retry_total",
    "Retries of failed lender submissions",
    ["outcome"],  # resubmitted | failed | rejected
)

status_update_counter = Counter(
    "lender_gateway_status_update_total",
    "Externally pushed status updates",
    ["status"],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "decision_webhook_latency_seconds",
    "Decision webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "decision_webhook_failures_total",
    "Failed decision webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_lender_response(lender_id: str, status: str, duration_seconds: float) -> None:
    """Record one lender decision for approval-rate and latency dashboards"""
    lender_response_counter.labels(lender_id=lender_id, status=status).inc()
    lender_latency_histogram.labels(lender_id=lender_id).observe(duration_seconds)
