"""Business metrics for the key server."""

from opentelemetry import metrics

meter = metrics.get_meter(__name__)

# HTTP Request Metrics
http_request_duration = meter.create_histogram(
    name="http_request_duration_seconds",
    description="Duration of HTTP requests in seconds",
    unit="s",
)

http_requests_total = meter.create_counter(
    name="http_requests_total",
    description="Total number of HTTP requests",
)

http_request_errors = meter.create_counter(
    name="http_request_errors_total",
    description="Total number of HTTP request errors",
)

# Key lifecycle metrics
keys_created_total = meter.create_counter(
    name="keys_created_total",
    description="Total number of keys added to the registry",
)

key_transitions_total = meter.create_counter(
    name="key_transitions_total",
    description="Total number of key lifecycle transitions",
)

# Notification metrics
notifications_sent_total = meter.create_counter(
    name="low_stock_notifications_sent_total",
    description="Low-stock notifications delivered to the chat",
)

notifications_failed_total = meter.create_counter(
    name="low_stock_notifications_failed_total",
    description="Low-stock notifications that could not be delivered",
)


def record_http_request(method: str, endpoint: str, status_code: int, duration: float):
    """Record HTTP request metrics."""
    labels = {"method": method, "endpoint": endpoint, "status_code": str(status_code)}

    http_request_duration.record(duration, labels)
    http_requests_total.add(1, labels)

    if status_code >= 400:
        http_request_errors.add(1, labels)


def record_keys_created(count: int):
    """Record keys accepted by a create call."""
    if count:
        keys_created_total.add(count)


def record_key_transition(action: str):
    """Record a lifecycle transition (free, inuse, release, invalidate, delete)."""
    key_transitions_total.add(1, {"action": action})


def record_notification(success: bool):
    """Record the outcome of one notification dispatch."""
    if success:
        notifications_sent_total.add(1)
    else:
        notifications_failed_total.add(1)
