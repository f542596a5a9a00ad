"""
Prometheus metrics for Blacklist Alliance client monitoring.

Provides instrumentation for:
- Request outcomes and latency per endpoint
- Retries by error kind
- Circuit breaker state and failures
- Bulk batches issued
"""

from prometheus_client import Counter, Gauge, Histogram

# Request metrics
requests_total = Counter(
    "blacklist_requests_total",
    "Total number of HTTP attempts against the Blacklist Alliance API",
    ["endpoint", "outcome"],  # outcome: success or an error kind
)

request_duration_seconds = Histogram(
    "blacklist_request_duration_seconds",
    "Time spent on individual HTTP attempts",
    ["endpoint"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

retries_total = Counter(
    "blacklist_retries_total",
    "Total number of retried attempts",
    ["endpoint", "error_kind"],
)

# Circuit breaker metrics
circuit_breaker_state = Gauge(
    "blacklist_circuit_breaker_state",
    "Circuit breaker state (0=closed, 1=open, 2=half-open)",
    ["client"],
)

circuit_breaker_failures = Counter(
    "blacklist_circuit_breaker_failures_total",
    "Total number of failures reported to the circuit breaker",
    ["client"],
)

# Bulk metrics
batches_total = Counter(
    "blacklist_batches_total",
    "Total number of bulk batches submitted",
    ["endpoint"],
)


def record_request(endpoint: str, outcome: str, duration_seconds: float) -> None:
    """
    Record one HTTP attempt.

    Args:
        endpoint: Endpoint kind (lookup, bulklookup, emailbulk)
        outcome: "success" or the error kind value
        duration_seconds: Attempt duration
    """
    requests_total.labels(endpoint=endpoint, outcome=outcome).inc()
    request_duration_seconds.labels(endpoint=endpoint).observe(duration_seconds)


def record_retry(endpoint: str, error_kind: str) -> None:
    """Record an attempt that will be retried."""
    retries_total.labels(endpoint=endpoint, error_kind=error_kind).inc()


def update_circuit_breaker_state(client: str, state: int) -> None:
    """
    Update circuit breaker state gauge.

    Args:
        client: Circuit breaker name
        state: 0=closed, 1=open, 2=half-open
    """
    circuit_breaker_state.labels(client=client).set(state)


def record_circuit_breaker_failure(client: str) -> None:
    """Record a failure reported to the circuit breaker."""
    circuit_breaker_failures.labels(client=client).inc()


def record_batch(endpoint: str) -> None:
    """Record a bulk batch submitted."""
    batches_total.labels(endpoint=endpoint).inc()
