"""Prometheus metrics for request orchestration.

All metrics use the ``conductor_`` prefix and carry a ``client`` label
set to ``ClientConfig.name`` so that several clients in one process
stay distinguishable.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Admission metrics
# ---------------------------------------------------------------------------

REQUESTS_IN_FLIGHT = Gauge(
    "conductor_requests_in_flight",
    "Number of admitted requests currently holding a slot",
    ["client"],
)

REQUESTS_QUEUED = Gauge(
    "conductor_requests_queued",
    "Number of requests waiting for admission",
    ["client"],
)

# ---------------------------------------------------------------------------
# Outcome metrics
# ---------------------------------------------------------------------------

REQUESTS_TOTAL = Counter(
    "conductor_requests_total",
    "Total requests settled, by outcome",
    ["client", "outcome"],  # "ok" | "error" | "cancelled" | "dropped"
)

REQUEST_DURATION_SECONDS = Histogram(
    "conductor_request_duration_seconds",
    "Duration of a running request, retries included",
    ["client"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60),
)

RETRIES_TOTAL = Counter(
    "conductor_retries_total",
    "Total retry attempts scheduled after a failed attempt",
    ["client"],
)

# ---------------------------------------------------------------------------
# Key coordination metrics
# ---------------------------------------------------------------------------

DEDUPE_SERVED_TOTAL = Counter(
    "conductor_dedupe_served_total",
    "Total requests served from an in-flight request with the same key",
    ["client"],
)

SUPERSEDED_TOTAL = Counter(
    "conductor_superseded_total",
    "Total in-flight requests aborted by a newer request with the same key",
    ["client"],
)
