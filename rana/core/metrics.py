"""
Prometheus Metrics
==================
Counters and histograms exported at /metrics.
"""

from prometheus_client import Counter, Histogram

REQUESTS_TOTAL = Counter(
    "rana_requests_total",
    "Chat requests dispatched to providers",
    ["provider", "model", "status"],
)

CACHE_LOOKUPS_TOTAL = Counter(
    "rana_cache_lookups_total",
    "Response cache lookups",
    ["result"],
)

COST_USD_TOTAL = Counter(
    "rana_cost_usd_total",
    "Accumulated request cost in USD",
    ["provider", "model"],
)

REQUEST_LATENCY_SECONDS = Histogram(
    "rana_request_latency_seconds",
    "Provider round-trip latency",
    ["provider"],
)
