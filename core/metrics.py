"""Prometheus metrics for monitoring."""

from prometheus_client import Counter, Histogram

# Swipe metrics
swipes_total = Counter("swipes_total", "Total number of swipes recorded", ["action"])

swipes_undone_total = Counter("swipes_undone_total", "Total number of swipes undone")

# Match metrics
matches_created_total = Counter("matches_created_total", "Total number of matches created")

match_conflicts_total = Counter(
    "match_conflicts_total", "Match formations that attached to a concurrently created match"
)

match_formation_retries_total = Counter(
    "match_formation_retries_total", "Retried match formation attempts after transient failures"
)

match_reconcile_enqueued_total = Counter(
    "match_reconcile_enqueued_total", "Pairs handed to the reconcile worker after exhausting retries"
)

match_transitions_total = Counter("match_transitions_total", "Match state transitions", ["status"])

# Discovery metrics
discover_feed_size = Histogram(
    "discover_feed_size", "Number of candidates returned per discovery request", buckets=(0, 1, 5, 10, 20, 50, 100)
)

# Response time metrics
api_request_duration = Histogram(
    "api_request_duration_seconds", "API request duration in seconds", ["method", "endpoint", "status"]
)
