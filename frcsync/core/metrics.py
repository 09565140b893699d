"""
Prometheus metrics for the FRC event sync engine.

Metrics exposed:
- FRC API request outcomes per logical endpoint
- Rate limiter wait time
- Response cache hits/misses
- Reconciliation outcomes (created/updated/failed)
- Sync run outcomes and duration
- Scheduler status gauge
"""
from prometheus_client import Counter, Gauge, Histogram

# External API Metrics
frc_api_requests_total = Counter(
    "frc_api_requests_total",
    "Total FRC API requests by logical endpoint and outcome",
    ["endpoint", "outcome"]  # outcome: success, not_found, http_error, transport_error, decode_error
)

# Rate limiting
frc_rate_limit_wait_seconds = Histogram(
    "frc_rate_limit_wait_seconds",
    "Time spent waiting in the FRC API rate limiter",
    buckets=(0.0, 0.1, 0.5, 1.0, 2.0, 3.0, 5.0, 10.0, 30.0, 60.0)
)

# Response cache
frc_cache_lookups_total = Counter(
    "frc_cache_lookups_total",
    "Response cache lookups",
    ["result"]  # hit, miss
)

# Reconciliation
frc_events_reconciled_total = Counter(
    "frc_events_reconciled_total",
    "Events reconciled against the repository",
    ["action"]  # created, updated, failed
)

# Sync runs
frc_sync_runs_total = Counter(
    "frc_sync_runs_total",
    "Sync runs by final status",
    ["status"]  # success, partial, failed, skipped, disabled, cancelled
)

frc_sync_duration_seconds = Histogram(
    "frc_sync_duration_seconds",
    "Duration of completed sync runs"
)

# Scheduler
frc_scheduler_running = Gauge(
    "frc_scheduler_running",
    "Whether the sync scheduler is running (1=running, 0=stopped)"
)
