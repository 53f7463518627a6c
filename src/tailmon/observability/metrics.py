from prometheus_client import Counter, Gauge, Histogram

# HTTP
HTTP_REQUEST_DURATION = Histogram(
    "tailmon_http_request_duration_seconds",
    "Duration of dashboard HTTP requests in seconds",
    ["method", "path", "status_code"],
)
HTTP_REQUESTS_TOTAL = Counter(
    "tailmon_http_requests_total",
    "Total number of dashboard HTTP requests",
    ["method", "path", "status_code"],
)

# Upstream fetch
FETCH_DURATION = Histogram(
    "tailmon_fetch_duration_seconds",
    "Duration of metrics snapshot fetches in seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
FETCH_FAILURES_TOTAL = Counter(
    "tailmon_fetch_failures_total",
    "Total number of failed snapshot fetches",
    ["reason"],
)
RECORDS_REJECTED_TOTAL = Counter(
    "tailmon_records_rejected_total",
    "Total number of device records dropped by schema validation",
)

# Poll cycles
POLL_CYCLES_TOTAL = Counter(
    "tailmon_poll_cycles_total",
    "Total number of poll cycles by outcome",
    ["outcome"],
)
STALE_SNAPSHOTS_TOTAL = Counter(
    "tailmon_stale_snapshots_total",
    "Total number of snapshots discarded because a newer cycle was already applied",
)
DEVICES_BY_STATUS = Gauge(
    "tailmon_devices",
    "Number of devices in the last applied snapshot by health status",
    ["status"],
)
