"""Prometheus metrics definitions for the health export engine."""

from prometheus_client import Counter, Histogram, Info

# -- Service info --
SERVICE_INFO = Info("health_export", "Health export engine info")

# -- Export runs --
EXPORT_RUNS = Counter(
    "health_export_runs_total",
    "Total export runs by mode and outcome",
    ["mode", "outcome"],
)
EXPORT_RUN_DURATION = Histogram(
    "health_export_run_duration_seconds",
    "Wall-clock duration of export runs",
    ["mode"],
    buckets=(1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0),
)

# -- Yearly files --
FILES_WRITTEN = Counter(
    "health_export_files_written_total",
    "Yearly files written to the remote repository",
    ["kind"],
)
FILES_FAILED = Counter(
    "health_export_files_failed_total",
    "Yearly files that could not be written",
    ["kind"],
)
RECORDS_SKIPPED = Counter(
    "health_export_records_skipped_total",
    "Records excluded because their date could not be read",
    ["kind"],
)

# -- Remote API --
REMOTE_REQUESTS = Counter(
    "health_export_remote_requests_total",
    "GitHub API requests",
    ["method", "status"],
)
REMOTE_REQUEST_DURATION = Histogram(
    "health_export_remote_request_duration_seconds",
    "GitHub API request latency",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
