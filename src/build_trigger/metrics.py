"""
Prometheus metrics for the build trigger service.

This module defines the metrics collected while triggering builds,
resolving commits and converting pipeline configuration.
"""

from prometheus_client import Counter, Histogram, Gauge
import time


# Trigger endpoint metrics
triggers_received_total = Counter(
    "build_trigger_triggers_received_total",
    "Total number of trigger requests received",
    ["namespace"],
)

trigger_outcomes_total = Counter(
    "build_trigger_trigger_outcomes_total",
    "Total number of trigger requests by outcome",
    ["outcome"],  # outcome = triggered|not_found|failed
)

trigger_duration_seconds = Histogram(
    "build_trigger_trigger_duration_seconds",
    "Time spent handling trigger requests",
    ["namespace"],
)

trigger_errors_total = Counter(
    "build_trigger_trigger_errors_total",
    "Total number of trigger errors",
    ["namespace", "error_type"],
)

# Commit lookup metrics
commit_lookups_total = Counter(
    "build_trigger_commit_lookups_total",
    "Total number of commit lookups",
    ["strategy", "result"],  # strategy = sha|ref, result = found|not_found
)

# Configuration conversion metrics
config_conversions_total = Counter(
    "build_trigger_config_conversions_total",
    "Total number of configuration conversions",
    ["mode"],  # mode = plain|jsonnet|template
)

config_conversion_errors_total = Counter(
    "build_trigger_config_conversion_errors_total",
    "Total number of configuration conversion errors",
    ["mode", "error_type"],
)

config_conversion_duration_seconds = Histogram(
    "build_trigger_config_conversion_duration_seconds",
    "Time spent converting configuration",
    ["mode"],
)

# Health check metrics
health_check_status = Gauge(
    "build_trigger_health_check_status",
    "Health check status (1 = healthy, 0 = unhealthy)",
    ["service"],  # service = github|gitlab
)


class MetricsContext:
    """Context manager for timing operations and handling errors with metrics."""

    def __init__(self, histogram, error_counter, labels=None, error_labels=None):
        self.histogram = histogram
        self.error_counter = error_counter
        self.labels = labels or []
        self.error_labels = error_labels or []
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            duration = time.time() - self.start_time
            self.histogram.labels(*self.labels).observe(duration)

        if exc_type is not None:
            error_type = exc_type.__name__
            self.error_counter.labels(*self.error_labels, error_type).inc()

        return False  # Don't suppress exceptions


def track_trigger(namespace: str):
    """Context manager for tracking trigger request metrics."""
    return MetricsContext(
        trigger_duration_seconds,
        trigger_errors_total,
        labels=[namespace],
        error_labels=[namespace],
    )


def track_conversion(mode: str):
    """Context manager for tracking configuration conversion metrics."""
    return MetricsContext(
        config_conversion_duration_seconds,
        config_conversion_errors_total,
        labels=[mode],
        error_labels=[mode],
    )
