"""
Observability helpers (metrics, logging instrumentation, etc.).
"""

from .prometheus import (
    PROMETHEUS_CONTENT_TYPE,
    generate_prometheus_metrics,
    record_cache_lookup,
    record_monitor_event,
    record_parse_failure,
    record_upstream_request,
    record_upstream_retry,
    reset_prometheus_metrics,
    update_monitor_state,
)

__all__ = [
    "PROMETHEUS_CONTENT_TYPE",
    "generate_prometheus_metrics",
    "record_cache_lookup",
    "record_monitor_event",
    "record_parse_failure",
    "record_upstream_request",
    "record_upstream_retry",
    "reset_prometheus_metrics",
    "update_monitor_state",
]
