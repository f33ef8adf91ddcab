from __future__ import annotations

from typing import Literal

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

PROMETHEUS_CONTENT_TYPE = CONTENT_TYPE_LATEST

UpstreamOutcome = Literal["success", "client_error", "failed"]
MonitorEventKind = Literal["launch", "trade", "ignored"]


class _Metrics:
    def __init__(self) -> None:
        self.registry = CollectorRegistry()
        self.upstream_requests = Counter(
            "solwatch_upstream_requests_total",
            "Birdeye requests that reached the network, by endpoint category and outcome",
            labelnames=("category", "outcome"),
            registry=self.registry,
        )
        self.upstream_retries = Counter(
            "solwatch_upstream_retries_total",
            "Retries scheduled by the backoff policy, by reason",
            labelnames=("reason",),
            registry=self.registry,
        )
        self.upstream_latency = Histogram(
            "solwatch_upstream_latency_seconds",
            "Latency of successful upstream requests including retries",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self.registry,
        )
        self.cache_lookups = Counter(
            "solwatch_cache_lookups_total",
            "Response cache lookups by result",
            labelnames=("result",),
            registry=self.registry,
        )
        self.monitor_events = Counter(
            "solwatch_monitor_events_total",
            "Log notifications classified by the pump.fun monitor",
            labelnames=("kind",),
            registry=self.registry,
        )
        self.parse_failures = Counter(
            "solwatch_monitor_parse_failures_total",
            "Transactions the monitor could not turn into launches or trades",
            labelnames=("kind",),
            registry=self.registry,
        )
        self.monitor_state = Gauge(
            "solwatch_monitor_active",
            "1 while the log subscription is open",
            registry=self.registry,
        )
        self.trade_history = Gauge(
            "solwatch_monitor_trade_history_size",
            "Trades currently retained in the rolling history",
            registry=self.registry,
        )


_metrics = _Metrics()


def record_upstream_request(category: str, outcome: UpstreamOutcome, latency_ms: float | None = None) -> None:
    _metrics.upstream_requests.labels(category=category, outcome=outcome).inc()
    if latency_ms is not None and latency_ms >= 0:
        _metrics.upstream_latency.observe(latency_ms / 1000.0)


def record_upstream_retry(reason: str) -> None:
    _metrics.upstream_retries.labels(reason=reason).inc()


def record_cache_lookup(*, hit: bool) -> None:
    _metrics.cache_lookups.labels(result="hit" if hit else "miss").inc()


def record_monitor_event(kind: MonitorEventKind) -> None:
    _metrics.monitor_events.labels(kind=kind).inc()


def record_parse_failure(kind: str) -> None:
    _metrics.parse_failures.labels(kind=kind).inc()


def update_monitor_state(*, monitoring: bool, trade_history_size: int | None = None) -> None:
    _metrics.monitor_state.set(1 if monitoring else 0)
    if trade_history_size is not None:
        _metrics.trade_history.set(trade_history_size)


def generate_prometheus_metrics() -> bytes:
    return generate_latest(_metrics.registry)


def reset_prometheus_metrics() -> None:
    global _metrics
    _metrics = _Metrics()
