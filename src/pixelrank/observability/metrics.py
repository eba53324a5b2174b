"""
Defines Prometheus metrics for the application.
"""

from __future__ import annotations

from typing import Any, Dict

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

logger = structlog.get_logger(__name__)


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing

        try:
            return metric_cls(name, documentation, *args, **kwargs)
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)
Gauge = _duplicate_safe_factory(_OrigGauge)
Histogram = _duplicate_safe_factory(_OrigHistogram)


def _create_metrics() -> Dict[str, Any]:
    return {
        "records_total": Counter(
            "pixelrank_records_total",
            "Image records analyzed, by outcome",
            ["outcome"],
        ),
        "fetch_latency_seconds": Histogram(
            "pixelrank_fetch_latency_seconds",
            "Time spent fetching one image or input file",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
        ),
        "fetch_retries_total": Counter(
            "pixelrank_fetch_retries_total",
            "Fetch attempts that were retried",
        ),
        "in_flight_records": Gauge(
            "pixelrank_in_flight_records",
            "Image records currently being processed",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(port: int) -> None:
    """Expose METRICS over HTTP for Prometheus to scrape."""
    start_http_server(port)
    logger.info("Prometheus exporter started", port=port)
