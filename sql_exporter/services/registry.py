"""
Gauge registry backing the /metrics endpoint.

Each exporter owns its own CollectorRegistry, so several exporters (as in
tests) never share gauges. Gauges are created the first time a metric key is
updated and are never removed.

Whole-number values are exported without a fractional part, so a count of 10
is served as `10` rather than `10.0`.
"""

import math
import threading
from collections.abc import Iterator

import structlog
from prometheus_client import (
    CollectorRegistry,
    Gauge,
    GCCollector,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)

logger = structlog.get_logger(__name__)

DB_LABEL = "db"


class MetricRegistry:
    """Mapping of metric key to gauge, with Prometheus text export."""

    def __init__(self, include_process_metrics: bool = True) -> None:
        self._registry = CollectorRegistry(auto_describe=True)
        self._gauges: dict[str, Gauge] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(component="metric_registry")

        if include_process_metrics:
            ProcessCollector(registry=self._registry)
            PlatformCollector(registry=self._registry)
            GCCollector(registry=self._registry)

    def update(self, metric_key: str, label: str, value: float) -> None:
        """Set the gauge for metric_key to value, creating it on first use."""
        with self._lock:
            gauge = self._gauges.get(metric_key)
            if gauge is None:
                gauge = Gauge(
                    metric_key,
                    metric_key,
                    labelnames=[DB_LABEL],
                    registry=self._registry,
                )
                self._gauges[metric_key] = gauge
                self.logger.info("gauge_registered", metric=metric_key)
            gauge.labels(**{DB_LABEL: label}).set(value)

    def export(self) -> str:
        """Render every registered series in the Prometheus text format."""
        with self._lock:
            text = generate_latest(self._registry).decode("utf-8")
        return "".join(_render_sample_line(line) for line in text.splitlines(keepends=True))

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._gauges)

    def __contains__(self, metric_key: object) -> bool:
        with self._lock:
            return metric_key in self._gauges

    def __len__(self) -> int:
        with self._lock:
            return len(self._gauges)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


def _render_sample_line(line: str) -> str:
    """Print whole-number sample values as integers ("10", not "10.0")."""
    if line.startswith("#") or not line.strip():
        return line
    head, _, raw = line.rstrip("\n").rpartition(" ")
    value = float(raw)
    if math.isfinite(value) and value.is_integer():
        return f"{head} {int(value)}\n"
    return line
