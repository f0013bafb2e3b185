"""
Metrics Collection

Counts processed tiles and emitted features and times per-tile work.
Metrics live in a private Prometheus registry so that several collectors
(one per generator, or one per test) never clash on metric names.
"""

import threading
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

import structlog
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest


@dataclass
class MetricValue:
    """Represents a single metric value with metadata."""
    name: str
    value: Union[int, float]
    timestamp: datetime
    labels: Dict[str, str] = field(default_factory=dict)


class MetricsCollector:
    """
    Metrics collection for tile processing runs.

    Every value is buffered locally (for summaries and tests) and, when a
    Prometheus metric of that name is registered, forwarded to it.
    """

    def __init__(self, enable_prometheus: bool = True, buffer_size: int = 10000):
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Enable Prometheus metrics collection
            buffer_size: Number of recent values kept for summaries
        """
        self.enable_prometheus = enable_prometheus
        self.logger = structlog.get_logger(collector_type="MetricsCollector")

        self.metrics_buffer = deque(maxlen=buffer_size)
        self.totals: Dict[str, float] = defaultdict(float)
        self.lock = threading.RLock()

        self.prometheus_counters: Dict[str, Counter] = {}
        self.prometheus_histograms: Dict[str, Histogram] = {}
        self.prometheus_gauges: Dict[str, Gauge] = {}

        if self.enable_prometheus:
            self._init_prometheus()

    def _init_prometheus(self) -> None:
        """Register the tile pipeline metrics."""
        self.prometheus_registry = CollectorRegistry()

        self._create_prometheus_metric(
            'counter', 'tiles_processed_total',
            'Total number of tiles processed',
            ['status']
        )

        self._create_prometheus_metric(
            'counter', 'features_emitted_total',
            'Total number of features emitted',
            ['kind']
        )

        self._create_prometheus_metric(
            'histogram', 'tile_processing_duration_seconds',
            'Duration of single tile processing',
            []
        )

        self._create_prometheus_metric(
            'gauge', 'tile_queue_size',
            'Number of tiles remaining in the work-list',
            []
        )

    def _create_prometheus_metric(
        self,
        metric_type: str,
        name: str,
        description: str,
        labels: List[str]
    ) -> None:
        """Create a Prometheus metric."""
        if metric_type == 'counter':
            self.prometheus_counters[name] = Counter(
                name, description, labels, registry=self.prometheus_registry
            )
        elif metric_type == 'histogram':
            self.prometheus_histograms[name] = Histogram(
                name, description, labels, registry=self.prometheus_registry
            )
        elif metric_type == 'gauge':
            self.prometheus_gauges[name] = Gauge(
                name, description, labels, registry=self.prometheus_registry
            )
        else:
            raise ValueError(f"Unknown metric type: {metric_type}")

    def _buffer(self, name: str, value: Union[int, float], labels: Dict[str, str]) -> None:
        self.metrics_buffer.append(MetricValue(
            name=name,
            value=value,
            timestamp=datetime.now(timezone.utc),
            labels=labels
        ))

    def increment_counter(
        self,
        name: str,
        value: Union[int, float] = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name
            value: Value to increment by
            labels: Metric labels
        """
        labels = labels or {}

        with self.lock:
            self._buffer(name, value, labels)
            self.totals[_series_key(name, labels)] += value

            if self.enable_prometheus and name in self.prometheus_counters:
                if labels:
                    self.prometheus_counters[name].labels(**labels).inc(value)
                else:
                    self.prometheus_counters[name].inc(value)

    def record_histogram(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Record one observation of a histogram metric."""
        labels = labels or {}

        with self.lock:
            self._buffer(name, value, labels)

            if self.enable_prometheus and name in self.prometheus_histograms:
                if labels:
                    self.prometheus_histograms[name].labels(**labels).observe(value)
                else:
                    self.prometheus_histograms[name].observe(value)

    def set_gauge(
        self,
        name: str,
        value: Union[int, float],
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """Set a gauge metric."""
        labels = labels or {}

        with self.lock:
            self._buffer(name, value, labels)
            self.totals[_series_key(name, labels)] = value

            if self.enable_prometheus and name in self.prometheus_gauges:
                if labels:
                    self.prometheus_gauges[name].labels(**labels).set(value)
                else:
                    self.prometheus_gauges[name].set(value)

    def get_counter(self, name: str, labels: Optional[Dict[str, str]] = None) -> float:
        """Current total of a counter (or last value of a gauge)."""
        with self.lock:
            return self.totals.get(_series_key(name, labels or {}), 0.0)

    def get_metrics_summary(self) -> Dict[str, Dict[str, float]]:
        """Count/sum/min/max per metric name over the buffered values."""
        summary: Dict[str, Dict[str, float]] = {}

        with self.lock:
            for metric in self.metrics_buffer:
                entry = summary.setdefault(metric.name, {
                    'count': 0, 'sum': 0.0, 'min': metric.value, 'max': metric.value
                })
                entry['count'] += 1
                entry['sum'] += metric.value
                entry['min'] = min(entry['min'], metric.value)
                entry['max'] = max(entry['max'], metric.value)

        return summary

    def export_prometheus(self) -> bytes:
        """Prometheus text exposition of the registry."""
        if not self.enable_prometheus:
            return b""
        return generate_latest(self.prometheus_registry)


def _series_key(name: str, labels: Dict[str, str]) -> str:
    if not labels:
        return name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{rendered}}}"
