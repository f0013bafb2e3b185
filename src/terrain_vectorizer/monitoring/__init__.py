"""
Monitoring Module

Run metrics for tile processing, backed by a private Prometheus registry.
"""

from .metrics import MetricsCollector, MetricValue

__all__ = [
    "MetricsCollector",
    "MetricValue"
]
