"""
Metrics module.

Publishes plug telemetry as Prometheus gauges.
"""
from .registry import METRIC_DEFINITIONS, MetricKind, MetricRegistry

__all__ = [
    "METRIC_DEFINITIONS",
    "MetricKind",
    "MetricRegistry",
]
