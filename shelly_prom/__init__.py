"""
Shelly Exporter - Prometheus exporter for Shelly smart plugs.

Polls each configured plug's status endpoint and publishes power,
voltage, current, frequency, temperature and output state as gauges.
"""
from .config import ExporterSettings, get_exporter_settings
from .devices import DeviceDescriptor, TelemetrySnapshot
from .loader import ConfigLoader, ExporterConfig
from .metrics import MetricRegistry
from .polling import PollingScheduler, StatusFetcher

__all__ = [
    "ExporterSettings",
    "get_exporter_settings",
    "DeviceDescriptor",
    "TelemetrySnapshot",
    "ConfigLoader",
    "ExporterConfig",
    "MetricRegistry",
    "PollingScheduler",
    "StatusFetcher",
]
