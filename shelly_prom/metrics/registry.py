"""
Metric registry for plug telemetry.

Holds one labeled gauge per metric kind in a dedicated Prometheus
collector registry and renders it for scraping.
"""
import logging
from enum import Enum
from typing import Dict, Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Gauge, generate_latest

from ..devices.descriptor import TelemetrySnapshot

logger = logging.getLogger(__name__)

LABELS = ("device", "host")


class MetricKind(str, Enum):
    """Gauges exposed per plug."""
    POWER = "power"
    FREQUENCY = "frequency"
    VOLTAGE = "voltage"
    CURRENT = "current"
    TEMPERATURE = "temperature"
    OUTPUT = "output"


# kind -> (metric name, help text)
METRIC_DEFINITIONS: Dict[MetricKind, tuple] = {
    MetricKind.POWER: ("plug_power_watts", "Current power consumption in watts"),
    MetricKind.FREQUENCY: ("plug_frequency_hertz", "Current frequency in hertz"),
    MetricKind.VOLTAGE: ("plug_voltage_volts", "Current voltage in volts"),
    MetricKind.CURRENT: ("plug_current_amperes", "Current in amperes"),
    MetricKind.TEMPERATURE: ("plug_temperature_celsius", "Current temperature in Celsius"),
    MetricKind.OUTPUT: ("plug_output", "Output status of the plug (1 for on, 0 for off)"),
}


class MetricRegistry:
    """
    Latest telemetry values per plug, exposed as Prometheus gauges.

    Each gauge child is keyed by (device, host). Writes overwrite the
    previous value; entries are created on first write and never removed.
    Individual values are lock-protected by prometheus_client, so writes
    from different tasks or threads are safe.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize the metric registry.

        Args:
            registry: Collector registry to register gauges in. A private
                one is created when omitted.
        """
        self.registry = registry or CollectorRegistry()
        self._gauges: Dict[MetricKind, Gauge] = {
            kind: Gauge(name, help_text, LABELS, registry=self.registry)
            for kind, (name, help_text) in METRIC_DEFINITIONS.items()
        }

    def set_metrics(
        self,
        device_name: str,
        device_host: str,
        snapshot: TelemetrySnapshot,
    ) -> None:
        """
        Overwrite all six gauges for one plug.

        Args:
            device_name: Plug name label.
            device_host: Plug host label.
            snapshot: Decoded telemetry to publish.
        """
        values = {
            MetricKind.POWER: snapshot.power_watts,
            MetricKind.FREQUENCY: snapshot.frequency_hz,
            MetricKind.VOLTAGE: snapshot.voltage_v,
            MetricKind.CURRENT: snapshot.current_a,
            MetricKind.TEMPERATURE: snapshot.temperature_c,
            MetricKind.OUTPUT: snapshot.output_value,
        }
        for kind, value in values.items():
            self._gauges[kind].labels(device=device_name, host=device_host).set(value)

    def get_value(
        self,
        kind: MetricKind,
        device_name: str,
        device_host: str,
    ) -> Optional[float]:
        """
        Read the current value of one gauge.

        Returns:
            The value, or None if the plug was never published.
        """
        name, _ = METRIC_DEFINITIONS[MetricKind(kind)]
        return self.registry.get_sample_value(
            name, {"device": device_name, "host": device_host}
        )

    def render(self) -> bytes:
        """Prometheus text exposition of all gauges."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        """Content type matching render()."""
        return CONTENT_TYPE_LATEST
