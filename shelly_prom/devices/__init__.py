"""
Device module.

Provides the plug descriptor and telemetry snapshot types.
"""
from .descriptor import DeviceDescriptor, TelemetrySnapshot

__all__ = [
    "DeviceDescriptor",
    "TelemetrySnapshot",
]
