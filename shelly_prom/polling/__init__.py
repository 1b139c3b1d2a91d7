"""
Telemetry polling module.

Handles scheduled polling of configured plugs.
"""
from .status_fetcher import ShellyStatus, StatusFetcher
from .scheduler import PollingScheduler

__all__ = [
    "ShellyStatus",
    "StatusFetcher",
    "PollingScheduler",
]
