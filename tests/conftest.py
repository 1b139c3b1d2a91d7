"""
Shared pytest fixtures for exporter tests.

Provides fixtures for:
- Plug descriptors
- Shelly.GetStatus payloads
- Fake plug HTTP clients (httpx.MockTransport)
- Metric registries
"""
from typing import Any, Callable, Dict, List

import httpx
import pytest
import pytest_asyncio

from shelly_prom.devices.descriptor import DeviceDescriptor, TelemetrySnapshot
from shelly_prom.metrics.registry import MetricRegistry


@pytest.fixture(autouse=True)
def isolate_config_env(monkeypatch):
    """Keep the host environment from redirecting config resolution."""
    monkeypatch.delenv("CONFIG_PATH", raising=False)
    monkeypatch.delenv("SHELLY_PROM_CONFIG_PATH", raising=False)
    monkeypatch.delenv("SHELLY_PROM_LOG_LEVEL", raising=False)


# ============================================================================
# Device Fixtures
# ============================================================================

@pytest.fixture
def sample_device() -> DeviceDescriptor:
    """Plug without credentials."""
    return DeviceDescriptor(name="plugA", host="10.0.0.5")


@pytest.fixture
def authed_device() -> DeviceDescriptor:
    """Plug with basic auth credentials."""
    return DeviceDescriptor(
        name="plugB",
        host="10.0.0.6:8080",
        username="admin",
        password="secret",
    )


@pytest.fixture
def sample_snapshot() -> TelemetrySnapshot:
    """Snapshot matching the default status payload."""
    return TelemetrySnapshot(
        output_on=True,
        power_watts=12.5,
        frequency_hz=50.0,
        voltage_v=230.1,
        current_a=0.054,
        temperature_c=34.2,
    )


# ============================================================================
# Payload Fixtures
# ============================================================================

@pytest.fixture
def status_payload_factory() -> Callable[..., Dict[str, Any]]:
    """
    Build Shelly.GetStatus bodies.

    Usage:
        payload = status_payload_factory(apower=0.0, output=False)
    """
    def _build(
        output: bool = True,
        apower: float = 12.5,
        freq: float = 50.0,
        voltage: float = 230.1,
        current: float = 0.054,
        t_c: float = 34.2,
        t_f: float = 93.6,
    ) -> Dict[str, Any]:
        return {
            "ble": {},
            "cloud": {"connected": False},
            "switch:0": {
                "id": 0,
                "source": "init",
                "output": output,
                "apower": apower,
                "voltage": voltage,
                "freq": freq,
                "current": current,
                "aenergy": {"total": 1234.5, "by_minute": [0.0, 0.0, 0.0]},
                "temperature": {"tC": t_c, "tF": t_f},
            },
            "sys": {"uptime": 3600},
        }

    return _build


@pytest.fixture
def status_payload(status_payload_factory) -> Dict[str, Any]:
    """Default status body for the sample snapshot."""
    return status_payload_factory()


# ============================================================================
# HTTP Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def mock_client_factory():
    """
    Create httpx clients backed by a request handler.

    The handler may be sync or async and may raise httpx errors to
    simulate transport failures. Clients are closed after the test.
    """
    clients: List[httpx.AsyncClient] = []

    def _build(handler) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _build

    for client in clients:
        await client.aclose()


# ============================================================================
# Metrics Fixtures
# ============================================================================

@pytest.fixture
def registry() -> MetricRegistry:
    """Fresh metric registry with a private collector registry."""
    return MetricRegistry()
