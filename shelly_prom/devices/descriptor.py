"""
Plug descriptors and telemetry snapshots.

Descriptors identify a polled plug and are fixed for the process
lifetime; snapshots hold the values decoded from one status response.
"""
from dataclasses import dataclass
from typing import Optional

STATUS_PATH = "/rpc/Shelly.GetStatus"


@dataclass(frozen=True)
class DeviceDescriptor:
    """Identity and connection parameters of a single plug."""
    name: str
    host: str  # address:port or hostname
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def has_credentials(self) -> bool:
        """Basic auth is only sent when both parts are non-empty."""
        return bool(self.username) and bool(self.password)

    @property
    def status_url(self) -> str:
        """URL of the device's status RPC endpoint."""
        return f"http://{self.host}{STATUS_PATH}"

    def __repr__(self) -> str:
        # Keep secrets out of log lines.
        return f"DeviceDescriptor(name={self.name!r}, host={self.host!r})"


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Electrical readings taken from the primary switch channel."""
    output_on: bool
    power_watts: float
    frequency_hz: float
    voltage_v: float
    current_a: float
    temperature_c: float

    @property
    def output_value(self) -> float:
        """Output state as a 0/1 gauge value."""
        return 1.0 if self.output_on else 0.0
