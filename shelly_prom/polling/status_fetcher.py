"""
Status fetcher for Shelly plugs.

Performs one GET against a plug's Shelly.GetStatus RPC endpoint and
decodes the primary switch channel into a TelemetrySnapshot.
"""
import asyncio
import logging
import time
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..devices.descriptor import DeviceDescriptor, TelemetrySnapshot
from ..exceptions import BadStatus, DecodeError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class TemperatureStatus(BaseModel):
    """Temperature reading of a switch channel."""

    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)

    celsius: float = Field(alias="tC")
    fahrenheit: Optional[float] = Field(default=None, alias="tF")


class SwitchStatus(BaseModel):
    """Status of the switch:0 channel."""

    model_config = ConfigDict(strict=True, extra="ignore")

    output: bool
    apower: float
    freq: float
    voltage: float
    current: float
    temperature: TemperatureStatus

    def to_snapshot(self) -> TelemetrySnapshot:
        """Extract the published readings; Fahrenheit is dropped."""
        return TelemetrySnapshot(
            output_on=self.output,
            power_watts=self.apower,
            frequency_hz=self.freq,
            voltage_v=self.voltage,
            current_a=self.current,
            temperature_c=self.temperature.celsius,
        )


class ShellyStatus(BaseModel):
    """Subset of the Shelly.GetStatus response used by the exporter."""

    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)

    switch_0: SwitchStatus = Field(alias="switch:0")


class StatusFetcher:
    """
    Fetches telemetry from plugs over HTTP.

    One fetch is one round trip; failures are raised as
    TransportError, BadStatus or DecodeError and never retried here.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the status fetcher.

        Args:
            timeout: Ceiling for a whole fetch, in seconds.
            client: Optional preconfigured HTTP client. When omitted, one
                is created on connect() and closed on disconnect().
        """
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    async def connect(self) -> None:
        """Initialize HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
            self._owns_client = True
            logger.debug(f"Status fetcher client created (timeout={self.timeout}s)")

    async def disconnect(self) -> None:
        """Close HTTP client if this fetcher created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, device: DeviceDescriptor) -> TelemetrySnapshot:
        """
        Fetch and decode the status of one plug.

        Args:
            device: Plug to query.

        Returns:
            Decoded telemetry snapshot.

        Raises:
            TransportError: Request failed or exceeded the timeout.
            BadStatus: Device answered with a non-2xx status.
            DecodeError: Body did not contain the expected fields.
        """
        if self._client is None:
            await self.connect()

        auth = (
            httpx.BasicAuth(device.username, device.password)
            if device.has_credentials
            else None
        )

        start_time = time.monotonic()

        try:
            response = await asyncio.wait_for(
                self._client.get(device.status_url, auth=auth),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise TransportError(e, timeout=True) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise TransportError(e) from e

        if not response.is_success:
            raise BadStatus(response.status_code)

        try:
            status = ShellyStatus.model_validate_json(response.content)
        except ValidationError as e:
            raise DecodeError(e) from e

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug(f"Fetched status from {device.name} ({device.host}) in {duration_ms:.1f}ms")

        return status.switch_0.to_snapshot()
