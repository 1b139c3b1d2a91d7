"""
Unit tests for StatusFetcher.

Tests request shape, authentication, status handling and response decoding.
"""
import asyncio
import base64

import httpx
import pytest

from shelly_prom.exceptions import BadStatus, DecodeError, TransportError
from shelly_prom.polling.status_fetcher import StatusFetcher


def json_handler(payload, status_code=200, seen=None):
    """Handler answering every request with the given JSON body."""
    def _handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)
    return _handler


class TestRequest:
    """Test the outgoing request."""

    @pytest.mark.asyncio
    async def test_get_status_endpoint(self, mock_client_factory, sample_device, status_payload):
        """Test a single GET without body or query goes to the status RPC."""
        seen = []
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload, seen=seen)))

        await fetcher.fetch(sample_device)

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "GET"
        assert str(request.url) == "http://10.0.0.5/rpc/Shelly.GetStatus"
        assert request.url.query == b""
        assert request.content == b""

    @pytest.mark.asyncio
    async def test_unauthenticated_without_credentials(
        self, mock_client_factory, sample_device, status_payload
    ):
        """Test no Authorization header is sent for a plug without credentials."""
        seen = []
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload, seen=seen)))

        await fetcher.fetch(sample_device)

        assert "authorization" not in seen[0].headers

    @pytest.mark.asyncio
    async def test_basic_auth_with_credentials(
        self, mock_client_factory, authed_device, status_payload
    ):
        """Test basic auth is attached when username and password are set."""
        seen = []
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload, seen=seen)))

        await fetcher.fetch(authed_device)

        expected = "Basic " + base64.b64encode(b"admin:secret").decode()
        assert seen[0].headers["authorization"] == expected
        assert str(seen[0].url) == "http://10.0.0.6:8080/rpc/Shelly.GetStatus"

    @pytest.mark.asyncio
    async def test_username_only_is_unauthenticated(
        self, mock_client_factory, authed_device, status_payload
    ):
        """Test a username without a password does not trigger auth."""
        from dataclasses import replace

        device = replace(authed_device, password="")
        seen = []
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload, seen=seen)))

        await fetcher.fetch(device)

        assert "authorization" not in seen[0].headers


class TestDecoding:
    """Test decoding the status body."""

    @pytest.mark.asyncio
    async def test_decodes_switch_channel(
        self, mock_client_factory, sample_device, status_payload, sample_snapshot
    ):
        """Test all six readings are taken from switch:0."""
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload)))

        snapshot = await fetcher.fetch(sample_device)

        assert snapshot == sample_snapshot

    @pytest.mark.asyncio
    async def test_fahrenheit_optional(self, mock_client_factory, sample_device, status_payload):
        """Test a body without tF still decodes."""
        del status_payload["switch:0"]["temperature"]["tF"]
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload)))

        snapshot = await fetcher.fetch(sample_device)

        assert snapshot.temperature_c == 34.2

    @pytest.mark.asyncio
    async def test_integer_readings_accepted(
        self, mock_client_factory, sample_device, status_payload_factory
    ):
        """Test whole-number JSON values decode as floats."""
        payload = status_payload_factory(output=False, apower=0, freq=50, voltage=0, current=0, t_c=21)
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(payload)))

        snapshot = await fetcher.fetch(sample_device)

        assert snapshot.output_on is False
        assert snapshot.power_watts == 0.0
        assert snapshot.frequency_hz == 50.0
        assert snapshot.temperature_c == 21.0

    @pytest.mark.asyncio
    async def test_missing_temperature_is_decode_error(
        self, mock_client_factory, sample_device, status_payload
    ):
        """Test a body without the temperature object fails to decode."""
        del status_payload["switch:0"]["temperature"]
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload)))

        with pytest.raises(DecodeError):
            await fetcher.fetch(sample_device)

    @pytest.mark.asyncio
    async def test_missing_switch_is_decode_error(self, mock_client_factory, sample_device):
        """Test a body without switch:0 fails to decode."""
        fetcher = StatusFetcher(client=mock_client_factory(json_handler({"sys": {}})))

        with pytest.raises(DecodeError):
            await fetcher.fetch(sample_device)

    @pytest.mark.asyncio
    async def test_wrong_type_is_decode_error(
        self, mock_client_factory, sample_device, status_payload
    ):
        """Test a string where a number is expected fails to decode."""
        status_payload["switch:0"]["apower"] = "12.5"
        fetcher = StatusFetcher(client=mock_client_factory(json_handler(status_payload)))

        with pytest.raises(DecodeError):
            await fetcher.fetch(sample_device)

    @pytest.mark.asyncio
    async def test_invalid_json_is_decode_error(self, mock_client_factory, sample_device):
        """Test a non-JSON body fails to decode."""
        fetcher = StatusFetcher(
            client=mock_client_factory(lambda request: httpx.Response(200, text="<html>"))
        )

        with pytest.raises(DecodeError) as exc_info:
            await fetcher.fetch(sample_device)

        assert exc_info.value.code == "DECODE_ERROR"


class TestStatusCodes:
    """Test non-2xx handling."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 404, 500, 503])
    async def test_non_success_is_bad_status(
        self, mock_client_factory, sample_device, status_payload, status_code
    ):
        """Test non-2xx responses raise BadStatus with the code."""
        fetcher = StatusFetcher(
            client=mock_client_factory(json_handler(status_payload, status_code=status_code))
        )

        with pytest.raises(BadStatus) as exc_info:
            await fetcher.fetch(sample_device)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.to_dict()["details"] == {"status_code": status_code}


class TestTransport:
    """Test connection-level failures and the timeout ceiling."""

    @pytest.mark.asyncio
    async def test_connect_error(self, mock_client_factory, sample_device):
        """Test refused connections raise TransportError."""
        def _handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = StatusFetcher(client=mock_client_factory(_handler))

        with pytest.raises(TransportError) as exc_info:
            await fetcher.fetch(sample_device)

        assert exc_info.value.timeout is False
        assert isinstance(exc_info.value.cause, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_client_timeout(self, mock_client_factory, sample_device):
        """Test httpx timeouts are reported as timeout transport errors."""
        def _handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        fetcher = StatusFetcher(client=mock_client_factory(_handler))

        with pytest.raises(TransportError) as exc_info:
            await fetcher.fetch(sample_device)

        assert exc_info.value.timeout is True

    @pytest.mark.asyncio
    async def test_slow_device_hits_ceiling(self, mock_client_factory, sample_device, status_payload):
        """Test a device slower than the ceiling is abandoned."""
        async def _handler(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json=status_payload)

        fetcher = StatusFetcher(timeout=0.1, client=mock_client_factory(_handler))

        loop = asyncio.get_running_loop()
        started = loop.time()
        with pytest.raises(TransportError) as exc_info:
            await fetcher.fetch(sample_device)

        assert exc_info.value.timeout is True
        assert loop.time() - started < 1.0


class TestClientLifecycle:
    """Test HTTP client ownership."""

    @pytest.mark.asyncio
    async def test_connect_creates_and_disconnect_closes(self):
        """Test an owned client is created on connect and closed on disconnect."""
        fetcher = StatusFetcher(timeout=2.0)

        await fetcher.connect()
        client = fetcher._client
        assert isinstance(client, httpx.AsyncClient)

        await fetcher.disconnect()
        assert fetcher._client is None
        assert client.is_closed

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, mock_client_factory, status_payload):
        """Test an injected client is not closed by the fetcher."""
        client = mock_client_factory(json_handler(status_payload))
        fetcher = StatusFetcher(client=client)

        await fetcher.connect()
        await fetcher.disconnect()

        assert not client.is_closed
