"""Unit tests for the InfluxDB write client against a mocked HTTP transport."""

from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from unittest.mock import AsyncMock

import httpx
import pytest

from outflux.clients.influxdb import (
    Bucket,
    HttpTransport,
    InfluxDBClient,
    WriteEndpoint,
)
from outflux.errors import ConfigurationError, TransportError, TransportTimeoutError
from outflux.measurement import Measurement
from tests.conftest import INFLUX_TOKEN, FakeInfluxDB

# ── Happy path ────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_write_posts_line_protocol_batch(
    influx_client: InfluxDBClient,
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
) -> None:
    bucket = influx_client.make_bucket("my-org", "my-bucket")
    first = make_measurement(name="a", tags={"host": "h1"})
    second = make_measurement(name="b", fields={"msg": "Launch 🚀"})

    resp = await bucket.write([first, second])

    assert resp is not None
    assert resp.status_code == 204
    assert len(fake_influxdb.requests) == 1
    request = fake_influxdb.last_request
    assert request.method == "POST"
    assert request.url.path == "/api/v2/write"
    assert request.url.params["org"] == "my-org"
    assert request.url.params["bucket"] == "my-bucket"
    assert request.url.params["precision"] == "ns"
    assert request.headers["Authorization"] == f"Token {INFLUX_TOKEN}"
    assert request.headers["Content-Type"] == "text/plain; charset=utf-8"
    assert request.content == (
        'a,host=h1 value=1.5 0\nb msg="Launch 🚀" 0'.encode("utf-8")
    )


@pytest.mark.anyio
async def test_write_uses_per_call_timeout(
    influx_client: InfluxDBClient,
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
) -> None:
    bucket = influx_client.make_bucket("org", "bucket")
    await bucket.write([make_measurement()], timeout=2.5)
    assert fake_influxdb.last_request.extensions["timeout"]["read"] == 2.5

    await bucket.write([make_measurement()], timeout=timedelta(seconds=4))
    assert fake_influxdb.last_request.extensions["timeout"]["read"] == 4.0


@pytest.mark.anyio
async def test_write_defaults_to_client_timeout(
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
) -> None:
    client = InfluxDBClient(
        "http://influxdb:8086",
        INFLUX_TOKEN,
        timeout=7.0,
        transport=httpx.MockTransport(fake_influxdb),
    )
    async with client:
        await client.make_bucket("org", "bucket").write([make_measurement()])
    assert fake_influxdb.last_request.extensions["timeout"]["read"] == 7.0


@pytest.mark.anyio
async def test_empty_write_is_not_sent(
    influx_client: InfluxDBClient, fake_influxdb: FakeInfluxDB
) -> None:
    resp = await influx_client.make_bucket("org", "bucket").write([])
    assert resp is None
    assert fake_influxdb.requests == []


@pytest.mark.anyio
async def test_url_path_prefix_is_kept(
    fake_influxdb: FakeInfluxDB, make_measurement: Callable[..., Measurement]
) -> None:
    """A reverse-proxy sub-path in the base URL stays in front of /api/v2/write."""
    client = InfluxDBClient(
        "https://metrics.example.com/influx/",
        INFLUX_TOKEN,
        transport=httpx.MockTransport(fake_influxdb),
    )
    await client.make_bucket("org", "bucket").write([make_measurement()])
    assert str(fake_influxdb.last_request.url).startswith(
        "https://metrics.example.com/influx/api/v2/write?"
    )


# ── Buckets ───────────────────────────────────────────────────────────────────


@pytest.mark.anyio
async def test_buckets_share_one_transport(
    influx_client: InfluxDBClient,
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
) -> None:
    bucket_a = influx_client.make_bucket("org", "a")
    bucket_b = influx_client.make_bucket("org", "b")
    assert bucket_a.transport is bucket_b.transport

    await bucket_a.write([make_measurement()])
    await bucket_b.write([make_measurement()])
    assert [r.url.params["bucket"] for r in fake_influxdb.requests] == ["a", "b"]


def test_write_endpoint_routing() -> None:
    endpoint = WriteEndpoint("http://influxdb:8086", "my org", "my-bucket")
    assert endpoint.url == "http://influxdb:8086/api/v2/write"
    assert endpoint.params == {"org": "my org", "bucket": "my-bucket", "precision": "ns"}


@pytest.mark.anyio
async def test_bucket_hands_payload_to_transport(
    make_measurement: Callable[..., Measurement],
) -> None:
    transport: HttpTransport = AsyncMock(spec=HttpTransport)
    transport.send.return_value = httpx.Response(204)  # type: ignore[attr-defined]
    endpoint = WriteEndpoint("http://influxdb:8086", "org", "bucket")
    bucket = Bucket(transport, endpoint, timeout=3.0)
    assert bucket.transport is transport

    await bucket.write([make_measurement(), make_measurement(timestamp=1)])

    transport.send.assert_awaited_once_with(  # type: ignore[attr-defined]
        endpoint, "myMeasurement value=1.5 0\nmyMeasurement value=1.5 1", 3.0
    )


# ── Failures ──────────────────────────────────────────────────────────────────


@pytest.mark.anyio
@pytest.mark.parametrize("status_code", [400, 401, 404, 413, 500, 503])
async def test_non_2xx_raises_transport_error(
    influx_client: InfluxDBClient,
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
    status_code: int,
) -> None:
    fake_influxdb.status_code = status_code
    fake_influxdb.body = '{"code":"invalid","message":"unable to parse"}'
    with pytest.raises(TransportError, match=f"HTTP {status_code}") as exc_info:
        await influx_client.make_bucket("org", "bucket").write([make_measurement()])
    assert exc_info.value.status_code == status_code


@pytest.mark.anyio
async def test_timeout_raises_transport_timeout_error(
    influx_client: InfluxDBClient,
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
) -> None:
    fake_influxdb.error = httpx.ReadTimeout("timed out")
    with pytest.raises(TransportTimeoutError) as exc_info:
        await influx_client.make_bucket("org", "bucket").write([make_measurement()], 0.1)
    assert isinstance(exc_info.value.__cause__, httpx.TimeoutException)
    assert exc_info.value.status_code is None


@pytest.mark.anyio
async def test_network_error_raises_transport_error(
    influx_client: InfluxDBClient,
    fake_influxdb: FakeInfluxDB,
    make_measurement: Callable[..., Measurement],
) -> None:
    fake_influxdb.error = httpx.ConnectError("connection refused")
    with pytest.raises(TransportError, match="unreachable") as exc_info:
        await influx_client.make_bucket("org", "bucket").write([make_measurement()])
    assert not isinstance(exc_info.value, TransportTimeoutError)
    assert len(fake_influxdb.requests) == 1


@pytest.mark.anyio
async def test_close_closes_shared_transport(influx_client: InfluxDBClient) -> None:
    bucket = influx_client.make_bucket("org", "bucket")
    await influx_client.aclose()
    assert bucket.transport.is_closed


@pytest.mark.anyio
async def test_transport_closes_on_context_exit(fake_influxdb: FakeInfluxDB) -> None:
    endpoint = WriteEndpoint("http://influxdb:8086", "org", "bucket")
    async with HttpTransport(
        INFLUX_TOKEN, transport=httpx.MockTransport(fake_influxdb)
    ) as transport:
        resp = await transport.send(endpoint, "m value=1i 0", timeout=1.0)
        assert resp.status_code == 204
        assert not transport.is_closed

    assert transport.is_closed
    assert fake_influxdb.last_request.content == b"m value=1i 0"
    assert fake_influxdb.last_request.headers["Authorization"] == f"Token {INFLUX_TOKEN}"


# ── Configuration ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "url", ["", "influxdb:8086/path", "ftp://influxdb:8086", "not a url", "http://"]
)
def test_invalid_url_raises(url: str) -> None:
    with pytest.raises(ConfigurationError):
        InfluxDBClient(url, INFLUX_TOKEN)


@pytest.mark.parametrize("token", ["", "abc\r\nX-Injected: 1"])
def test_invalid_token_raises(token: str) -> None:
    with pytest.raises(ConfigurationError):
        InfluxDBClient("http://influxdb:8086", token)


def test_trailing_slash_is_stripped() -> None:
    assert InfluxDBClient("http://influxdb:8086/", INFLUX_TOKEN).url == "http://influxdb:8086"
