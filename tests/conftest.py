"""Shared pytest fixtures and helpers.

The InfluxDB server is replaced by an ``httpx.MockTransport`` that records
every request, so tests run without any live services.  Async tests run on
the asyncio backend of the AnyIO pytest plugin.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

import httpx
import pytest

from outflux.clients.influxdb import InfluxDBClient
from outflux.fields import FieldInput
from outflux.measurement import Measurement, build_measurement

# ── Constants ─────────────────────────────────────────────────────────────────

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
INFLUX_URL = "http://influxdb:8086"
INFLUX_TOKEN = "my-influxdb-token"

# ── Fake InfluxDB server ──────────────────────────────────────────────────────


class FakeInfluxDB:
    """Records requests and answers each one with a configurable response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 204
        self.body = ""
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, text=self.body)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def fake_influxdb() -> FakeInfluxDB:
    return FakeInfluxDB()


@pytest.fixture()
def influx_client(fake_influxdb: FakeInfluxDB) -> InfluxDBClient:
    return InfluxDBClient(
        url=INFLUX_URL,
        token=INFLUX_TOKEN,
        transport=httpx.MockTransport(fake_influxdb),
    )


@pytest.fixture()
def make_measurement() -> Callable[..., Measurement]:
    """Factory for measurements pinned to the epoch unless told otherwise."""

    def _make(
        name: str = "myMeasurement",
        fields: dict[str, FieldInput] | None = None,
        tags: dict[str, str] | None = None,
        timestamp: datetime | int = EPOCH,
    ) -> Measurement:
        return build_measurement(
            name,
            fields if fields is not None else {"value": 1.5},
            tags,
            timestamp,
        )

    return _make
