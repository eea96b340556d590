"""InfluxDB v2 HTTP write client.

Sends line-protocol batches to the ``/api/v2/write`` endpoint via httpx.  One
:class:`InfluxDBClient` owns a single authenticated :class:`HttpTransport`;
every :class:`Bucket` made from it shares that transport, so credentials and
connections are set up once.

The client does not retry, back off or split batches.  Any failure is raised
as :class:`~outflux.errors.TransportError` and left to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta
from types import TracebackType

import httpx

from outflux.batch import encode_batch
from outflux.errors import ConfigurationError, TransportError, TransportTimeoutError
from outflux.measurement import Measurement

logger = logging.getLogger(__name__)

DEFAULT_WRITE_TIMEOUT = 10.0

Timeout = float | timedelta


def _seconds(timeout: Timeout) -> float:
    if isinstance(timeout, timedelta):
        return timeout.total_seconds()
    return float(timeout)


@dataclass(frozen=True, slots=True)
class WriteEndpoint:
    """Where a batch goes: server, organization and bucket."""

    base_url: str
    org: str
    bucket: str
    precision: str = "ns"

    @property
    def url(self) -> str:
        return f"{self.base_url}/api/v2/write"

    @property
    def params(self) -> dict[str, str]:
        return {"org": self.org, "bucket": self.bucket, "precision": self.precision}

    def __str__(self) -> str:
        return f"{self.url}?org={self.org}&bucket={self.bucket}"


class HttpTransport:
    """Authenticated httpx client that POSTs payloads to write endpoints."""

    def __init__(
        self,
        token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Token {token}"},
            transport=transport,
        )

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def send(
        self,
        endpoint: WriteEndpoint,
        payload: str | bytes,
        timeout: Timeout,
    ) -> httpx.Response:
        """POST *payload* to *endpoint*.

        Args:
            endpoint: Target server, organization and bucket.
            payload:  Line-protocol body; text is sent as UTF-8.
            timeout:  Hard deadline for the whole request, in seconds.

        Raises:
            TransportTimeoutError: the deadline expired.
            TransportError: on network errors or a non-2xx response.
        """
        content = payload.encode("utf-8") if isinstance(payload, str) else payload
        seconds = _seconds(timeout)
        try:
            resp = await self._client.post(
                endpoint.url,
                params=endpoint.params,
                headers={"Content-Type": "text/plain; charset=utf-8"},
                content=content,
                timeout=seconds,
            )
        except httpx.TimeoutException as exc:
            logger.warning("InfluxDB write to %s timed out after %ss.", endpoint, seconds)
            raise TransportTimeoutError(
                f"InfluxDB write timed out after {seconds}s: {exc}"
            ) from exc
        except httpx.RequestError as exc:
            logger.warning("InfluxDB write to %s failed: %s", endpoint, exc)
            raise TransportError(f"InfluxDB unreachable: {exc}") from exc

        if not resp.is_success:
            logger.warning(
                "InfluxDB write to %s rejected (HTTP %s): %s",
                endpoint,
                resp.status_code,
                resp.text[:200],
            )
            raise TransportError(
                f"InfluxDB write failed (HTTP {resp.status_code}): {resp.text}",
                status_code=resp.status_code,
            )
        return resp

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class Bucket:
    """Write handle for one organization/bucket pair."""

    def __init__(
        self,
        transport: HttpTransport,
        endpoint: WriteEndpoint,
        timeout: Timeout = DEFAULT_WRITE_TIMEOUT,
    ) -> None:
        self._transport = transport
        self._endpoint = endpoint
        self._timeout = timeout

    @property
    def endpoint(self) -> WriteEndpoint:
        return self._endpoint

    @property
    def transport(self) -> HttpTransport:
        return self._transport

    async def write(
        self,
        measurements: Iterable[Measurement],
        timeout: Timeout | None = None,
    ) -> httpx.Response | None:
        """Encode *measurements* as one batch and write it.

        Args:
            measurements: Points to send, in order.
            timeout:      Per-call deadline; defaults to the client's write timeout.

        Returns:
            The InfluxDB response, or ``None`` if there was nothing to send.

        Raises:
            TransportError: on API failure, timeout or non-2xx response.
        """
        body = encode_batch(measurements)
        if not body:
            logger.debug("No measurements for %s – skipping write.", self._endpoint)
            return None

        logger.debug("Sending measurements %s: %s", self._endpoint, body)
        resp = await self._transport.send(
            self._endpoint,
            body,
            self._timeout if timeout is None else timeout,
        )
        logger.debug(
            "Wrote %d line(s) to %s (HTTP %s).",
            body.count("\n") + 1,
            self._endpoint,
            resp.status_code,
        )
        return resp


class InfluxDBClient:
    """Async client for the InfluxDB v2 line-protocol write endpoint."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: Timeout = DEFAULT_WRITE_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = _validate_url(url)
        _validate_token(token)
        self._timeout = timeout
        self._transport = HttpTransport(token, transport=transport)

    @property
    def url(self) -> str:
        return self._url

    def make_bucket(self, org: str, bucket: str) -> Bucket:
        """Return a write handle for *bucket* in *org* sharing this client's transport."""
        endpoint = WriteEndpoint(base_url=self._url, org=org, bucket=bucket)
        return Bucket(self._transport, endpoint, timeout=self._timeout)

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> InfluxDBClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


def _validate_url(url: str) -> str:
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(f"Invalid InfluxDB URL {url!r}: {exc}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationError(f"InfluxDB URL must be http(s)://host[:port], got {url!r}")
    return url.rstrip("/")


def _validate_token(token: str) -> None:
    if not token:
        raise ConfigurationError("InfluxDB token is not configured")
    if "\r" in token or "\n" in token:
        raise ConfigurationError("InfluxDB token must not contain line breaks")
