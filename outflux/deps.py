"""Factories for settings and clients.

``get_settings`` caches a single :class:`Settings`; tests can call
``get_settings.cache_clear()`` after changing the environment.
"""

from functools import lru_cache

from outflux.clients.influxdb import Bucket, InfluxDBClient
from outflux.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_influxdb_client(settings: Settings | None = None) -> InfluxDBClient:
    if settings is None:
        settings = get_settings()
    return InfluxDBClient(
        url=settings.influx_url,
        token=settings.influx_token,
        timeout=settings.influx_write_timeout,
    )


def get_bucket(client: InfluxDBClient, settings: Settings | None = None) -> Bucket:
    if settings is None:
        settings = get_settings()
    return client.make_bucket(org=settings.influx_org, bucket=settings.influx_bucket)
