"""Write one point to InfluxDB every 15 seconds.

Configure via environment variables (or a ``.env`` file)::

    INFLUX_URL=http://127.0.0.1:8086
    INFLUX_TOKEN=my-influxdb-token
    INFLUX_ORG=my-org
    INFLUX_BUCKET=my-bucket
"""

from __future__ import annotations

import asyncio
import logging

from outflux import FieldValue, Measurement, TransportError
from outflux.deps import get_bucket, get_influxdb_client, get_settings

logger = logging.getLogger("periodic_write")

INTERVAL_SECONDS = 15.0


async def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    async with get_influxdb_client(settings) as client:
        bucket = get_bucket(client, settings)
        while True:
            measurement = (
                Measurement.builder("my-measurement-name")
                .fields({"my-measurement-field": FieldValue.uinteger(123)})
                .tags({"my-measurement-tag": "foo"})
                .build()
            )
            try:
                await bucket.write([measurement], timeout=5.0)
            except TransportError as exc:
                logger.error("Could not send metrics: %s", exc)
            await asyncio.sleep(INTERVAL_SECONDS)


if __name__ == "__main__":
    asyncio.run(main())
