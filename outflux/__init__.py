"""InfluxDB line-protocol encoder and v2 write client."""

from outflux.batch import encode_batch
from outflux.clients.influxdb import Bucket, HttpTransport, InfluxDBClient, WriteEndpoint
from outflux.errors import (
    BuildError,
    BuilderConsumedError,
    ClockError,
    ConfigurationError,
    EmptyIdentifierError,
    InvalidFieldValueError,
    InvalidNameError,
    LineBreakError,
    MissingFieldsError,
    OutfluxError,
    TransportError,
    TransportTimeoutError,
)
from outflux.fields import FieldKind, FieldValue
from outflux.measurement import Measurement, MeasurementBuilder, build_measurement

__all__ = [
    "Bucket",
    "BuildError",
    "BuilderConsumedError",
    "ClockError",
    "ConfigurationError",
    "EmptyIdentifierError",
    "FieldKind",
    "FieldValue",
    "HttpTransport",
    "InfluxDBClient",
    "InvalidFieldValueError",
    "InvalidNameError",
    "LineBreakError",
    "Measurement",
    "MeasurementBuilder",
    "MissingFieldsError",
    "OutfluxError",
    "TransportError",
    "TransportTimeoutError",
    "WriteEndpoint",
    "build_measurement",
    "encode_batch",
]
