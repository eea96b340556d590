"""Exception hierarchy for outflux.

Construction problems are raised eagerly by the builder and the field-value
constructors, so rendering and batch encoding never fail.  Anything that goes
wrong on the wire surfaces as :class:`TransportError`.
"""

from __future__ import annotations


class OutfluxError(Exception):
    """Base class for every error raised by this package."""


# ── Construction ──────────────────────────────────────────────────────────────


class BuildError(OutfluxError):
    """Raised when a measurement cannot be built."""


class MissingFieldsError(BuildError):
    """Raised by ``build()`` when no field, or an empty field map, was set."""

    def __init__(
        self, message: str = "No measurement fields set (at least one is required)"
    ) -> None:
        super().__init__(message)


class ClockError(BuildError):
    """Raised when a timestamp lies before the Unix epoch."""


class InvalidNameError(BuildError):
    """Raised when the measurement name is empty."""


class EmptyIdentifierError(BuildError):
    """Raised when a field key, tag key or tag value is empty."""


class LineBreakError(BuildError):
    """Raised when a name, key or value contains ``\\n`` or ``\\r``.

    Line protocol has no escape for line breaks; one would split the point.
    """


class BuilderConsumedError(BuildError):
    """Raised when a builder is used again after ``build()``."""


class InvalidFieldValueError(OutfluxError):
    """Raised when a value cannot be represented as the requested field type."""


# ── Client / transport ────────────────────────────────────────────────────────


class ConfigurationError(OutfluxError):
    """Raised when the InfluxDB client is given an unusable URL or token."""


class TransportError(OutfluxError):
    """Raised when a write request fails (network error, timeout, non-2xx)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportTimeoutError(TransportError):
    """Raised when a write request exceeds its deadline."""
