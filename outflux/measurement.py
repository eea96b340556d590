"""Measurements and their line-protocol rendering.

A measurement is one InfluxDB point::

    <name>[,<tag>=<value>...] <field>=<value>[,<field>=<value>...] <timestamp-ns>

Measurements are immutable and validated on construction: at least one
field, a non-negative timestamp, no empty keys or tag values, and no line
breaks anywhere.  :class:`MeasurementBuilder` checks eagerly as it is
configured and fills in the current time when no timestamp is given.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType

from outflux.errors import (
    BuilderConsumedError,
    ClockError,
    EmptyIdentifierError,
    InvalidNameError,
    LineBreakError,
    MissingFieldsError,
)
from outflux.escaping import escape_identifier, escape_measurement_name
from outflux.fields import FieldInput, FieldValue

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NS_PER_SECOND = 1_000_000_000

_clock_lock = threading.Lock()
_last_now_ns = 0


def _now_ns() -> int:
    """Current time in nanoseconds, strictly increasing within the process."""
    global _last_now_ns
    with _clock_lock:
        now = time.time_ns()
        if now <= _last_now_ns:
            now = _last_now_ns + 1
        _last_now_ns = now
        return now


def _to_unix_ns(instant: datetime | int) -> int:
    """Convert *instant* to nanoseconds since the Unix epoch.

    Naive datetimes are read as UTC.  Integers are taken as nanoseconds.
    """
    if isinstance(instant, bool) or not isinstance(instant, (datetime, int)):
        raise TypeError(f"timestamp must be a datetime or int nanoseconds, got {instant!r}")
    if isinstance(instant, int):
        if instant < 0:
            raise ClockError(f"timestamp {instant} ns is before the Unix epoch")
        return instant

    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    delta = instant - _EPOCH
    if delta.days < 0:
        raise ClockError(f"timestamp {instant.isoformat()} is before the Unix epoch")
    # Integer arithmetic; going through float seconds would lose nanoseconds.
    seconds = delta.days * 86_400 + delta.seconds
    return seconds * _NS_PER_SECOND + delta.microseconds * 1_000


# ── Validation ────────────────────────────────────────────────────────────────


def _check_no_line_break(text: str, what: str) -> None:
    if "\n" in text or "\r" in text:
        raise LineBreakError(f"{what} must not contain line breaks: {text!r}")


def _check_name(name: object) -> None:
    if not isinstance(name, str) or not name:
        raise InvalidNameError(f"measurement name must be non-empty text, got {name!r}")
    _check_no_line_break(name, "measurement name")


def _checked_fields(fields: Mapping[str, FieldInput]) -> dict[str, FieldValue]:
    checked: dict[str, FieldValue] = {}
    for key, value in fields.items():
        if not isinstance(key, str):
            raise TypeError(f"field key must be str, got {key!r}")
        if not key:
            raise EmptyIdentifierError("field key must not be empty")
        _check_no_line_break(key, "field key")
        field = FieldValue.of(value)
        if isinstance(field.value, str):
            _check_no_line_break(field.value, f"string field {key!r}")
        checked[key] = field
    return checked


def _checked_tags(tags: Mapping[str, str]) -> dict[str, str]:
    checked: dict[str, str] = {}
    for key, value in tags.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError(f"tag keys and values must be str, got {key!r}={value!r}")
        if not key or not value:
            raise EmptyIdentifierError(
                f"tag keys and values must not be empty, got {key!r}={value!r}"
            )
        _check_no_line_break(key, "tag key")
        _check_no_line_break(value, f"tag {key!r}")
        checked[key] = value
    return checked


@dataclass(frozen=True, slots=True)
class Measurement:
    """One immutable InfluxDB point.

    ``fields`` and ``tags`` are stored as read-only mappings in lexicographic
    key order.  Every invariant is checked here, so a ``Measurement`` that
    exists always renders to exactly one valid line.  Prefer
    :meth:`Measurement.builder`, which also defaults the timestamp.

    Raises:
        MissingFieldsError:   *fields* is empty.
        InvalidNameError:     *name* is empty.
        EmptyIdentifierError: a field key, tag key or tag value is empty.
        LineBreakError:       any text contains ``\\n`` or ``\\r``.
        ClockError:           *timestamp_ns* is negative.
    """

    name: str
    fields: Mapping[str, FieldValue]
    tags: Mapping[str, str]
    timestamp_ns: int

    def __post_init__(self) -> None:
        if not self.fields:
            raise MissingFieldsError()
        fields = _checked_fields(self.fields)
        _check_name(self.name)
        tags = _checked_tags(self.tags)
        if isinstance(self.timestamp_ns, bool) or not isinstance(self.timestamp_ns, int):
            raise TypeError(f"timestamp_ns must be int, got {self.timestamp_ns!r}")
        if self.timestamp_ns < 0:
            raise ClockError(f"timestamp {self.timestamp_ns} ns is before the Unix epoch")
        object.__setattr__(self, "fields", MappingProxyType(dict(sorted(fields.items()))))
        object.__setattr__(self, "tags", MappingProxyType(dict(sorted(tags.items()))))

    @staticmethod
    def builder(name: str) -> MeasurementBuilder:
        return MeasurementBuilder(name)

    def to_line(self) -> str:
        """Render the measurement as a single line (no trailing newline)."""
        tag_str = "".join(
            f",{escape_identifier(key)}={escape_identifier(value)}"
            for key, value in self.tags.items()
        )
        field_str = ",".join(
            f"{escape_identifier(key)}={value.render()}"
            for key, value in self.fields.items()
        )
        return f"{escape_measurement_name(self.name)}{tag_str} {field_str} {self.timestamp_ns}"

    def __str__(self) -> str:
        return self.to_line()

    def __hash__(self) -> int:
        return hash(
            (
                self.name,
                tuple(self.fields.items()),
                tuple(self.tags.items()),
                self.timestamp_ns,
            )
        )


class MeasurementBuilder:
    """Single-use builder for :class:`Measurement`.

    ``fields``, ``tags`` and ``timestamp`` may be called in any order and any
    number of times; each call replaces the previous value.  ``build()``
    validates and ends the builder's life, whether it succeeds or not.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._fields: dict[str, FieldValue] | None = None
        self._tags: dict[str, str] | None = None
        self._timestamp_ns: int | None = None
        self._consumed = False

    def _ensure_open(self) -> None:
        if self._consumed:
            raise BuilderConsumedError(
                f"builder for measurement {self._name!r} has already been built"
            )

    def fields(self, fields: Mapping[str, FieldInput]) -> MeasurementBuilder:
        """Replace the field set.

        Values may be :class:`FieldValue` instances or plain ``bool``, ``int``,
        ``float`` or ``str`` values (see :meth:`FieldValue.of`).  On error the
        previous field set is kept.

        Raises:
            EmptyIdentifierError: a field key is empty.
            LineBreakError:       a key or string value contains a line break.
        """
        self._ensure_open()
        self._fields = _checked_fields(fields)
        return self

    def tags(self, tags: Mapping[str, str]) -> MeasurementBuilder:
        """Replace the tag set.

        Raises:
            EmptyIdentifierError: a tag key or value is empty.
            LineBreakError:       a tag key or value contains a line break.
        """
        self._ensure_open()
        self._tags = _checked_tags(tags)
        return self

    def timestamp(self, instant: datetime | int) -> MeasurementBuilder:
        """Set the point in time, as a datetime or integer nanoseconds.

        Raises:
            ClockError: if *instant* is before the Unix epoch.
        """
        self._ensure_open()
        self._timestamp_ns = _to_unix_ns(instant)
        return self

    def build(self) -> Measurement:
        """Validate and return the immutable measurement.

        Raises:
            MissingFieldsError: no fields, or an empty field map, was set.
            InvalidNameError:   the measurement name is empty.
            LineBreakError:     the measurement name contains a line break.
            BuilderConsumedError: ``build()`` was already called.
        """
        self._ensure_open()
        self._consumed = True

        if not self._fields:
            raise MissingFieldsError()
        _check_name(self._name)

        timestamp_ns = self._timestamp_ns if self._timestamp_ns is not None else _now_ns()
        return Measurement(
            name=self._name,
            fields=self._fields,
            tags=self._tags or {},
            timestamp_ns=timestamp_ns,
        )


def build_measurement(
    name: str,
    fields: Mapping[str, FieldInput],
    tags: Mapping[str, str] | None = None,
    timestamp: datetime | int | None = None,
) -> Measurement:
    """Build a measurement in one call.

    >>> build_measurement("cpu", {"load": 0.5}, {"host": "a"}, 0).to_line()
    'cpu,host=a load=0.5 0'
    """
    builder = MeasurementBuilder(name).fields(fields)
    if tags is not None:
        builder.tags(tags)
    if timestamp is not None:
        builder.timestamp(timestamp)
    return builder.build()
