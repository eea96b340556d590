"""Typed field values and their line-protocol rendering."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass

from outflux.errors import InvalidFieldValueError
from outflux.escaping import escape_string_field

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_UINT64_MAX = 2**64 - 1


class FieldKind(str, enum.Enum):
    FLOAT = "float"
    INTEGER = "integer"
    UINTEGER = "uinteger"
    STRING = "string"
    BOOLEAN = "boolean"


@dataclass(frozen=True, slots=True)
class FieldValue:
    """A single field value tagged with its line-protocol type.

    The kind is explicit so that e.g. ``100`` can be written as an unsigned
    integer (``100u``) rather than the signed default.  Values are checked on
    construction; ``render()`` never fails.

    >>> FieldValue(FieldKind.UINTEGER, 100).render()
    '100u'
    """

    kind: FieldKind
    value: bool | int | float | str

    def __post_init__(self) -> None:
        try:
            kind = FieldKind(self.kind)
        except ValueError as exc:
            raise InvalidFieldValueError(f"unknown field kind {self.kind!r}") from exc
        object.__setattr__(self, "kind", kind)
        value = self.value
        if kind is FieldKind.FLOAT:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidFieldValueError(f"float field requires a number, got {value!r}")
            try:
                value = float(value)
            except OverflowError as exc:
                raise InvalidFieldValueError(f"float field out of range: {value!r}") from exc
            if not math.isfinite(value):
                raise InvalidFieldValueError(f"float field must be finite, got {value!r}")
            object.__setattr__(self, "value", value)
        elif kind is FieldKind.INTEGER:
            _check_int(value, _INT64_MIN, _INT64_MAX, "integer")
        elif kind is FieldKind.UINTEGER:
            _check_int(value, 0, _UINT64_MAX, "unsigned integer")
        elif kind is FieldKind.STRING:
            if not isinstance(value, str):
                raise InvalidFieldValueError(f"string field requires str, got {value!r}")
        elif kind is FieldKind.BOOLEAN:
            if not isinstance(value, bool):
                raise InvalidFieldValueError(f"boolean field requires bool, got {value!r}")

    @classmethod
    def of(cls, value: FieldInput) -> FieldValue:
        """Wrap a plain Python value, picking the kind from its type.

        ``bool`` maps to BOOLEAN, ``int`` to INTEGER, ``float`` to FLOAT and
        ``str`` to STRING.  Use :meth:`uinteger` for unsigned integers.
        """
        if isinstance(value, FieldValue):
            return value
        # bool first: it is a subclass of int
        if isinstance(value, bool):
            return cls(FieldKind.BOOLEAN, value)
        if isinstance(value, int):
            return cls(FieldKind.INTEGER, value)
        if isinstance(value, float):
            return cls(FieldKind.FLOAT, value)
        if isinstance(value, str):
            return cls(FieldKind.STRING, value)
        raise InvalidFieldValueError(
            f"cannot use {type(value).__name__} as a field value: {value!r}"
        )

    # ── Per-kind constructors ────────────────────────────────────────────────

    @classmethod
    def integer(cls, value: int) -> FieldValue:
        """Signed 64-bit integer, rendered as ``<n>i``."""
        return cls(FieldKind.INTEGER, value)

    @classmethod
    def uinteger(cls, value: int) -> FieldValue:
        """Unsigned 64-bit integer, rendered as ``<n>u``."""
        return cls(FieldKind.UINTEGER, value)

    @classmethod
    def string(cls, value: str) -> FieldValue:
        return cls(FieldKind.STRING, value)

    @classmethod
    def boolean(cls, value: bool) -> FieldValue:
        return cls(FieldKind.BOOLEAN, value)

    # Shadows the builtin in the class namespace only; method bodies still see it.
    @classmethod
    def float(cls, value: float | int) -> FieldValue:
        """Double-precision float, rendered without a suffix."""
        return cls(FieldKind.FLOAT, value)

    def render(self) -> str:
        """Return the value as it appears after ``key=`` in a line."""
        kind = self.kind
        if kind is FieldKind.FLOAT:
            return repr(self.value)
        if kind is FieldKind.INTEGER:
            return f"{self.value}i"
        if kind is FieldKind.UINTEGER:
            return f"{self.value}u"
        if kind is FieldKind.BOOLEAN:
            return "t" if self.value else "f"
        return f'"{escape_string_field(self.value)}"'  # type: ignore[arg-type]

    def __str__(self) -> str:
        return self.render()


FieldInput = FieldValue | bool | int | float | str


def _check_int(value: object, low: int, high: int, label: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFieldValueError(f"{label} field requires int, got {value!r}")
    if not low <= value <= high:
        raise InvalidFieldValueError(f"{label} field out of range: {value}")
