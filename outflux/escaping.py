"""Escaping rules for InfluxDB line protocol.

Reference:
  https://docs.influxdata.com/influxdb/v2/reference/syntax/line-protocol/#special-characters

Two independent grammars are needed:

* identifiers (tag keys, tag values, field keys) escape ``,`` ``=`` and space;
  measurement names escape ``,`` and space only;
* string field values escape ``\\`` and ``"``.

Each rule is a single character-class substitution, so inserted backslashes
are never re-examined.
"""

from __future__ import annotations

import re

_IDENTIFIER_SPECIAL_RE = re.compile(r"[,= ]")
_NAME_SPECIAL_RE = re.compile(r"[, ]")
_STRING_FIELD_SPECIAL_RE = re.compile(r'[\\"]')


def _backslash(match: re.Match[str]) -> str:
    return "\\" + match.group(0)


def escape_identifier(value: str) -> str:
    """Escape a tag key, tag value or field key."""
    return _IDENTIFIER_SPECIAL_RE.sub(_backslash, value)


def escape_measurement_name(value: str) -> str:
    """Escape a measurement name.

    ``=`` is left as is: it is unambiguous in the name position and parsers
    expect it unescaped there.
    """
    return _NAME_SPECIAL_RE.sub(_backslash, value)


def escape_string_field(value: str) -> str:
    """Escape the contents of a string field value (without the quotes)."""
    return _STRING_FIELD_SPECIAL_RE.sub(_backslash, value)
