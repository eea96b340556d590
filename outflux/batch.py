"""Join measurements into a single write payload."""

from __future__ import annotations

from collections.abc import Iterable

from outflux.measurement import Measurement


def encode_batch(measurements: Iterable[Measurement]) -> str:
    """Render *measurements* one per line, separated by ``\\n``.

    There is no trailing newline.  An empty input gives an empty string; it is
    up to the caller not to send that.
    """
    return "\n".join(m.to_line() for m in measurements)
