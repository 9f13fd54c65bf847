"""Pull ingestion.

Turns the body of a ``/latest`` pull response into a single reading.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pyfeedbridge.ingestion.normalize import parse_timestamp
from pyfeedbridge.state.events import Reading


def reading_from_pull_body(body: Any, *, received_at: datetime | None = None) -> Reading | None:
    """Most recent reading of a pull response, or ``None`` when empty.

    The broker returns newest-first arrays of ``{value, created_at, ...}``.
    """
    if not isinstance(body, list) or not body:
        return None
    item = body[0]
    if not isinstance(item, dict):
        return None
    value = item.get("value")
    if value is None or isinstance(value, (dict, list)):
        return None
    observed_at = parse_timestamp(item.get("created_at")) or received_at or datetime.now(UTC)
    return Reading(value=value, observed_at=observed_at)
