"""Normalization helpers.

Centralizes defensive number parsing shared by the payload parsers and the
ingestion paths.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, datetime
from typing import Any

_TOKEN_SPLIT = re.compile(r"[,\s]+")


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float, ``None`` otherwise."""
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return math.floor(value + 0.5)


def split_tokens(text: str) -> list[str]:
    """Split on commas and whitespace, dropping empty tokens."""
    return [token for token in _TOKEN_SPLIT.split(text.strip()) if token]


def parse_number_list(text: str) -> list[float] | None:
    """Parse a comma/whitespace separated list where every token is a number.

    Returns ``None`` when any token is not a finite number or the text is
    empty.
    """
    tokens = split_tokens(text)
    if not tokens:
        return None
    numbers: list[float] = []
    for token in tokens:
        number = safe_float(token)
        if number is None:
            return None
        numbers.append(number)
    return numbers


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 instant into an aware UTC datetime.

    Accepts a trailing ``Z``. Naive values are taken as UTC. Returns
    ``None`` for missing or unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except (ValueError, OverflowError):
        # Offset pushes the instant outside the datetime range.
        return None
