"""Log-safe views of upstream requests and responses.

Every REST call carries the broker account key in a header, and history
responses can hold hundreds of readings. The helpers here mask the key and
shorten bodies before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_SECRET_NAMES: frozenset[str] = frozenset(
    {
        "x-aio-key",
        "aio_key",
        "password",
        "token",
        "authorization",
        "cookie",
    }
)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy of *headers* with credential values masked."""
    return {name: REDACTED if name.lower() in _SECRET_NAMES else value for name, value in headers.items()}


def summarize_body(body: Any, *, max_items: int = 3, max_string: int = 128, _depth: int = 0) -> Any:
    """Shortened, credential-free copy of a decoded JSON body.

    Lists keep their first *max_items* entries plus a ``"+N more"`` marker;
    long strings are cut at *max_string* characters.
    """
    if _depth > 10:
        return "<max-depth>"

    if isinstance(body, str):
        if len(body) > max_string:
            return f"{body[:max_string]}…<truncated>"
        return body

    if isinstance(body, bytes):
        return f"<bytes:{len(body)}b>"

    if isinstance(body, Mapping):
        return {
            str(k): REDACTED
            if str(k).lower() in _SECRET_NAMES
            else summarize_body(v, max_items=max_items, max_string=max_string, _depth=_depth + 1)
            for k, v in body.items()
        }

    if isinstance(body, list):
        head = [
            summarize_body(item, max_items=max_items, max_string=max_string, _depth=_depth + 1)
            for item in body[:max_items]
        ]
        if len(body) > max_items:
            head.append(f"+{len(body) - max_items} more")
        return head

    return body
