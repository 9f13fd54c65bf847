"""Push-channel ingestion.

Decodes the JSON envelope the bridge broadcasts over the WebSocket into a
``(feed, Reading)`` pair.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pyfeedbridge.exceptions import FeedBridgeMessageError
from pyfeedbridge.ingestion.normalize import parse_timestamp
from pyfeedbridge.state.events import Reading

_logger = logging.getLogger(__name__)


class FeedEvent(BaseModel):
    """Push envelope: one feed update as sent to viewers."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    feed: str = Field(..., min_length=1)
    value: str
    created_at: str | None = None

    @field_validator("feed", mode="before")
    @classmethod
    def _strip_feed(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if isinstance(value, (bool, int, float)):
            return str(value)
        return value

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def reading_from_event(event: FeedEvent, *, received_at: datetime | None = None) -> Reading:
    """Build a reading, stamping receipt time when ``created_at`` is absent."""
    observed_at = parse_timestamp(event.created_at)
    if observed_at is None:
        if event.created_at:
            _logger.debug("Unparseable created_at %r on %s, using receipt time", event.created_at, event.feed)
        observed_at = received_at or datetime.now(UTC)
    return Reading(value=event.value, observed_at=observed_at)


def parse_push_message(text: str | bytes, *, received_at: datetime | None = None) -> tuple[str, Reading]:
    """Decode one push frame.

    Raises
    ------
    FeedBridgeMessageError
        When the frame is not JSON or does not match the envelope.
    """
    raw = text.decode("utf-8", errors="replace") if isinstance(text, bytes) else text
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise FeedBridgeMessageError(f"Push frame is not JSON: {raw[:64]!r}", payload=raw) from exc
    if not isinstance(payload, dict):
        raise FeedBridgeMessageError("Push frame is not a JSON object", payload=raw)
    try:
        event = FeedEvent.model_validate(payload)
    except ValidationError as exc:
        raise FeedBridgeMessageError(f"Push frame does not match envelope: {exc}", payload=raw) from exc
    return event.feed, reading_from_event(event, received_at=received_at)
