"""Normalized readings.

All ingestion paths (push, initial pull, periodic poll) convert their inputs
into :class:`Reading` objects. Only the state/store layer is allowed to
merge them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReadingSource(StrEnum):
    PUSH = "push"
    INITIAL_PULL = "initial_pull"
    POLL = "poll"


class Reading(BaseModel):
    """One observed value of a feed plus its observation instant."""

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="Raw textual payload, as delivered")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("value is required")
        if isinstance(value, (bool, int, float)):
            return str(value)
        return value

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
