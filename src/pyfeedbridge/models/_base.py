"""Base model for derived sensor samples."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class SampleModel(BaseModel):
    """Immutable base for every sample derived from a reading.

    Samples are pure functions of the channel state and are never persisted
    on their own, so they are frozen and reject unknown fields.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")
