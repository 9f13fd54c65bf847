"""Custom exception hierarchy for pyfeedbridge."""

from __future__ import annotations


class FeedBridgeError(Exception):
    """Base exception for all pyfeedbridge errors."""


class FeedBridgeConfigError(FeedBridgeError):
    """Invalid or missing configuration."""


class FeedBridgeTransportError(FeedBridgeError):
    """HTTP-level failure (network error, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class FeedBridgeMessageError(FeedBridgeError):
    """A push message could not be decoded into a feed update."""

    def __init__(self, message: str, *, payload: str = "") -> None:
        self.payload = payload
        super().__init__(message)
