"""Pull requests against the bridge's ``/latest`` route."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from urllib.parse import quote

import aiohttp

from pyfeedbridge._constants import API_PREFIX
from pyfeedbridge.exceptions import FeedBridgeTransportError
from pyfeedbridge.ingestion.pull import reading_from_pull_body
from pyfeedbridge.state.events import Reading

_logger = logging.getLogger(__name__)


def latest_url(base_url: str, feed_key: str) -> str:
    return f"{base_url.rstrip('/')}{API_PREFIX}/feed/{quote(feed_key, safe='')}/latest"


async def fetch_latest_reading(
    http: aiohttp.ClientSession,
    base_url: str,
    feed_key: str,
    *,
    timeout: float,
) -> Reading | None:
    """Fetch the most recent reading of one feed.

    Returns ``None`` for non-2xx responses and empty feeds.

    Raises
    ------
    FeedBridgeTransportError
        On network failure, timeout or a body that is not JSON.
    """
    url = latest_url(base_url, feed_key)
    endpoint = f"{API_PREFIX}/feed/{feed_key}/latest"
    try:
        async with http.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as resp:
            status = resp.status
            text = await resp.text()
    except aiohttp.ClientError as exc:
        raise FeedBridgeTransportError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
    except TimeoutError as exc:
        raise FeedBridgeTransportError(f"Request to {endpoint} timed out", endpoint=endpoint) from exc

    if not 200 <= status < 300:
        _logger.warning("Poll failed for %s: HTTP %s", feed_key, status)
        return None

    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise FeedBridgeTransportError(
            f"Invalid JSON from {endpoint}: {text[:200]}",
            status_code=status,
            endpoint=endpoint,
        ) from exc
    return reading_from_pull_body(body, received_at=datetime.now(UTC))
