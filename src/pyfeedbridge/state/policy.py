"""Deterministic reading acceptance policy.

This module intentionally contains *no* payload parsing. The ingestion
boundary is responsible for producing :class:`Reading` objects with parsed,
timezone-aware timestamps.
"""

from __future__ import annotations

from pyfeedbridge.state.events import Reading


def should_accept_reading(stored: Reading | None, candidate: Reading) -> bool:
    """Decide whether *candidate* replaces the *stored* reading of a channel.

    Policy:
    - Nothing stored yet: accept.
    - Candidate observed strictly later: accept.
    - Candidate value differs (as text): accept, even when its timestamp is
      equal or older. Devices resend readings with stale or synthesized
      timestamps, so a new value wins over clock order.
    - Otherwise reject.

    The decision depends only on the two readings, never on which source
    delivered them.
    """
    if stored is None:
        return True
    if candidate.observed_at > stored.observed_at:
        return True
    return candidate.value != stored.value
