"""Request tokens for discarding stale results.

Every outstanding request is tagged with the token returned by ``issue``.
When its result arrives, the caller checks ``is_current``; anything issued
later for the same key makes the earlier result stale. There is no real
cancellation: a stale request still runs to completion, its result is just
never applied.
"""

from __future__ import annotations

from collections.abc import Hashable


class RequestGate:
    """Monotonic per-key token counters. In-memory only, cannot fail."""

    def __init__(self) -> None:
        self._latest: dict[Hashable, int] = {}

    def issue(self, key: Hashable) -> int:
        token = self._latest.get(key, 0) + 1
        self._latest[key] = token
        return token

    def is_current(self, key: Hashable, token: int) -> bool:
        return self._latest.get(key, 0) == token

    def latest(self, key: Hashable) -> int:
        return self._latest.get(key, 0)

    def invalidate(self, key: Hashable) -> None:
        """Make every outstanding token for ``key`` stale."""
        self.issue(key)
