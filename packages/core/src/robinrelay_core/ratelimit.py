"""Per-user command cooldown.

Advisory throttling, not a correctness guarantee: the check and the record
are not atomic across tasks, so two near-simultaneous commands from the
same user can both pass.
"""

from __future__ import annotations

import time
from typing import Callable


class RateLimiter:
    """Allows one command per user per ``cooldown`` seconds.

    Entries older than ``eviction_factor * cooldown`` are swept at most once
    per that interval, so memory stays bounded by the number of users active
    recently rather than every user ever seen.
    """

    def __init__(
        self,
        cooldown: float = 5.0,
        eviction_factor: int = 12,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cooldown = cooldown
        self._ttl = cooldown * eviction_factor
        self._clock = clock
        self._last: dict[str, float] = {}
        self._last_sweep = clock()

    def remaining(self, user_id: str) -> float:
        """Seconds until ``user_id`` may issue another command (0 when allowed)."""
        last = self._last.get(user_id)
        if last is None:
            return 0.0
        return max(0.0, self.cooldown - (self._clock() - last))

    def allow(self, user_id: str) -> bool:
        """Record and allow the command, or return False if the user is cooling down."""
        now = self._clock()
        self._sweep(now)
        if self.remaining(user_id) > 0:
            return False
        self._last[user_id] = max(now, self._last.get(user_id, now))
        return True

    def __len__(self) -> int:
        return len(self._last)

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self._ttl:
            return
        self._last = {user: ts for user, ts in self._last.items() if now - ts < self._ttl}
        self._last_sweep = now
