from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable

from formrelay.services.ttl_store import TTLStore


WINDOW_S = 60.0
# Fixed hint returned with every 429.
RETRY_AFTER_S = 60
SWEEP_EVERY = 1024


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after_s: int = RETRY_AFTER_S


class SlidingWindowRateLimiter:
    """Per-address request budget over a sliding one-minute window."""

    def __init__(
        self,
        store: TTLStore[tuple[float, ...]],
        *,
        limit: int,
        window_s: float = WINDOW_S,
        time_provider: Callable[[], float] | None = None,
    ) -> None:
        self.store = store
        self.limit = max(1, int(limit))
        self.window_s = window_s
        # Allow injecting time for deterministic tests.
        self._time_provider = time_provider or time.monotonic
        self._hits = 0

    def hit(self, client_key: str) -> RateLimitDecision:
        now = self._time_provider()
        decision: list[RateLimitDecision] = []

        def _apply(current: tuple[float, ...] | None) -> tuple[tuple[float, ...], float]:
            # Runs under the store lock: prune, check and append as one step.
            recent = tuple(ts for ts in (current or ()) if now - ts < self.window_s)
            if len(recent) >= self.limit:
                decision.append(RateLimitDecision(allowed=False, remaining=0))
                return recent, self.window_s
            updated = recent + (now,)
            decision.append(RateLimitDecision(allowed=True, remaining=self.limit - len(updated)))
            return updated, self.window_s

        self.store.update(client_key, _apply)
        self._hits += 1
        if self._hits % SWEEP_EVERY == 0:
            # Lazy eviction only covers keys that come back; drop idle clients periodically.
            self.sweep()
        return decision[0]

    def sweep(self) -> int:
        return self.store.purge_expired()
