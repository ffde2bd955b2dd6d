"""
In-Memory Adapter for Rate Limiting.

Implements the RateLimitStorePort with a process-local dictionary.
Suitable for single-instance deployments and tests.
"""

import logging
import threading
import time
from typing import Callable, Optional

from opportunity_explorer.domain.models import RateLimitCounter
from opportunity_explorer.domain.policies import RateLimitPolicy
from opportunity_explorer.interfaces.rate_limiter import RateLimitStorePort

logger = logging.getLogger(__name__)


class InMemoryRateLimitStore(RateLimitStorePort):
    """
    Fixed-window rate limit counters held in a dictionary.

    Every read-modify-write happens under one lock, so the store blocks at
    exactly ``policy.requests`` even when requests are served from several
    threads. Expired counters are swept at most once per sweep interval.
    """

    def __init__(
        self,
        name: str = "ratelimit",
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_seconds: float = 60.0,
    ):
        """
        Initialize the in-memory store.

        Args:
            name: Label used in log messages (e.g. "ip" or "user")
            clock: Monotonic time source in seconds
            sweep_interval_seconds: Minimum delay between expiry sweeps
        """
        self.name = name
        self._clock = clock
        self._sweep_interval = sweep_interval_seconds
        self._counters: dict[str, RateLimitCounter] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._counters)

    async def check(self, subject_key: str, policy: RateLimitPolicy) -> bool:
        key = self.counter_key(subject_key, policy)

        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)

            counter = self._counters.get(key)
            if counter is None or now > counter.reset_at:
                self._counters[key] = RateLimitCounter(
                    count=1,
                    reset_at=now + policy.window_seconds,
                )
                return False

            if counter.count >= policy.requests:
                logger.debug(
                    "[%s] blocked key=%s count=%d limit=%d",
                    self.name, key, counter.count, policy.requests,
                )
                return True

            counter.count += 1
            return False

    async def get_counter(
        self,
        subject_key: str,
        policy: RateLimitPolicy,
    ) -> Optional[RateLimitCounter]:
        key = self.counter_key(subject_key, policy)
        with self._lock:
            counter = self._counters.get(key)
            return counter.model_copy() if counter else None

    async def reset(self, subject_key: Optional[str] = None) -> None:
        with self._lock:
            if subject_key is None:
                self._counters.clear()
                return
            prefix = f"{subject_key}:"
            for key in [k for k in self._counters if k.startswith(prefix)]:
                del self._counters[key]

    def sweep_expired(self) -> int:
        """Remove counters whose window has ended. Returns the number removed."""
        with self._lock:
            return self._sweep(self._clock())

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self._sweep_interval:
            self._sweep(now)

    def _sweep(self, now: float) -> int:
        expired = [key for key, counter in self._counters.items() if now > counter.reset_at]
        for key in expired:
            del self._counters[key]
        self._last_sweep = now
        if expired:
            logger.debug("[%s] swept %d expired counters", self.name, len(expired))
        return len(expired)
