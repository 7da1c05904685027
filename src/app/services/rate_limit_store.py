from abc import ABC, abstractmethod
from typing import Tuple


class RateLimitStoreUnavailable(Exception):
    """The backing store could not answer; callers treat the request as limited"""


class IRateLimitStore(ABC):
    """
    Shared counter store behind RateLimiter and BruteForceGuard.

    Implementations must make each call atomic per key; unrelated keys must
    not contend on a single lock.
    """

    @abstractmethod
    async def hit_fixed_window(
        self, key: str, window_seconds: float, max_requests: int, now: float
    ) -> Tuple[bool, int, float]:
        """
        Count one request in the key's current fixed window.

        A window starts on the first request (count=1, reset_at=now+window)
        and is discarded once now > reset_at. When count has reached
        max_requests the request is rejected without incrementing.

        Returns (allowed, count, reset_at).
        """
        pass

    @abstractmethod
    async def hit_rolling_window(
        self, key: str, window_seconds: float, max_attempts: int, now: float
    ) -> Tuple[bool, int, float]:
        """
        Record one attempt in a rolling window of timestamps.

        Attempts older than now - window are forgotten. When max_attempts are
        already inside the window the attempt is flagged and not recorded.

        Returns (allowed, attempts_in_window, oldest_attempt_at).
        """
        pass

    @abstractmethod
    async def prune(self, now: float) -> int:
        """Drop windows that can no longer affect a decision. Returns keys removed."""
        pass
