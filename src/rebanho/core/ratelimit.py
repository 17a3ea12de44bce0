"""Fixed-window rate limiter for the generative AI API.

A call is admitted while fewer than ``max_calls`` timestamps fall inside
the last ``window_ms`` milliseconds. Timestamps older than one window are
pruned before every admission check, oldest first.

Usage:
    limiter = RateLimiter(max_calls=15, window_ms=60_000)

    limiter.acquire()               # raises RateLimitExceeded when full
    await limiter.wait_and_acquire()  # sleeps until a slot frees up
"""

import asyncio
import logging
import math
import time
from collections import deque
from collections.abc import Callable
from typing import TypedDict

from rebanho.core.config import settings

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


# =============================================================================
# Exceptions
# =============================================================================


class RateLimitExceeded(Exception):
    """Raised when a call would exceed the configured quota.

    ``reset_in_ms`` is the time until the oldest retained call leaves the
    window, i.e. until the next admission would succeed.
    """

    is_rate_limit_error = True

    def __init__(self, reset_in_ms: float, message: str | None = None):
        self.reset_in_ms = reset_in_ms
        if message is None:
            wait_seconds = math.ceil(reset_in_ms / 1000)
            message = f"Rate limit exceeded. Retry in {wait_seconds}s."
        super().__init__(message)


def is_rate_limit_error(error: object) -> bool:
    """Check whether an error (or error-like payload) is a rate limit error."""
    return isinstance(error, RateLimitExceeded) or bool(getattr(error, "is_rate_limit_error", False))


# =============================================================================
# Result Types
# =============================================================================


class RateLimitStatus(TypedDict):
    """Result of a non-mutating admission check."""

    allowed: bool
    remaining_calls: int
    reset_in_ms: float


class RateLimitStats(TypedDict):
    """Usage statistics for the current window."""

    used: int
    remaining: int
    total: int
    reset_in_ms: float


# =============================================================================
# Limiter
# =============================================================================


class RateLimiter:
    """Admission control over a fixed look-back window."""

    def __init__(
        self,
        max_calls: int = settings.ai_rate_limit_calls,
        window_ms: float = settings.ai_rate_limit_window_ms,
        clock: Callable[[], float] = monotonic_ms,
    ):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")
        self.max_calls = max_calls
        self.window_ms = window_ms
        self._clock = clock
        self._calls: deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.window_ms:
            self._calls.popleft()

    def _reset_in_ms(self, now: float) -> float:
        if not self._calls:
            return 0
        return max(0, self.window_ms - (now - self._calls[0]))

    def check(self) -> RateLimitStatus:
        """Report whether a call would be admitted right now.

        Only expired timestamps are dropped; no call is recorded.
        """
        now = self._clock()
        self._prune(now)
        return RateLimitStatus(
            allowed=len(self._calls) < self.max_calls,
            remaining_calls=max(0, self.max_calls - len(self._calls)),
            reset_in_ms=self._reset_in_ms(now),
        )

    def acquire(self) -> None:
        """Record a call if the window has room.

        Raises:
            RateLimitExceeded: If the window is full. Nothing is recorded.
        """
        now = self._clock()
        self._prune(now)
        if len(self._calls) >= self.max_calls:
            raise RateLimitExceeded(self._reset_in_ms(now))
        self._calls.append(now)

    async def wait_and_acquire(self, max_wait_ms: float | None = None) -> None:
        """Sleep until a call is admitted, then record it.

        Other tasks keep running while this one sleeps. The window is
        re-evaluated after every sleep since another task may have taken
        the freed slot.

        Args:
            max_wait_ms: Give up after this long. None waits indefinitely.

        Raises:
            RateLimitExceeded: If ``max_wait_ms`` elapses first.
        """
        deadline = None if max_wait_ms is None else self._clock() + max_wait_ms

        while True:
            try:
                self.acquire()
                return
            except RateLimitExceeded as e:
                delay_ms = e.reset_in_ms
                if deadline is not None:
                    remaining = deadline - self._clock()
                    if remaining < delay_ms:
                        raise
                logger.debug("Rate limit reached, waiting %.0f ms", delay_ms)
            await asyncio.sleep(max(delay_ms, 1) / 1000)

    def get_stats(self) -> RateLimitStats:
        """Usage of the current window."""
        now = self._clock()
        self._prune(now)
        return RateLimitStats(
            used=len(self._calls),
            remaining=max(0, self.max_calls - len(self._calls)),
            total=self.max_calls,
            reset_in_ms=self._reset_in_ms(now),
        )

    def reset(self) -> None:
        """Forget every recorded call."""
        self._calls.clear()


def create_rate_limiter(max_calls: int, window_ms: float) -> RateLimiter:
    """Build a limiter for another quota-constrained API."""
    return RateLimiter(max_calls, window_ms)


# Shared limiter for the generative AI API
ai_rate_limiter = RateLimiter()
