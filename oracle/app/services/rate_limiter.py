"""Per-user sliding window rate limiter.

State lives in process memory only: restarting the process, or running
several instances, resets the windows.
"""

import asyncio
import time
from collections import OrderedDict, deque
from typing import Deque, Optional

from oracle.app.core.logging import get_logger

logger = get_logger(__name__)


class SlidingWindowRateLimiter:
    """Sliding window limiter keyed by user.

    Every check records the request timestamp, including checks that end
    up limited, so a client hammering through a limited period keeps its
    window full instead of letting it drain early.

    Memory bounds:
    - timestamps older than the window are pruned on every access
    - at most `max_users` users are tracked; the least recently seen
      20% are evicted when the limit is exceeded
    """

    def __init__(
        self,
        limit: int = 30,
        window_seconds: float = 60,
        max_users: int = 10000,
    ):
        """Initialize rate limiter.

        Args:
            limit: Requests allowed per window before limiting
            window_seconds: Length of the trailing window in seconds
            max_users: Maximum number of users tracked at once
        """
        self.limit = limit
        self.window_seconds = window_seconds
        self._max_users = max_users
        self._windows: "OrderedDict[str, Deque[float]]" = OrderedDict()
        self._lock = asyncio.Lock()

    def _prune(self, window: Deque[float], now: float) -> None:
        while window and now - window[0] > self.window_seconds:
            window.popleft()

    def _enforce_user_limit(self) -> None:
        if len(self._windows) > self._max_users:
            for _ in range(max(1, int(self._max_users * 0.2))):
                self._windows.popitem(last=False)

    async def check_and_record(self, user_id: str, now: Optional[float] = None) -> bool:
        """Record a request and report whether it exceeds the limit.

        Args:
            user_id: Key to rate limit on
            now: Timestamp in seconds; defaults to the monotonic clock

        Returns:
            True if the request is limited
        """
        if now is None:
            now = time.monotonic()

        async with self._lock:
            window = self._windows.get(user_id)
            if window is None:
                window = deque()
                self._windows[user_id] = window
                self._enforce_user_limit()
            else:
                self._windows.move_to_end(user_id)

            self._prune(window, now)
            limited = len(window) >= self.limit
            window.append(now)

        if limited:
            logger.info(
                f"Rate limit hit: {len(window)} requests in {self.window_seconds}s",
                extra={"user_address": user_id},
            )
        return limited

    def window_size(self, user_id: str) -> int:
        """Number of timestamps currently held for a user (not pruned)."""
        window = self._windows.get(user_id)
        return len(window) if window is not None else 0

    def __len__(self) -> int:
        return len(self._windows)

    async def cleanup(self, now: Optional[float] = None) -> int:
        """Drop users whose whole window has expired.

        Returns:
            Number of users removed
        """
        if now is None:
            now = time.monotonic()

        async with self._lock:
            expired = [
                user_id
                for user_id, window in self._windows.items()
                if not window or now - window[-1] > self.window_seconds
            ]
            for user_id in expired:
                del self._windows[user_id]
        return len(expired)
