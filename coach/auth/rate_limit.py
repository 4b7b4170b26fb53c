from __future__ import annotations

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple


class LoginRateLimiter:
    """
    Failed-login limiter for the local username/password path.

    Counts failures per username inside a sliding window; a successful login clears
    the username's history. Usernames with no failures in the window hold no entry.
    """

    def __init__(self, max_failures: int = 5, window_seconds: int = 300, *, clock: Callable[[], float] = time.monotonic):
        self._failures: Dict[str, Deque[float]] = {}
        self._max = max_failures
        self._window = float(window_seconds)
        self._clock = clock
        self._lock = threading.Lock()

    def _trim(self, username: str, now: float) -> int:
        q = self._failures.get(username)
        if q is None:
            return 0
        while q and now - q[0] >= self._window:
            q.popleft()
        if not q:
            del self._failures[username]
        return len(q)

    def allowed(self, username: str) -> Tuple[bool, int]:
        """Return (is_allowed, attempts_remaining) without recording anything."""
        with self._lock:
            remaining = max(0, self._max - self._trim(username, self._clock()))
            return remaining > 0, remaining

    def record_failure(self, username: str) -> int:
        """Record a failed attempt; returns attempts remaining."""
        with self._lock:
            now = self._clock()
            self._trim(username, now)
            q = self._failures.setdefault(username, deque())
            q.append(now)
            return max(0, self._max - len(q))

    def reset(self, username: str) -> None:
        with self._lock:
            self._failures.pop(username, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._failures)
