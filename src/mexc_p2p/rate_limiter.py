"""
Per-identity sliding-window rate limiting.

Each identity (usually the caller's network address) gets a window that
starts at its first admitted request. Within the window at most
`max_requests` requests are admitted; rejections are not counted and do not
move the window. Records of identities that went quiet are swept so the map
does not grow for the lifetime of the process.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .constants import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_MS
from .exceptions import RateLimitedError

logger = logging.getLogger(__name__)


class AdmitDecision(Enum):
    """Outcome of an admission check."""
    ADMITTED = "admitted"
    REJECTED = "rejected"


@dataclass
class RateWindow:
    """Mutable window state for one identity."""
    window_start: float
    count: int


def _now_ms() -> float:
    return time.monotonic() * 1000


class SlidingWindowRateLimiter:
    """Admits at most `max_requests` per `window_ms` for each identity."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_ms: int = RATE_LIMIT_WINDOW_MS,
        stale_windows: int = 60,
        max_identities: int = 10_000,
        sweep_interval: int = 1000,
    ):
        """
        Initialize the limiter.

        Args:
            max_requests: Cap of admitted requests per window
            window_ms: Window duration in milliseconds
            stale_windows: Records idle for this many windows are swept
            max_identities: Upper bound on tracked identities (oldest evicted)
            sweep_interval: Run a sweep every N admission checks
        """
        if max_requests < 1 or window_ms <= 0:
            raise ValueError("max_requests and window_ms must be positive")

        self.max_requests = max_requests
        self.window_ms = window_ms
        self._stale_after_ms = window_ms * stale_windows
        self._max_identities = max_identities
        self._sweep_interval = sweep_interval
        self._checks_since_sweep = 0
        self._windows: "OrderedDict[str, RateWindow]" = OrderedDict()
        self._lock = threading.Lock()

    def admit(self, identity: str, now: Optional[float] = None) -> AdmitDecision:
        """
        Admit or reject one request for an identity.

        Args:
            identity: Client key (e.g. remote address)
            now: Current time in milliseconds; defaults to a monotonic clock

        Returns:
            AdmitDecision.ADMITTED or AdmitDecision.REJECTED
        """
        if now is None:
            now = _now_ms()

        with self._lock:
            self._checks_since_sweep += 1
            if self._checks_since_sweep >= self._sweep_interval:
                self._sweep_locked(now)

            record = self._windows.get(identity)

            if record is None or now - record.window_start >= self.window_ms:
                self._windows[identity] = RateWindow(window_start=now, count=1)
                self._windows.move_to_end(identity)
                self._enforce_capacity_locked()
                return AdmitDecision.ADMITTED

            self._windows.move_to_end(identity)

            if record.count >= self.max_requests:
                return AdmitDecision.REJECTED

            record.count += 1
            return AdmitDecision.ADMITTED

    def check(self, identity: str, now: Optional[float] = None) -> None:
        """Admit a request or raise RateLimitedError."""
        if self.admit(identity, now) is AdmitDecision.REJECTED:
            logger.warning(f"Rate limit exceeded for {identity}")
            raise RateLimitedError(
                f"Rate limit exceeded. Max {self.max_requests} requests per "
                f"{self.window_ms / 1000:g} second(s).",
                status_code=429,
            )

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop identities whose window expired long ago. Returns the number removed."""
        if now is None:
            now = _now_ms()
        with self._lock:
            return self._sweep_locked(now)

    def _sweep_locked(self, now: float) -> int:
        self._checks_since_sweep = 0
        cutoff = self._stale_after_ms + self.window_ms
        stale = [
            identity for identity, record in self._windows.items()
            if now - record.window_start >= cutoff
        ]
        for identity in stale:
            del self._windows[identity]
        if stale:
            logger.debug(f"Swept {len(stale)} idle rate limit records")
        return len(stale)

    def _enforce_capacity_locked(self) -> None:
        while len(self._windows) > self._max_identities:
            self._windows.popitem(last=False)

    def count_for(self, identity: str) -> int:
        """Requests admitted in the identity's current window (0 if untracked)."""
        with self._lock:
            record = self._windows.get(identity)
            return record.count if record else 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        """Forget every identity."""
        with self._lock:
            self._windows.clear()
            self._checks_since_sweep = 0
