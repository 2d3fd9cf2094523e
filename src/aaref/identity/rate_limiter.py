"""Per-fingerprint sliding-window rate limiter.

Policy (intake_params.json → rate_limit):
- Window: trailing window_seconds (3600). Entries at or beyond the
  window age are pruned on every read.
- count >= hard_count (5): blocked, reason "rate_hard".
- warn_count <= count < hard_count (3-4): allowed, reason "rate_warn"
  (advisory only).
- Otherwise allowed with no reason.

A timestamp is recorded only after a submission has been committed to the
corpus. Check-then-record for one fingerprint must be linearised, so the
pipeline runs both inside hold(fingerprint). Different fingerprints never
contend.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Iterator, Optional

from aaref.policy.resolver import PolicyResolver


logger = logging.getLogger(__name__)

RATE_HARD = "rate_hard"
RATE_WARN = "rate_warn"

HARD_MESSAGE = "Too many submissions. Try again in an hour."
WARN_MESSAGE = "Multiple submissions detected. Please only submit your own salary."


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate-limit check for one fingerprint."""
    blocked: bool
    reason: Optional[str]
    message: Optional[str]
    recent_count: int


class SubmissionRateLimiter:
    """Tracks recent submission timestamps per fingerprint.

    Owned by the admission pipeline; there is no module-level state.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._policy = resolver.rate_limit_policy()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._windows: dict[str, deque[datetime]] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self._policy.window_seconds)

    @contextmanager
    def hold(self, fingerprint: str) -> Iterator[None]:
        """Serialise all window operations for one fingerprint."""
        lock = self._lock_for(fingerprint)
        with lock:
            yield

    def check(
        self, fingerprint: str, now: Optional[datetime] = None,
    ) -> RateLimitDecision:
        """Prune the window and classify the fingerprint's recent volume."""
        with self.hold(fingerprint):
            count = self._prune(fingerprint, now or self._clock())

        if count >= self._policy.hard_count:
            logger.warning(
                "Rate limit hard block for %s (%d in window)", fingerprint, count,
            )
            return RateLimitDecision(
                blocked=True, reason=RATE_HARD, message=HARD_MESSAGE,
                recent_count=count,
            )
        if count >= self._policy.warn_count:
            logger.warning(
                "Rate limit advisory for %s (%d in window)", fingerprint, count,
            )
            return RateLimitDecision(
                blocked=False, reason=RATE_WARN, message=WARN_MESSAGE,
                recent_count=count,
            )
        return RateLimitDecision(
            blocked=False, reason=None, message=None, recent_count=count,
        )

    def record(self, fingerprint: str, now: Optional[datetime] = None) -> None:
        """Append a committed submission to the fingerprint's window."""
        ts = now or self._clock()
        with self.hold(fingerprint):
            self._windows.setdefault(fingerprint, deque()).append(ts)
            self._prune(fingerprint, ts)

    def recent_count(
        self, fingerprint: str, now: Optional[datetime] = None,
    ) -> int:
        with self.hold(fingerprint):
            return self._prune(fingerprint, now or self._clock())

    def restore(self, entries: Iterable[tuple[str, datetime]]) -> int:
        """Rebuild windows from persisted (fingerprint, timestamp) pairs.

        Used on start-up so limits survive process restarts. Entries
        already outside the window are dropped. Returns entries kept.
        """
        now = self._clock()
        kept = 0
        for fingerprint, ts in sorted(entries, key=lambda e: e[1]):
            if now - ts >= self.window:
                continue
            with self.hold(fingerprint):
                self._windows.setdefault(fingerprint, deque()).append(ts)
            kept += 1
        return kept

    def _lock_for(self, fingerprint: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(fingerprint)
            if lock is None:
                lock = threading.RLock()
                self._locks[fingerprint] = lock
            return lock

    def _prune(self, fingerprint: str, now: datetime) -> int:
        """Drop entries at least one window old. Caller holds the lock."""
        window = self._windows.get(fingerprint)
        if not window:
            return 0
        while window and now - window[0] >= self.window:
            window.popleft()
        return len(window)
