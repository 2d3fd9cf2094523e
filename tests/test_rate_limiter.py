"""Tests for the submission rate limiter — proves window and threshold rules."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from pathlib import Path

from aaref.identity.rate_limiter import (
    HARD_MESSAGE,
    RATE_HARD,
    RATE_WARN,
    SubmissionRateLimiter,
)
from aaref.policy.resolver import PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def limiter(resolver: PolicyResolver) -> SubmissionRateLimiter:
    return SubmissionRateLimiter(resolver, clock=lambda: T0)


def _fill(limiter: SubmissionRateLimiter, fp: str, n: int, start: datetime = T0) -> None:
    for i in range(n):
        limiter.record(fp, now=start + timedelta(seconds=i))


class TestThresholds:
    def test_fresh_fingerprint_allowed(self, limiter: SubmissionRateLimiter) -> None:
        decision = limiter.check("fp-a", now=T0)
        assert not decision.blocked
        assert decision.reason is None
        assert decision.recent_count == 0

    def test_two_recent_no_advisory(self, limiter: SubmissionRateLimiter) -> None:
        _fill(limiter, "fp-a", 2)
        assert limiter.check("fp-a", now=T0 + timedelta(minutes=1)).reason is None

    @pytest.mark.parametrize("count", [3, 4])
    def test_warn_band(self, limiter: SubmissionRateLimiter, count: int) -> None:
        _fill(limiter, "fp-a", count)
        decision = limiter.check("fp-a", now=T0 + timedelta(minutes=1))
        assert not decision.blocked
        assert decision.reason == RATE_WARN

    def test_hard_block_at_five(self, limiter: SubmissionRateLimiter) -> None:
        _fill(limiter, "fp-a", 5)
        decision = limiter.check("fp-a", now=T0 + timedelta(minutes=1))
        assert decision.blocked
        assert decision.reason == RATE_HARD
        assert decision.message == HARD_MESSAGE

    def test_fingerprints_are_independent(self, limiter: SubmissionRateLimiter) -> None:
        _fill(limiter, "fp-a", 5)
        assert not limiter.check("fp-b", now=T0).blocked


class TestWindow:
    def test_entries_expire_after_window(self, limiter: SubmissionRateLimiter) -> None:
        _fill(limiter, "fp-a", 5)
        later = T0 + timedelta(seconds=3600 + 5)
        decision = limiter.check("fp-a", now=later)
        assert not decision.blocked
        assert decision.recent_count == 0

    def test_entry_exactly_window_old_is_pruned(self, limiter: SubmissionRateLimiter) -> None:
        limiter.record("fp-a", now=T0)
        assert limiter.recent_count("fp-a", now=T0 + timedelta(hours=1)) == 0
        assert limiter.recent_count("fp-a", now=T0 + timedelta(minutes=59)) == 1

    def test_partial_expiry(self, limiter: SubmissionRateLimiter) -> None:
        _fill(limiter, "fp-a", 3)
        _fill(limiter, "fp-a", 2, start=T0 + timedelta(minutes=30))
        now = T0 + timedelta(minutes=70)
        assert limiter.recent_count("fp-a", now=now) == 2

    def test_restore_drops_stale_entries(self, resolver: PolicyResolver) -> None:
        limiter = SubmissionRateLimiter(resolver, clock=lambda: T0)
        kept = limiter.restore([
            ("fp-a", T0 - timedelta(minutes=10)),
            ("fp-a", T0 - timedelta(hours=2)),
            ("fp-b", T0 - timedelta(minutes=5)),
        ])
        assert kept == 2
        assert limiter.recent_count("fp-a", now=T0) == 1
        assert limiter.recent_count("fp-b", now=T0) == 1


class TestConcurrency:
    def test_hold_serialises_check_and_record(self, limiter: SubmissionRateLimiter) -> None:
        admitted = []
        admitted_lock = threading.Lock()

        def attempt() -> None:
            with limiter.hold("fp-a"):
                if limiter.check("fp-a", now=T0).blocked:
                    return
                limiter.record("fp-a", now=T0)
                with admitted_lock:
                    admitted.append(1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            for _ in range(20):
                pool.submit(attempt)

        assert len(admitted) == 5
        assert limiter.recent_count("fp-a", now=T0) == 5
