"""Submitter identity — device fingerprints and submission rate limiting."""

from aaref.identity.fingerprint import DeviceProfile, SubmitterSession
from aaref.identity.rate_limiter import RateLimitDecision, SubmissionRateLimiter

__all__ = [
    "DeviceProfile",
    "RateLimitDecision",
    "SubmissionRateLimiter",
    "SubmitterSession",
]
