"""Admission pipeline — validates, scores and commits one submission.

Sequence (all-or-nothing):
1. Validate required fields (title, company, positive integer salary)
   and enumerated optional fields. Failure: ValidationError, no side
   effects.
2. Rate-limit check for the submitter's fingerprint. Hard block:
   RateLimitError, no corpus or window mutation.
3. Anomaly detection, then trust finalisation, on a corpus snapshot.
4. Append the new record to the corpus (community_flag_count = 0).
5. Only after the append succeeds, record the submission timestamp.
6. Compute read-only comparison analytics against the same snapshot.

Steps 2-5 run while holding the fingerprint's limiter lock, so two
concurrent submissions from one device cannot both pass a check that
only one of them should pass. Steps 3 and 6 are pure and lock-free with
respect to the corpus.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from aaref.analytics.comparison import Comparison, industry_comparison
from aaref.anomaly.detector import AnomalyDetector, Subject
from aaref.errors import RateLimitError, ValidationError
from aaref.identity.rate_limiter import RateLimitDecision, SubmissionRateLimiter
from aaref.models.record import (
    COMPANY_SIZES,
    CONTRACT_TYPES,
    RECENT_RAISE,
    SALARY_TYPES,
    Candidate,
    Flag,
    Industry,
    RecordStatus,
    SalaryRecord,
)
from aaref.persistence.corpus import Corpus
from aaref.policy.resolver import PolicyResolver
from aaref.trust.engine import TrustDecision, TrustEngine


logger = logging.getLogger(__name__)

_ENUMERATED_FIELDS: dict[str, tuple[str, ...]] = {
    "salary_type": SALARY_TYPES,
    "contract_type": CONTRACT_TYPES,
    "recent_raise": RECENT_RAISE,
    "company_size": COMPANY_SIZES,
}


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of a committed admission."""
    record: SalaryRecord
    trust: TrustDecision
    comparison: Comparison
    rate_limit: RateLimitDecision
    flags: list[Flag] = field(default_factory=list)

    @property
    def status(self) -> RecordStatus:
        return self.record.status

    @property
    def trust_score(self) -> int:
        return self.record.trust_score

    @property
    def advisory(self) -> Optional[str]:
        return self.rate_limit.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record.record_id,
            "status": self.status.value,
            "trust_score": self.trust_score,
            "flags": [f.to_dict() for f in self.flags],
            "comparison": self.comparison.to_dict(),
            "advisory": self.advisory,
        }


def parse_salary(value: Any) -> Optional[int]:
    """Return value as a positive int, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value > 0 else None
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text.isdecimal():
            return None
        parsed = int(text)
        return parsed if parsed > 0 else None
    return None


def _text(value: Any) -> str:
    """Stripped text, or "" for anything that is not a string."""
    return value.strip() if isinstance(value, str) else ""


class AdmissionPipeline:
    """Orchestrates rate limiting, scoring and the corpus append."""

    def __init__(
        self,
        resolver: PolicyResolver,
        corpus: Corpus,
        rate_limiter: Optional[SubmissionRateLimiter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._resolver = resolver
        self._corpus = corpus
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._limiter = rate_limiter or SubmissionRateLimiter(resolver, clock=self._clock)
        self._detector = AnomalyDetector(resolver)
        self._trust = TrustEngine(resolver)

    @property
    def rate_limiter(self) -> SubmissionRateLimiter:
        return self._limiter

    def validate(self, candidate: Candidate) -> Subject:
        """Check and normalise a candidate. Raises ValidationError."""
        problems: list[str] = []
        title = _text(candidate.title)
        company = _text(candidate.company)
        if not title:
            problems.append("title is required")
        if not company:
            problems.append("company is required")

        salary = parse_salary(candidate.salary)
        if salary is None:
            problems.append("salary must be a positive whole number")

        industries = {i.value for i in Industry}
        if not isinstance(candidate.industry, str) or candidate.industry not in industries:
            problems.append(f"unknown industry: {candidate.industry}")

        for name in ("city", "experience"):
            if not isinstance(getattr(candidate, name), str):
                problems.append(f"{name} must be text")

        for name, allowed in _ENUMERATED_FIELDS.items():
            value = getattr(candidate, name)
            if value and value not in allowed:
                problems.append(f"{name} must be one of {', '.join(allowed)}")

        if problems:
            raise ValidationError(problems)

        return Subject(
            title=title,
            company=company,
            industry=Industry(candidate.industry).value,
            experience=candidate.experience,
            salary=salary,
        )

    def submit(
        self,
        candidate: Candidate,
        fingerprint: str,
        now: Optional[datetime] = None,
    ) -> AdmissionResult:
        """Admit a candidate atomically or raise without side effects."""
        try:
            subject = self.validate(candidate)
        except ValidationError as e:
            logger.info("Submission rejected by validation: %s", e)
            raise

        with self._limiter.hold(fingerprint):
            ts = now or self._clock()
            decision = self._limiter.check(fingerprint, now=ts)
            if decision.blocked:
                raise RateLimitError(
                    fingerprint,
                    decision.message or "rate limited",
                    retry_after_seconds=int(self._limiter.window.total_seconds()),
                    reason=decision.reason or "rate_hard",
                )

            snapshot = self._corpus.snapshot()
            report = self._detector.analyze(subject, snapshot)
            trust = self._trust.finalize(
                report, candidate.friction_values(self._resolver.friction_fields()),
            )

            def _build(record_id: int) -> SalaryRecord:
                return SalaryRecord(
                    record_id=record_id,
                    title=subject.title,
                    company=subject.company,
                    industry=Industry(subject.industry),
                    city=candidate.city,
                    experience=subject.experience,
                    salary=subject.salary,
                    submitted=ts.date(),
                    verified=False,
                    trust_score=trust.trust_score,
                    status=trust.status,
                    flags=report.flags,
                    community_flag_count=0,
                    device_fingerprint=fingerprint,
                    salary_type=candidate.salary_type,
                    contract_type=candidate.contract_type,
                    recent_raise=candidate.recent_raise,
                    company_size=candidate.company_size,
                    submitted_utc=ts,
                )

            # PersistenceError propagates before the window is touched.
            record = self._corpus.create(_build)
            self._limiter.record(fingerprint, now=ts)

        logger.info(
            "Admitted record %s: status=%s trust=%d flags=%s",
            record.record_id, record.status.value, record.trust_score,
            [f.flag_type.value for f in record.visible_flags()],
        )

        comparison = industry_comparison(subject.salary, subject.industry, snapshot)
        return AdmissionResult(
            record=record,
            trust=trust,
            comparison=comparison,
            rate_limit=decision,
            flags=record.visible_flags(),
        )
