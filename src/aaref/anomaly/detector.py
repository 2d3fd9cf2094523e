"""Anomaly detector — statistical plausibility signals for a candidate salary.

Five independent signals, each optionally producing a Flag and a penalty
subtracted from a starting score of 100:

1. Industry z-score (needs >= 3 baseline records in the industry).
   Population stddev, floored at 1. z > 3.0 → extreme_outlier (-40);
   2.5 < z <= 3.0 → outlier (-20).
2. Experience-band plausibility against a fixed envelope.
   salary < 0.5 x min → low_for_exp (-15); salary > 1.5 x max →
   high_for_exp (-30). Unknown bands skip this signal.
3. Company consistency (needs >= 2 baseline records at the company,
   case-insensitive). Relative deviation from the company mean > 1.0 →
   company_mismatch (-25).
4. Round number (>= 10,000, multiple of 10,000, > 50,000) → -5, silent.
5. Exact duplicate of title + company (case-insensitive) + salary in any
   record, rejected ones included → duplicate (-50).

The detector is a pure function of (candidate, corpus snapshot): no I/O,
no clock, no mutation. Signal order does not affect the result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from aaref.models.record import (
    Flag,
    FlagSeverity,
    FlagType,
    RecordStatus,
    SalaryRecord,
)
from aaref.policy.resolver import PolicyResolver


@dataclass(frozen=True)
class Subject:
    """The normalised fields of a candidate that the detector inspects."""
    title: str
    company: str
    industry: str
    experience: str
    salary: int


@dataclass(frozen=True)
class Finding:
    flag: Flag
    penalty: int


@dataclass(frozen=True)
class AnomalyReport:
    """Detector output: all findings, clamped score and provisional status."""
    findings: list[Finding] = field(default_factory=list)
    score: int = 100
    status: RecordStatus = RecordStatus.AUTO_APPROVED

    @property
    def flags(self) -> list[Flag]:
        return [f.flag for f in self.findings]

    @property
    def visible_flags(self) -> list[Flag]:
        return [f.flag for f in self.findings if f.flag.visible]

    @property
    def total_penalty(self) -> int:
        return sum(f.penalty for f in self.findings)


def clamp_score(score: float) -> int:
    return int(max(0, min(100, score)))


class AnomalyDetector:
    """Scores a candidate against a snapshot of the corpus."""

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver
        self._baseline_statuses = resolver.baseline_statuses()

    def analyze(
        self, subject: Subject, corpus: Sequence[SalaryRecord],
    ) -> AnomalyReport:
        baseline = [r for r in corpus if r.status in self._baseline_statuses]

        findings: list[Finding] = []
        for signal in (
            self._industry_zscore(subject, baseline),
            self._experience_plausibility(subject),
            self._company_consistency(subject, baseline),
            self._round_number(subject),
            self._duplicate(subject, corpus),
        ):
            if signal is not None:
                findings.extend(signal)

        raw = self._resolver.starting_score() - sum(f.penalty for f in findings)
        score = clamp_score(raw)
        return AnomalyReport(
            findings=findings,
            score=score,
            status=self._resolver.status_for_score(score),
        )

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def _industry_zscore(
        self, subject: Subject, baseline: Sequence[SalaryRecord],
    ) -> Optional[list[Finding]]:
        policy = self._resolver.industry_policy()
        salaries = [r.salary for r in baseline if r.industry.value == subject.industry]
        n = len(salaries)
        if n < policy.min_sample:
            return None

        mean = sum(salaries) / n
        variance = sum((s - mean) ** 2 for s in salaries) / n
        stddev = max(math.sqrt(variance), policy.stddev_floor)
        z = abs(subject.salary - mean) / stddev

        if z > policy.extreme_z:
            flag = Flag.of(
                FlagType.EXTREME_OUTLIER, FlagSeverity.HIGH,
                f"Z-score {z:.1f} vs {subject.industry} (n={n})",
            )
            return [Finding(flag, policy.extreme_penalty)]
        if z > policy.outlier_z:
            flag = Flag.of(
                FlagType.OUTLIER, FlagSeverity.MEDIUM,
                f"Z-score {z:.1f} vs {subject.industry}",
            )
            return [Finding(flag, policy.outlier_penalty)]
        return None

    def _experience_plausibility(self, subject: Subject) -> Optional[list[Finding]]:
        envelope = self._resolver.experience_envelope(subject.experience)
        if envelope is None:
            return None

        policy = self._resolver.experience_policy()
        findings: list[Finding] = []
        if subject.salary < envelope.minimum * policy.low_multiplier:
            findings.append(Finding(
                Flag.of(
                    FlagType.LOW_FOR_EXP, FlagSeverity.MEDIUM,
                    f"EGP {subject.salary:,} unusually low for {subject.experience}",
                ),
                policy.low_penalty,
            ))
        if subject.salary > envelope.maximum * policy.high_multiplier:
            findings.append(Finding(
                Flag.of(
                    FlagType.HIGH_FOR_EXP, FlagSeverity.HIGH,
                    f"EGP {subject.salary:,} unusually high for {subject.experience}",
                ),
                policy.high_penalty,
            ))
        return findings or None

    def _company_consistency(
        self, subject: Subject, baseline: Sequence[SalaryRecord],
    ) -> Optional[list[Finding]]:
        policy = self._resolver.company_policy()
        company = subject.company.lower()
        salaries = [r.salary for r in baseline if r.company.lower() == company]
        if len(salaries) < policy.min_sample:
            return None

        company_mean = sum(salaries) / len(salaries)
        deviation = abs(subject.salary - company_mean) / company_mean
        if deviation > policy.max_relative_deviation:
            flag = Flag.of(
                FlagType.COMPANY_MISMATCH, FlagSeverity.HIGH,
                f"{round(deviation * 100)}% from {subject.company} average",
            )
            return [Finding(flag, policy.penalty)]
        return None

    def _round_number(self, subject: Subject) -> Optional[list[Finding]]:
        policy = self._resolver.round_number_policy()
        sal = subject.salary
        if sal >= policy.step and sal % policy.step == 0 and sal > policy.min_exclusive:
            flag = Flag.of(
                FlagType.ROUND_NUMBER, FlagSeverity.MEDIUM,
                f"Round figure EGP {sal:,}",
            )
            return [Finding(flag, policy.penalty)]
        return None

    def _duplicate(
        self, subject: Subject, corpus: Sequence[SalaryRecord],
    ) -> Optional[list[Finding]]:
        title = subject.title.lower()
        company = subject.company.lower()
        for r in corpus:
            if (
                r.title.lower() == title
                and r.company.lower() == company
                and r.salary == subject.salary
            ):
                flag = Flag.of(
                    FlagType.DUPLICATE, FlagSeverity.HIGH,
                    "Exact match exists in database",
                )
                return [Finding(flag, self._resolver.duplicate_penalty())]
        return None
