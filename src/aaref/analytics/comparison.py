"""Read-only comparison analytics over a corpus snapshot.

Percentile rank is the share of peer salaries at or below the candidate's
salary. Delta is the percentage difference from the peer mean. Both are
rounded half-up to whole numbers. With no peers the salary is its own
average, the delta is 0 and the percentile is 50.

Nothing in this module mutates records.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

from aaref.models.record import RecordStatus, SalaryRecord


NEARBY_MIN_QUERY = 3
NEARBY_LIMIT = 4


@dataclass(frozen=True)
class Comparison:
    average: int
    delta_percent: int
    count: int
    percentile: int

    def to_dict(self) -> dict[str, int]:
        return {
            "average": self.average,
            "delta_percent": self.delta_percent,
            "count": self.count,
            "percentile": self.percentile,
        }


@dataclass(frozen=True)
class MarketComparison:
    """Compare-tool result: industry position plus experience-band delta."""
    industry: Comparison
    experience: Comparison

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            "industry": self.industry.to_dict(),
            "experience": self.experience.to_dict(),
        }


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compare_salary(salary: int, peers: Sequence[int]) -> Comparison:
    if not peers:
        return Comparison(average=salary, delta_percent=0, count=0, percentile=50)

    average = round_half_up(sum(peers) / len(peers))
    delta = round_half_up((salary - average) / average * 100) if average else 0
    at_or_below = sum(1 for p in peers if p <= salary)
    return Comparison(
        average=average,
        delta_percent=delta,
        count=len(peers),
        percentile=round_half_up(at_or_below / len(peers) * 100),
    )


def industry_comparison(
    salary: int, industry: str, corpus: Sequence[SalaryRecord],
) -> Comparison:
    """Position against same-industry records, excluding rejected ones."""
    peers = [
        r.salary for r in corpus
        if r.industry.value == industry and r.status != RecordStatus.REJECTED
    ]
    return compare_salary(salary, peers)


def market_comparison(
    salary: int,
    industry: str,
    experience: str,
    corpus: Sequence[SalaryRecord],
) -> MarketComparison:
    """Compare tool over publicly visible records only."""
    public = [r for r in corpus if r.is_public]
    return MarketComparison(
        industry=compare_salary(
            salary, [r.salary for r in public if r.industry.value == industry],
        ),
        experience=compare_salary(
            salary, [r.salary for r in public if r.experience == experience],
        ),
    )


def nearby_records(
    company: str,
    corpus: Sequence[SalaryRecord],
    limit: Optional[int] = NEARBY_LIMIT,
) -> list[SalaryRecord]:
    """Visible records whose company contains the query (3+ characters)."""
    query = company.strip().lower()
    if len(query) < NEARBY_MIN_QUERY:
        return []
    matches = [r for r in corpus if r.is_public and query in r.company.lower()]
    return matches[:limit] if limit is not None else matches
