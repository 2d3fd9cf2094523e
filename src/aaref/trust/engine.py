"""Trust engine — finalises the anomaly score into a trust score and status.

Trust model:
  trust = clamp(anomaly_score + friction_bonus, 0, 100)

Friction bonus: every tier in intake_params.json whose min_fields is met
applies, in declaration order, each capped at 100. With the default
tiers (>=3 → +10, >=2 → +5) completing three or four friction fields
yields +15 in total, not +10.

Invariants enforced:
- trust score in [0, 100]
- status is derived from the final score with the same thresholds the
  detector uses
- finalisation happens once, at admission; nothing here is re-run as
  the corpus grows
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from aaref.anomaly.detector import AnomalyReport, clamp_score
from aaref.models.record import RecordStatus
from aaref.policy.resolver import PolicyResolver


@dataclass(frozen=True)
class TrustDecision:
    """Final admission-time trust outcome."""
    trust_score: int
    status: RecordStatus
    anomaly_score: int
    friction_fields_completed: int
    friction_bonus: int


class TrustEngine:
    """Combines the anomaly report with friction-field completeness."""

    def __init__(self, resolver: PolicyResolver) -> None:
        self._resolver = resolver

    @staticmethod
    def count_completed(values: Sequence[Optional[str]]) -> int:
        """Number of friction values that are present and non-blank."""
        return sum(1 for v in values if v is not None and str(v).strip())

    def friction_bonus(self, score: int, completed: int) -> int:
        """Return the score after applying every satisfied bonus tier."""
        cap = self._resolver.friction_cap()
        for tier in self._resolver.friction_tiers():
            if completed >= tier.min_fields:
                score = min(cap, score + tier.bonus)
        return score

    def finalize(
        self,
        report: AnomalyReport,
        friction_values: Sequence[Optional[str]],
    ) -> TrustDecision:
        completed = self.count_completed(friction_values)
        boosted = clamp_score(self.friction_bonus(report.score, completed))
        return TrustDecision(
            trust_score=boosted,
            status=self._resolver.status_for_score(boosted),
            anomaly_score=report.score,
            friction_fields_completed=completed,
            friction_bonus=boosted - report.score,
        )
