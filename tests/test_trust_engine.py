"""Tests for the trust engine — proves friction bonuses and status derivation."""

import pytest
from pathlib import Path

from aaref.anomaly.detector import AnomalyReport
from aaref.models.record import RecordStatus
from aaref.policy.resolver import PolicyResolver
from aaref.trust.engine import TrustEngine


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


@pytest.fixture
def engine(resolver: PolicyResolver) -> TrustEngine:
    return TrustEngine(resolver)


def _report(score: int, resolver: PolicyResolver) -> AnomalyReport:
    return AnomalyReport(findings=[], score=score, status=resolver.status_for_score(score))


class TestCountCompleted:
    def test_ignores_missing_and_blank(self) -> None:
        assert TrustEngine.count_completed([None, "", "  ", "net"]) == 1

    def test_all_present(self) -> None:
        assert TrustEngine.count_completed(["net", "permanent", "yes", "1000+"]) == 4


class TestFrictionBonus:
    @pytest.mark.parametrize("completed,expected", [
        (0, 50), (1, 50), (2, 55), (3, 65), (4, 65),
    ])
    def test_tiers_stack(self, engine: TrustEngine, completed: int, expected: int) -> None:
        assert engine.friction_bonus(50, completed) == expected

    def test_capped_at_100(self, engine: TrustEngine) -> None:
        assert engine.friction_bonus(95, 4) == 100


class TestFinalize:
    def test_bonus_lifts_review_to_approved(
        self, engine: TrustEngine, resolver: PolicyResolver,
    ) -> None:
        decision = engine.finalize(_report(60, resolver), ["net", "permanent", "yes", None])
        assert decision.trust_score == 75
        assert decision.status == RecordStatus.AUTO_APPROVED
        assert decision.anomaly_score == 60
        assert decision.friction_fields_completed == 3
        assert decision.friction_bonus == 15

    def test_no_friction_keeps_score(
        self, engine: TrustEngine, resolver: PolicyResolver,
    ) -> None:
        decision = engine.finalize(_report(85, resolver), [None] * 4)
        assert decision.trust_score == 85
        assert decision.friction_bonus == 0

    def test_bonus_reported_after_cap(
        self, engine: TrustEngine, resolver: PolicyResolver,
    ) -> None:
        decision = engine.finalize(_report(100, resolver), ["net", "gross", "yes", "1-50"])
        assert decision.trust_score == 100
        assert decision.friction_bonus == 0

    @pytest.mark.parametrize("score,status", [
        (70, RecordStatus.AUTO_APPROVED),
        (69, RecordStatus.NEEDS_REVIEW),
        (40, RecordStatus.NEEDS_REVIEW),
        (39, RecordStatus.FLAGGED),
    ])
    def test_status_boundaries(
        self, engine: TrustEngine, resolver: PolicyResolver,
        score: int, status: RecordStatus,
    ) -> None:
        assert engine.finalize(_report(score, resolver), []).status == status

    def test_flagged_record_can_reach_review(
        self, engine: TrustEngine, resolver: PolicyResolver,
    ) -> None:
        decision = engine.finalize(_report(30, resolver), ["net", "permanent", "no"])
        assert decision.trust_score == 45
        assert decision.status == RecordStatus.NEEDS_REVIEW
