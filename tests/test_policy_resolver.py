"""Tests for the policy resolver — proves it loads and resolves intake parameters."""

import copy
import json

import pytest
from pathlib import Path

from aaref.models.record import RecordStatus
from aaref.policy.resolver import Envelope, PolicyResolver


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture
def resolver() -> PolicyResolver:
    return PolicyResolver.from_config_dir(CONFIG_DIR)


class TestStatusThresholds:
    def test_thresholds(self, resolver: PolicyResolver) -> None:
        assert resolver.status_thresholds() == (70, 40)

    @pytest.mark.parametrize("score,status", [
        (100, RecordStatus.AUTO_APPROVED),
        (70, RecordStatus.AUTO_APPROVED),
        (69, RecordStatus.NEEDS_REVIEW),
        (40, RecordStatus.NEEDS_REVIEW),
        (39, RecordStatus.FLAGGED),
        (0, RecordStatus.FLAGGED),
    ])
    def test_status_for_score(
        self, resolver: PolicyResolver, score: int, status: RecordStatus,
    ) -> None:
        assert resolver.status_for_score(score) == status


class TestAnomalyParameters:
    def test_industry_policy(self, resolver: PolicyResolver) -> None:
        p = resolver.industry_policy()
        assert p.min_sample == 3
        assert p.outlier_z < p.extreme_z
        assert (p.extreme_penalty, p.outlier_penalty) == (40, 20)

    def test_baseline_excludes_rejected(self, resolver: PolicyResolver) -> None:
        assert RecordStatus.REJECTED not in resolver.baseline_statuses()
        assert RecordStatus.AUTO_APPROVED in resolver.baseline_statuses()

    def test_duplicate_penalty(self, resolver: PolicyResolver) -> None:
        assert resolver.duplicate_penalty() == 50

    def test_round_number(self, resolver: PolicyResolver) -> None:
        p = resolver.round_number_policy()
        assert (p.step, p.min_exclusive, p.penalty) == (10000, 50000, 5)


class TestExperienceEnvelopes:
    def test_known_band(self, resolver: PolicyResolver) -> None:
        assert resolver.experience_envelope("3-5 years") == Envelope(12000, 60000)

    def test_all_bands_present(self, resolver: PolicyResolver) -> None:
        for band in ("0-1 years", "1-3 years", "3-5 years",
                     "5-8 years", "8-12 years", "12+ years"):
            env = resolver.experience_envelope(band)
            assert env is not None
            assert env.minimum < env.maximum

    def test_unknown_band_has_no_envelope(self, resolver: PolicyResolver) -> None:
        assert resolver.experience_envelope("20+ years") is None
        assert resolver.experience_envelope(None) is None
        assert resolver.experience_envelope("") is None


class TestFrictionAndLimits:
    def test_friction_tiers_in_order(self, resolver: PolicyResolver) -> None:
        tiers = resolver.friction_tiers()
        assert [(t.min_fields, t.bonus) for t in tiers] == [(3, 10), (2, 5)]
        assert resolver.friction_cap() == 100

    def test_rate_limit(self, resolver: PolicyResolver) -> None:
        p = resolver.rate_limit_policy()
        assert (p.window_seconds, p.warn_count, p.hard_count) == (3600, 3, 5)

    def test_moderation(self, resolver: PolicyResolver) -> None:
        assert resolver.approve_trust_floor() == 80
        assert resolver.audit_log_capacity() == 20


class TestFailClosed:
    def test_missing_config_dir_raises(self, tmp_path) -> None:
        with pytest.raises(ValueError, match="not found"):
            PolicyResolver.from_config_dir(tmp_path)

    def test_missing_key_raises(self, resolver: PolicyResolver) -> None:
        params = copy.deepcopy(resolver.params)
        del params["rate_limit"]["hard_count"]
        with pytest.raises(ValueError, match="Malformed"):
            PolicyResolver(params)

    def test_bad_envelope_raises(self, resolver: PolicyResolver) -> None:
        params = copy.deepcopy(resolver.params)
        params["experience_envelopes"]["3-5 years"] = [12000]
        with pytest.raises(ValueError, match="Malformed"):
            PolicyResolver(params)

    def test_unknown_friction_field_raises(self, resolver: PolicyResolver) -> None:
        params = copy.deepcopy(resolver.params)
        params["friction"]["fields"].append("bonus_scheme")
        with pytest.raises(ValueError, match="Malformed"):
            PolicyResolver(params)

    def test_loads_from_custom_dir(self, resolver: PolicyResolver, tmp_path) -> None:
        params = copy.deepcopy(resolver.params)
        params["status_thresholds"]["auto_approved"] = 75
        (tmp_path / "intake_params.json").write_text(json.dumps(params), encoding="utf-8")
        custom = PolicyResolver.from_config_dir(tmp_path)
        assert custom.status_for_score(72) == RecordStatus.NEEDS_REVIEW
