"""Policy resolver — typed access to intake parameters.

All tunable numbers of the admission pipeline (status thresholds,
anomaly penalties, experience envelopes, friction bonuses, rate limits,
moderation settings) live in config/intake_params.json. Components never
read the JSON directly; they ask the resolver.

Fail-closed: a missing file or a missing key raises ValueError at load
time rather than falling back to silent defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from aaref.models.record import FRICTION_FIELDS, ExperienceBand, RecordStatus


PARAMS_FILENAME = "intake_params.json"


@dataclass(frozen=True)
class IndustryOutlierPolicy:
    min_sample: int
    extreme_z: float
    outlier_z: float
    stddev_floor: float
    extreme_penalty: int
    outlier_penalty: int


@dataclass(frozen=True)
class ExperiencePolicy:
    low_multiplier: float
    high_multiplier: float
    low_penalty: int
    high_penalty: int


@dataclass(frozen=True)
class CompanyPolicy:
    min_sample: int
    max_relative_deviation: float
    penalty: int


@dataclass(frozen=True)
class RoundNumberPolicy:
    step: int
    min_exclusive: int
    penalty: int


@dataclass(frozen=True)
class Envelope:
    """Plausible monthly salary range for an experience band."""
    minimum: int
    maximum: int


@dataclass(frozen=True)
class RateLimitPolicy:
    window_seconds: int
    warn_count: int
    hard_count: int


@dataclass(frozen=True)
class FrictionTier:
    min_fields: int
    bonus: int


class PolicyResolver:
    """Resolves intake parameters from a loaded parameter mapping."""

    def __init__(self, params: dict[str, Any]) -> None:
        self._params = params
        try:
            self._validate_shape()
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed intake parameters: {e}") from e

    @classmethod
    def from_config_dir(cls, config_dir: Path) -> PolicyResolver:
        """Load parameters from <config_dir>/intake_params.json."""
        path = Path(config_dir) / PARAMS_FILENAME
        if not path.exists():
            raise ValueError(f"Intake parameter file not found: {path}")
        with path.open("r", encoding="utf-8") as f:
            return cls(json.load(f))

    @property
    def params(self) -> dict[str, Any]:
        return self._params

    # ------------------------------------------------------------------
    # Status thresholds
    # ------------------------------------------------------------------

    def status_thresholds(self) -> tuple[int, int]:
        """Return (auto_approved_min, needs_review_min)."""
        t = self._params["status_thresholds"]
        return int(t["auto_approved"]), int(t["needs_review"])

    def status_for_score(self, score: int) -> RecordStatus:
        """Map a trust score to an initial status (>=70, 40-69, <40)."""
        auto_min, review_min = self.status_thresholds()
        if score >= auto_min:
            return RecordStatus.AUTO_APPROVED
        if score >= review_min:
            return RecordStatus.NEEDS_REVIEW
        return RecordStatus.FLAGGED

    # ------------------------------------------------------------------
    # Anomaly detection
    # ------------------------------------------------------------------

    def starting_score(self) -> int:
        return int(self._params["anomaly"]["starting_score"])

    def baseline_statuses(self) -> frozenset[RecordStatus]:
        """Statuses whose records may feed industry and company baselines."""
        return frozenset(
            RecordStatus(s) for s in self._params["anomaly"]["baseline_statuses"]
        )

    def industry_policy(self) -> IndustryOutlierPolicy:
        p = self._params["anomaly"]["industry"]
        return IndustryOutlierPolicy(
            min_sample=int(p["min_sample"]),
            extreme_z=float(p["extreme_z"]),
            outlier_z=float(p["outlier_z"]),
            stddev_floor=float(p["stddev_floor"]),
            extreme_penalty=int(p["extreme_penalty"]),
            outlier_penalty=int(p["outlier_penalty"]),
        )

    def experience_policy(self) -> ExperiencePolicy:
        p = self._params["anomaly"]["experience"]
        return ExperiencePolicy(
            low_multiplier=float(p["low_multiplier"]),
            high_multiplier=float(p["high_multiplier"]),
            low_penalty=int(p["low_penalty"]),
            high_penalty=int(p["high_penalty"]),
        )

    def company_policy(self) -> CompanyPolicy:
        p = self._params["anomaly"]["company"]
        return CompanyPolicy(
            min_sample=int(p["min_sample"]),
            max_relative_deviation=float(p["max_relative_deviation"]),
            penalty=int(p["penalty"]),
        )

    def round_number_policy(self) -> RoundNumberPolicy:
        p = self._params["anomaly"]["round_number"]
        return RoundNumberPolicy(
            step=int(p["step"]),
            min_exclusive=int(p["min_exclusive"]),
            penalty=int(p["penalty"]),
        )

    def duplicate_penalty(self) -> int:
        return int(self._params["anomaly"]["duplicate"]["penalty"])

    def experience_envelope(self, label: Optional[str]) -> Optional[Envelope]:
        """Return the envelope for an experience band label.

        Unknown or missing bands return None: callers must treat that as
        "no plausibility check", not as an unbounded range.
        """
        band = ExperienceBand.parse(label)
        if band is None:
            return None
        bounds = self._params["experience_envelopes"].get(band.value)
        if bounds is None:
            return None
        return Envelope(minimum=int(bounds[0]), maximum=int(bounds[1]))

    # ------------------------------------------------------------------
    # Trust finalisation
    # ------------------------------------------------------------------

    def friction_fields(self) -> tuple[str, ...]:
        return tuple(self._params["friction"]["fields"])

    def friction_tiers(self) -> list[FrictionTier]:
        """Bonus tiers in declaration order. Every satisfied tier applies."""
        return [
            FrictionTier(min_fields=int(t["min_fields"]), bonus=int(t["bonus"]))
            for t in self._params["friction"]["bonus_tiers"]
        ]

    def friction_cap(self) -> int:
        return int(self._params["friction"]["cap"])

    # ------------------------------------------------------------------
    # Rate limiting and moderation
    # ------------------------------------------------------------------

    def rate_limit_policy(self) -> RateLimitPolicy:
        p = self._params["rate_limit"]
        return RateLimitPolicy(
            window_seconds=int(p["window_seconds"]),
            warn_count=int(p["warn_count"]),
            hard_count=int(p["hard_count"]),
        )

    def approve_trust_floor(self) -> int:
        return int(self._params["moderation"]["approve_trust_floor"])

    def audit_log_capacity(self) -> int:
        return int(self._params["moderation"]["audit_log_capacity"])

    def _validate_shape(self) -> None:
        """Touch every accessor once so missing keys surface at load time."""
        self.status_thresholds()
        self.starting_score()
        self.baseline_statuses()
        self.industry_policy()
        self.experience_policy()
        self.company_policy()
        self.round_number_policy()
        self.duplicate_penalty()
        unknown = set(self.friction_fields()) - set(FRICTION_FIELDS)
        if unknown:
            raise ValueError(f"unknown friction fields: {sorted(unknown)}")
        self.friction_tiers()
        self.friction_cap()
        self.rate_limit_policy()
        self.approve_trust_floor()
        self.audit_log_capacity()
        for label, bounds in self._params["experience_envelopes"].items():
            if len(bounds) != 2:
                raise ValueError(f"envelope for {label} must be [min, max]")
