#!/usr/bin/env python3
"""Aaref invariant checks against the intake parameter file."""

import json
from pathlib import Path
from typing import Optional


ROOT = Path(__file__).resolve().parents[1]
CONFIG_DIR = ROOT / "config"
PARAMS_FILENAME = "intake_params.json"

REQUIRED_BANDS = {
    "0-1 years", "1-3 years", "3-5 years", "5-8 years", "8-12 years", "12+ years",
}
VALID_STATUSES = {"auto_approved", "needs_review", "flagged", "rejected"}


def load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_penalties(anomaly: dict, errors: list[str]) -> None:
    """Every signal penalty must be a positive integer."""
    penalties = {
        "industry.extreme_penalty": anomaly["industry"]["extreme_penalty"],
        "industry.outlier_penalty": anomaly["industry"]["outlier_penalty"],
        "experience.low_penalty": anomaly["experience"]["low_penalty"],
        "experience.high_penalty": anomaly["experience"]["high_penalty"],
        "company.penalty": anomaly["company"]["penalty"],
        "round_number.penalty": anomaly["round_number"]["penalty"],
        "duplicate.penalty": anomaly["duplicate"]["penalty"],
    }
    for name, value in penalties.items():
        if not isinstance(value, int) or value <= 0:
            errors.append(f"{name} must be a positive integer, got {value}")


def check(config_dir: Optional[Path] = None) -> int:
    params = load_json((config_dir or CONFIG_DIR) / PARAMS_FILENAME)
    errors: list[str] = []

    # --- Status thresholds ---
    auto_min = params["status_thresholds"]["auto_approved"]
    review_min = params["status_thresholds"]["needs_review"]
    if not 0 <= review_min < auto_min <= 100:
        errors.append(
            f"thresholds must satisfy 0 <= needs_review < auto_approved <= 100, "
            f"got {review_min} / {auto_min}"
        )

    # --- Anomaly signals ---
    anomaly = params["anomaly"]
    if anomaly["starting_score"] != 100:
        errors.append("starting_score must be 100")
    industry = anomaly["industry"]
    if industry["outlier_z"] >= industry["extreme_z"]:
        errors.append("industry.outlier_z must be below industry.extreme_z")
    if industry["stddev_floor"] <= 0:
        errors.append("industry.stddev_floor must be > 0")
    if industry["min_sample"] < 2:
        errors.append("industry.min_sample must be >= 2")
    if anomaly["company"]["min_sample"] < 1:
        errors.append("company.min_sample must be >= 1")
    experience = anomaly["experience"]
    if not experience["low_multiplier"] < 1 < experience["high_multiplier"]:
        errors.append("experience multipliers must satisfy low < 1 < high")
    check_penalties(anomaly, errors)

    baseline = set(anomaly["baseline_statuses"])
    if not baseline <= VALID_STATUSES:
        errors.append(f"unknown baseline statuses: {sorted(baseline - VALID_STATUSES)}")
    if "rejected" in baseline:
        errors.append("rejected records must never feed anomaly baselines")

    # --- Experience envelopes ---
    envelopes = params["experience_envelopes"]
    if set(envelopes) != REQUIRED_BANDS:
        errors.append(f"experience_envelopes must cover exactly {sorted(REQUIRED_BANDS)}")
    for band, (low, high) in envelopes.items():
        if not 0 < low < high:
            errors.append(f"envelope {band} must satisfy 0 < min < max")

    # --- Friction ---
    friction = params["friction"]
    if friction["cap"] != 100:
        errors.append("friction.cap must be 100")
    for tier in friction["bonus_tiers"]:
        if tier["bonus"] <= 0 or tier["min_fields"] > len(friction["fields"]):
            errors.append(f"invalid friction tier: {tier}")

    # --- Rate limit ---
    rate = params["rate_limit"]
    if rate["window_seconds"] <= 0:
        errors.append("rate_limit.window_seconds must be > 0")
    if not 0 < rate["warn_count"] < rate["hard_count"]:
        errors.append("rate_limit must satisfy 0 < warn_count < hard_count")

    # --- Moderation ---
    moderation = params["moderation"]
    if not auto_min <= moderation["approve_trust_floor"] <= 100:
        errors.append("approve_trust_floor must keep approved records auto_approved")
    if moderation["audit_log_capacity"] <= 0:
        errors.append("audit_log_capacity must be > 0")

    if errors:
        print("Invariant check failed:")
        for err in errors:
            print(f"- {err}")
        return 1

    print("Invariant check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check())
