"""Salary record and anomaly flag data models.

A SalaryRecord is one anonymous, self-reported monthly compensation
observation. Records are created once by the admission pipeline and are
never deleted; only moderation mutates them afterwards.

Record lifecycle:
    (admission) → AUTO_APPROVED | NEEDS_REVIEW | FLAGGED
    FLAGGED / NEEDS_REVIEW → AUTO_APPROVED (approve) | REJECTED (reject)
    AUTO_APPROVED with community flags → REJECTED (reject)
    REJECTED is terminal.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Sequence


class Industry(str, enum.Enum):
    """Industry a record belongs to (closed set of 10)."""
    TECHNOLOGY = "Technology"
    BANKING_FINANCE = "Banking & Finance"
    TELECOM = "Telecom"
    FMCG = "FMCG"
    PHARMA = "Pharma"
    HEALTHCARE = "Healthcare"
    ENGINEERING = "Engineering"
    EDUCATION = "Education"
    MEDIA = "Media"
    OTHER = "Other"


class ExperienceBand(str, enum.Enum):
    """Ordered years-of-experience bands."""
    BAND_0_1 = "0-1 years"
    BAND_1_3 = "1-3 years"
    BAND_3_5 = "3-5 years"
    BAND_5_8 = "5-8 years"
    BAND_8_12 = "8-12 years"
    BAND_12_PLUS = "12+ years"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional[ExperienceBand]:
        """Return the band for a label, or None for unknown/missing labels."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


CITIES: tuple[str, ...] = (
    "Cairo", "Giza", "Alexandria", "Mansoura", "Tanta", "Aswan", "Other",
)


class RecordStatus(str, enum.Enum):
    """Lifecycle status of a salary record."""
    AUTO_APPROVED = "auto_approved"
    NEEDS_REVIEW = "needs_review"
    FLAGGED = "flagged"
    REJECTED = "rejected"


class FlagType(str, enum.Enum):
    """Anomaly signal that produced a flag."""
    EXTREME_OUTLIER = "extreme_outlier"
    OUTLIER = "outlier"
    LOW_FOR_EXP = "low_for_exp"
    HIGH_FOR_EXP = "high_for_exp"
    COMPANY_MISMATCH = "company_mismatch"
    DUPLICATE = "duplicate"
    ROUND_NUMBER = "round_number"


# Flags used for scoring only, never surfaced to callers.
SILENT_FLAG_TYPES: frozenset[FlagType] = frozenset({FlagType.ROUND_NUMBER})


class FlagSeverity(str, enum.Enum):
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Flag:
    """A single anomaly finding attached to a record."""
    flag_type: FlagType
    severity: FlagSeverity
    detail: str
    visible: bool = True

    @classmethod
    def of(cls, flag_type: FlagType, severity: FlagSeverity, detail: str) -> Flag:
        """Build a flag with visibility derived from its type."""
        return cls(
            flag_type=flag_type,
            severity=severity,
            detail=detail,
            visible=flag_type not in SILENT_FLAG_TYPES,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.flag_type.value,
            "severity": self.severity.value,
            "detail": self.detail,
            "visible": self.visible,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Flag:
        flag_type = FlagType(data["type"])
        return cls(
            flag_type=flag_type,
            severity=FlagSeverity(data["severity"]),
            detail=data.get("detail", ""),
            visible=data.get("visible", flag_type not in SILENT_FLAG_TYPES),
        )


# Optional "friction" inputs. Completing them raises the trust score.
FRICTION_FIELDS: tuple[str, ...] = (
    "salary_type", "contract_type", "recent_raise", "company_size",
)

SALARY_TYPES = ("net", "gross")
CONTRACT_TYPES = ("permanent", "contract", "outsourced", "freelance")
RECENT_RAISE = ("yes", "no", "new_job")
COMPANY_SIZES = ("1-50", "50-200", "200-1000", "1000+")


@dataclass(frozen=True)
class Candidate:
    """A submission as received from a caller, before admission.

    Values are kept as supplied; the pipeline validates and normalises
    them. salary may arrive as an int or a numeric string.
    """
    title: str
    company: str
    salary: Any
    industry: str = Industry.OTHER.value
    city: str = "Cairo"
    experience: str = ExperienceBand.BAND_3_5.value
    salary_type: Optional[str] = None
    contract_type: Optional[str] = None
    recent_raise: Optional[str] = None
    company_size: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Candidate:
        """Build a candidate from a loosely-typed mapping (form or JSON body)."""
        return cls(
            title=data.get("title") or "",
            company=data.get("company") or "",
            salary=data.get("salary"),
            industry=data.get("industry") or Industry.OTHER.value,
            city=data.get("city") or "Cairo",
            experience=data.get("experience") or ExperienceBand.BAND_3_5.value,
            salary_type=data.get("salary_type") or None,
            contract_type=data.get("contract_type") or None,
            recent_raise=data.get("recent_raise") or None,
            company_size=data.get("company_size") or None,
        )

    def friction_values(
        self, fields: Sequence[str] = FRICTION_FIELDS,
    ) -> list[Optional[str]]:
        """Values of the named friction fields, in the order given."""
        return [getattr(self, name) for name in fields]


@dataclass
class SalaryRecord:
    """An admitted record in the corpus.

    Invariants enforced by the pipeline and moderation queue:
    - trust_score in [0, 100].
    - status is set at admission and afterwards changes only through
      moderator action; REJECTED is terminal.
    - community_flag_count only increments while AUTO_APPROVED and is
      reset only by a moderator.
    """
    record_id: int
    title: str
    company: str
    industry: Industry
    city: str
    experience: str
    salary: int
    submitted: date
    trust_score: int
    status: RecordStatus
    verified: bool = False
    flags: list[Flag] = field(default_factory=list)
    community_flag_count: int = 0
    device_fingerprint: Optional[str] = None
    salary_type: Optional[str] = None
    contract_type: Optional[str] = None
    recent_raise: Optional[str] = None
    company_size: Optional[str] = None
    # Exact admission instant; absent for imported records.
    submitted_utc: Optional[datetime] = None

    @property
    def is_public(self) -> bool:
        """Visible to display consumers (not flagged, not rejected)."""
        return self.status not in (RecordStatus.FLAGGED, RecordStatus.REJECTED)

    def visible_flags(self) -> list[Flag]:
        return [f for f in self.flags if f.visible]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.record_id,
            "title": self.title,
            "company": self.company,
            "industry": self.industry.value,
            "city": self.city,
            "experience": self.experience,
            "salary": self.salary,
            "submitted": self.submitted.isoformat(),
            "verified": self.verified,
            "trust_score": self.trust_score,
            "status": self.status.value,
            "flags": [f.to_dict() for f in self.flags],
            "community_flag_count": self.community_flag_count,
        }
        # Optional fields are omitted when absent so the persisted schema
        # stays backward compatible.
        optional = {
            "device_fingerprint": self.device_fingerprint,
            "salary_type": self.salary_type,
            "contract_type": self.contract_type,
            "recent_raise": self.recent_raise,
            "company_size": self.company_size,
            "submitted_utc": (
                self.submitted_utc.isoformat() if self.submitted_utc else None
            ),
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SalaryRecord:
        submitted_utc = data.get("submitted_utc")
        return cls(
            record_id=int(data["id"]),
            title=data["title"],
            company=data["company"],
            industry=Industry(data["industry"]),
            city=data.get("city", "Other"),
            experience=data.get("experience", ""),
            salary=int(data["salary"]),
            submitted=date.fromisoformat(data["submitted"]),
            verified=bool(data.get("verified", False)),
            trust_score=int(data["trust_score"]),
            status=RecordStatus(data["status"]),
            flags=[Flag.from_dict(f) for f in data.get("flags", [])],
            community_flag_count=int(data.get("community_flag_count", 0)),
            device_fingerprint=data.get("device_fingerprint"),
            salary_type=data.get("salary_type"),
            contract_type=data.get("contract_type"),
            recent_raise=data.get("recent_raise"),
            company_size=data.get("company_size"),
            submitted_utc=(
                datetime.fromisoformat(submitted_utc) if submitted_utc else None
            ),
        )
