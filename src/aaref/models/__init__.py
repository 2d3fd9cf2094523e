"""Aaref data models — salary records and anomaly flags."""

from aaref.models.record import (
    Candidate,
    ExperienceBand,
    Flag,
    FlagSeverity,
    FlagType,
    Industry,
    RecordStatus,
    SalaryRecord,
)

__all__ = [
    "Candidate",
    "ExperienceBand",
    "Flag",
    "FlagSeverity",
    "FlagType",
    "Industry",
    "RecordStatus",
    "SalaryRecord",
]
