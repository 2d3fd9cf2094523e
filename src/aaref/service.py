"""Aaref service — unified facade for the salary intake system.

This is the primary interface for programmatic access. It wires:
- Admission (validation, rate limiting, anomaly scoring, trust, commit)
- Moderation (community flags, moderator approve/reject/dismiss)
- Read-only views (queries, review queue, comparison tools, status)
- Audit (intake event log)

All operations return a typed ServiceResult; expected failures
(validation, rate limit, invalid transition, unknown record, storage
failure) become result errors and never raise. A failed audit-log write
after a committed change does not undo the change: the service flags
itself persistence_degraded and reports a warning instead.
"""

from __future__ import annotations

import itertools
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Union

from aaref.analytics.comparison import market_comparison, nearby_records
from aaref.errors import IntakeError, RateLimitError, ValidationError
from aaref.identity.fingerprint import SubmitterSession
from aaref.intake.pipeline import AdmissionPipeline, parse_salary
from aaref.models.record import Candidate, RecordStatus, SalaryRecord
from aaref.moderation.queue import AuditEntry, ModerationQueue, ReviewView
from aaref.engine.state_machine import ModerationAction
from aaref.persistence.corpus import Corpus
from aaref.persistence.event_log import EventKind, EventLog, EventRecord
from aaref.policy.resolver import PolicyResolver


logger = logging.getLogger(__name__)

_ACTION_EVENTS: dict[ModerationAction, EventKind] = {
    ModerationAction.APPROVE: EventKind.RECORD_APPROVED,
    ModerationAction.REJECT: EventKind.RECORD_REJECTED,
    ModerationAction.DISMISS: EventKind.FLAGS_DISMISSED,
    ModerationAction.COMMUNITY_FLAG: EventKind.COMMUNITY_FLAGGED,
}


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


def _audit_entries(event_log: EventLog) -> list[AuditEntry]:
    """Moderation events from the log as audit entries, oldest first."""
    actions = {kind: action for action, kind in _ACTION_EVENTS.items()}
    return [
        AuditEntry(
            record_id=int(event.subject_id),
            action=actions[event.event_kind],
            timestamp=datetime.strptime(
                event.timestamp_utc, "%Y-%m-%dT%H:%M:%SZ",
            ).replace(tzinfo=timezone.utc),
        )
        for event in event_log.events()
        if event.event_kind in actions
    ]


def load_seed_file(path: Path) -> list[SalaryRecord]:
    """Read a JSON array of record dicts."""
    with path.open("r", encoding="utf-8") as f:
        return [SalaryRecord.from_dict(item) for item in json.load(f)]


class AarefService:
    """Salary intake facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = AarefService(resolver)

        session = SubmitterSession(DeviceProfile(language="en-US", ...))
        result = service.submit({"title": ..., "company": ..., "salary": 25000}, session)
        service.flag_community(record_id)
        service.moderate(record_id, "reject")

    Persistence (optional):
        service = AarefService(resolver, corpus=Corpus(path), event_log=EventLog(path))
        # Rate-limit windows are rebuilt from the corpus on construction,
        # the moderation audit log from the event log.
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        corpus: Optional[Corpus] = None,
        event_log: Optional[EventLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._resolver = resolver
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._corpus = corpus if corpus is not None else Corpus()
        self._event_log = event_log
        self._pipeline = AdmissionPipeline(resolver, self._corpus, clock=self._clock)
        self._moderation = ModerationQueue(resolver, self._corpus, clock=self._clock)

        restored = self._pipeline.rate_limiter.restore(self._corpus.submission_history())
        if restored:
            logger.info("Restored %d recent submissions into rate-limit windows", restored)

        if event_log is not None:
            audited = self._moderation.restore(_audit_entries(event_log))
            if audited:
                logger.info("Restored %d moderation actions into the audit log", audited)

        start = event_log.count + 1 if event_log is not None else 1
        self._event_counter = itertools.count(start)
        self._event_lock = threading.Lock()
        self._persistence_degraded: bool = False

    @property
    def corpus(self) -> Corpus:
        return self._corpus

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def submit(
        self,
        candidate: Union[Candidate, dict[str, Any]],
        session: Union[SubmitterSession, str],
        now: Optional[datetime] = None,
    ) -> ServiceResult:
        """Admit one submission from a session (or a bare fingerprint)."""
        if isinstance(candidate, dict):
            candidate = Candidate.from_dict(candidate)
        fingerprint = session.identify() if isinstance(session, SubmitterSession) else session

        try:
            admission = self._pipeline.submit(candidate, fingerprint, now=now)
        except RateLimitError as e:
            warning = self._record_event(
                EventKind.ADMISSION_BLOCKED, fingerprint,
                {"reason": e.reason, "retry_after_seconds": e.retry_after_seconds},
            )
            data: dict[str, Any] = {
                "error_kind": e.kind,
                "reason": e.reason,
                "retry_after_seconds": e.retry_after_seconds,
            }
            if warning:
                data["warnings"] = [warning]
            return ServiceResult(success=False, errors=[str(e)], data=data)
        except ValidationError as e:
            return ServiceResult(
                success=False, errors=list(e.problems), data={"error_kind": e.kind},
            )
        except IntakeError as e:
            return ServiceResult(success=False, errors=[str(e)], data={"error_kind": e.kind})

        data = admission.to_dict()
        warning = self._record_event(
            EventKind.RECORD_ADMITTED,
            str(admission.record.record_id),
            {
                "status": admission.status.value,
                "trust_score": admission.trust_score,
                "anomaly_score": admission.trust.anomaly_score,
                "friction_bonus": admission.trust.friction_bonus,
                "flags": [f.flag_type.value for f in admission.record.flags],
                "fingerprint": fingerprint,
            },
        )
        if warning:
            data["warnings"] = [warning]
        return ServiceResult(success=True, data=data)

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def flag_community(self, record_id: int) -> ServiceResult:
        """Anonymous "this looks wrong" flag on a live record."""
        return self._moderate(record_id, ModerationAction.COMMUNITY_FLAG)

    def moderate(
        self, record_id: int, action: Union[ModerationAction, str],
    ) -> ServiceResult:
        """Moderator approve / reject / dismiss."""
        try:
            action = ModerationAction(action)
        except ValueError:
            return ServiceResult(
                success=False, errors=[f"Unknown moderation action: {action}"],
                data={"error_kind": "validation"},
            )
        if action == ModerationAction.COMMUNITY_FLAG:
            return ServiceResult(
                success=False,
                errors=["community_flag is not a moderator action"],
                data={"error_kind": "validation"},
            )
        return self._moderate(record_id, action)

    def review_queue(
        self, view: Union[ReviewView, str] = ReviewView.ALL,
    ) -> list[SalaryRecord]:
        return self._moderation.pending(view)

    def audit_log(self) -> list[dict[str, Any]]:
        """Recent moderation actions, newest first."""
        return [entry.to_dict() for entry in self._moderation.audit_log()]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_record(self, record_id: int) -> Optional[SalaryRecord]:
        return self._corpus.get(record_id)

    def query(self, predicate: Callable[[SalaryRecord], bool]) -> list[SalaryRecord]:
        return self._corpus.query(predicate)

    def public_records(self) -> list[SalaryRecord]:
        """Records visible to display consumers (not flagged, not rejected)."""
        return self._corpus.query(lambda r: r.is_public)

    def compare(self, industry: str, experience: str, salary: Any) -> ServiceResult:
        """Position a salary against public records."""
        parsed = parse_salary(salary)
        if parsed is None:
            return ServiceResult(
                success=False, errors=["salary must be a positive whole number"],
                data={"error_kind": "validation"},
            )
        result = market_comparison(parsed, industry, experience, self._corpus.snapshot())
        return ServiceResult(success=True, data=result.to_dict())

    def nearby(self, company: str) -> list[SalaryRecord]:
        return nearby_records(company, self._corpus.snapshot())

    # ------------------------------------------------------------------
    # Seeding and status
    # ------------------------------------------------------------------

    def seed(self, records: list[SalaryRecord]) -> ServiceResult:
        """Load initial records into an empty corpus."""
        if self._corpus.count:
            return ServiceResult(
                success=False,
                errors=[f"Corpus is not empty ({self._corpus.count} records)"],
            )
        try:
            added = self._corpus.extend(records)
        except (IntakeError, ValueError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        warning = self._record_event(EventKind.CORPUS_SEEDED, "corpus", {"records": added})
        data: dict[str, Any] = {"records": added}
        if warning:
            data["warnings"] = [warning]
        return ServiceResult(success=True, data=data)

    def status(self) -> dict[str, Any]:
        """Return system-wide status summary."""
        counts = self._moderation.counts()
        return {
            "records": {
                "total": self._corpus.count,
                "public": len(self.public_records()),
                "by_status": {s.value: counts[s.value] for s in RecordStatus},
                "community_flagged": counts["community_flagged"],
            },
            "review_queue": len(self._moderation.pending(ReviewView.ALL)),
            "audit_entries": len(self._moderation.audit_log()),
            "events": self._event_log.count if self._event_log is not None else 0,
            "persistence_degraded": self._persistence_degraded,
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _moderate(self, record_id: int, action: ModerationAction) -> ServiceResult:
        try:
            if action == ModerationAction.COMMUNITY_FLAG:
                record = self._moderation.flag_community(record_id)
            else:
                record = self._moderation.moderate(record_id, action)
        except IntakeError as e:
            return ServiceResult(success=False, errors=[str(e)], data={"error_kind": e.kind})

        data: dict[str, Any] = {
            "record_id": record.record_id,
            "status": record.status.value,
            "trust_score": record.trust_score,
            "verified": record.verified,
            "community_flag_count": record.community_flag_count,
        }
        warning = self._record_event(
            _ACTION_EVENTS[action], str(record_id),
            {
                "status": record.status.value,
                "trust_score": record.trust_score,
                "community_flag_count": record.community_flag_count,
            },
        )
        if warning:
            data["warnings"] = [warning]
        return ServiceResult(success=True, data=data)

    def _record_event(
        self, kind: EventKind, subject_id: str, payload: dict[str, Any],
    ) -> Optional[str]:
        """Append an audit event after the fact. Returns a warning or None."""
        if self._event_log is None:
            return None
        with self._event_lock:
            event_id = f"EVT-{next(self._event_counter):08d}"
        try:
            self._event_log.append(EventRecord.create(
                event_id=event_id,
                event_kind=kind,
                subject_id=subject_id,
                payload=payload,
                timestamp_utc=self._clock(),
            ))
            return None
        except (ValueError, OSError) as e:
            self._persistence_degraded = True
            logger.error("Event log write failed (%s): %s", kind.value, e)
            return f"Persistence degraded: {e} — change committed but not in event log"
