"""Moderation queue — community flags and moderator overrides.

Community flagging needs no authentication and is allowed only on
auto_approved records; it increments community_flag_count and leaves
status and trust score alone. Repeat flags from one origin are counted
again; de-duplication is left to the integrating system.

Moderator actions (approve, reject, dismiss) follow RecordStateMachine.
Every successful action is appended to a bounded audit log holding the
most recent entries (20 by default, oldest evicted). A refused action
raises InvalidStateTransition and leaves no audit entry. The log is held
in memory; AarefService rebuilds it from the event log on start-up.

Validation and mutation of one record happen inside a single
Corpus.mutate() call, so concurrent actions on the same record are
linearised.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional, Union

from aaref.engine.state_machine import ModerationAction, RecordStateMachine
from aaref.errors import InvalidStateTransition
from aaref.models.record import RecordStatus, SalaryRecord
from aaref.persistence.corpus import Corpus
from aaref.policy.resolver import PolicyResolver


logger = logging.getLogger(__name__)

MODERATOR_ACTIONS = frozenset({
    ModerationAction.APPROVE,
    ModerationAction.REJECT,
    ModerationAction.DISMISS,
})


class ReviewView(str, enum.Enum):
    """Slices of the review queue shown to moderators."""
    ALL = "all"
    FLAGGED = "flagged"
    NEEDS_REVIEW = "needs_review"
    COMMUNITY = "community"


@dataclass(frozen=True)
class AuditEntry:
    record_id: int
    action: ModerationAction
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "record_id": self.record_id,
            "action": self.action.value,
            "timestamp": self.timestamp.isoformat(),
        }


class ModerationQueue:
    """Applies community and moderator actions to records in the corpus."""

    def __init__(
        self,
        resolver: PolicyResolver,
        corpus: Corpus,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._corpus = corpus
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state_machine = RecordStateMachine(resolver.approve_trust_floor())
        self._audit: deque[AuditEntry] = deque(maxlen=resolver.audit_log_capacity())
        self._audit_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def flag_community(
        self, record_id: int, now: Optional[datetime] = None,
    ) -> SalaryRecord:
        """Register one community flag on an auto_approved record."""
        return self._apply(record_id, ModerationAction.COMMUNITY_FLAG, now)

    def moderate(
        self,
        record_id: int,
        action: Union[ModerationAction, str],
        now: Optional[datetime] = None,
    ) -> SalaryRecord:
        """Apply a moderator action: approve, reject or dismiss.

        Raises ValueError for an unknown action name.
        """
        action = ModerationAction(action)
        if action not in MODERATOR_ACTIONS:
            raise ValueError(f"Not a moderator action: {action.value}")
        return self._apply(record_id, action, now)

    def approve(self, record_id: int, now: Optional[datetime] = None) -> SalaryRecord:
        return self.moderate(record_id, ModerationAction.APPROVE, now)

    def reject(self, record_id: int, now: Optional[datetime] = None) -> SalaryRecord:
        return self.moderate(record_id, ModerationAction.REJECT, now)

    def dismiss(self, record_id: int, now: Optional[datetime] = None) -> SalaryRecord:
        return self.moderate(record_id, ModerationAction.DISMISS, now)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def restore(self, entries: Iterable[AuditEntry]) -> int:
        """Replay persisted actions, oldest first, into the bounded log.

        Only the most recent entries up to capacity are kept. Returns the
        number of entries now held.
        """
        with self._audit_lock:
            self._audit.extend(entries)
            return len(self._audit)

    def audit_log(self) -> list[AuditEntry]:
        """Recent actions, newest first."""
        with self._audit_lock:
            return list(reversed(self._audit))

    def pending(self, view: Union[ReviewView, str] = ReviewView.ALL) -> list[SalaryRecord]:
        """Records awaiting a moderator, for the given view.

        ALL concatenates flagged, needs_review and community-flagged
        records in that order.
        """
        view = ReviewView(view)
        records = self._corpus.snapshot()
        flagged = [r for r in records if r.status == RecordStatus.FLAGGED]
        needs_review = [r for r in records if r.status == RecordStatus.NEEDS_REVIEW]
        community = [
            r for r in records
            if r.status == RecordStatus.AUTO_APPROVED and r.community_flag_count > 0
        ]
        if view == ReviewView.FLAGGED:
            return flagged
        if view == ReviewView.NEEDS_REVIEW:
            return needs_review
        if view == ReviewView.COMMUNITY:
            return community
        return flagged + needs_review + community

    def counts(self) -> dict[str, int]:
        """Per-status totals plus the community-flagged count."""
        counts = {status.value: 0 for status in RecordStatus}
        community = 0
        for r in self._corpus.snapshot():
            counts[r.status.value] += 1
            if r.status == RecordStatus.AUTO_APPROVED and r.community_flag_count > 0:
                community += 1
        counts["community_flagged"] = community
        return counts

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _apply(
        self,
        record_id: int,
        action: ModerationAction,
        now: Optional[datetime],
    ) -> SalaryRecord:
        def _change(record: SalaryRecord) -> None:
            errors = self._state_machine.apply(record, action)
            if errors:
                logger.info("Refused %s on record %s: %s", action.value, record_id, errors[0])
                raise InvalidStateTransition(record_id, record.status.value, action.value)

        updated = self._corpus.mutate(record_id, _change)
        entry = AuditEntry(record_id=record_id, action=action, timestamp=now or self._clock())
        with self._audit_lock:
            self._audit.append(entry)
        logger.info(
            "Record %s: %s → status=%s trust=%d community_flags=%d",
            record_id, action.value, updated.status.value,
            updated.trust_score, updated.community_flag_count,
        )
        return updated
