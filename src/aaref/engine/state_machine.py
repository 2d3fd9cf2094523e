"""Record state machine — enforces the moderation transition rules.

Initial status is assigned by the trust engine at admission. After that
only these transitions exist:

    flagged       --approve--> auto_approved (verified, trust >= 80)
    needs_review  --approve--> auto_approved (verified, trust >= 80)
    flagged       --reject---> rejected
    needs_review  --reject---> rejected
    auto_approved --reject---> rejected       (requires community flags)
    auto_approved --dismiss--> auto_approved  (requires community flags;
                                               resets the flag count)
    auto_approved --flag-----> auto_approved  (community flag; count + 1)

rejected is terminal. Transitions are fail-closed: any (status, action)
pair not listed is refused.
"""

from __future__ import annotations

import enum

from aaref.models.record import RecordStatus, SalaryRecord


class ModerationAction(str, enum.Enum):
    APPROVE = "approve"
    REJECT = "reject"
    DISMISS = "dismiss"
    COMMUNITY_FLAG = "community_flag"


# Legal transitions: (from_status, action) → to_status
_TRANSITIONS: dict[tuple[RecordStatus, ModerationAction], RecordStatus] = {
    (RecordStatus.FLAGGED, ModerationAction.APPROVE): RecordStatus.AUTO_APPROVED,
    (RecordStatus.NEEDS_REVIEW, ModerationAction.APPROVE): RecordStatus.AUTO_APPROVED,
    (RecordStatus.FLAGGED, ModerationAction.REJECT): RecordStatus.REJECTED,
    (RecordStatus.NEEDS_REVIEW, ModerationAction.REJECT): RecordStatus.REJECTED,
    (RecordStatus.AUTO_APPROVED, ModerationAction.REJECT): RecordStatus.REJECTED,
    (RecordStatus.AUTO_APPROVED, ModerationAction.DISMISS): RecordStatus.AUTO_APPROVED,
    (RecordStatus.AUTO_APPROVED, ModerationAction.COMMUNITY_FLAG): RecordStatus.AUTO_APPROVED,
}

# Moderator actions on a live record need at least one community flag.
_REQUIRES_COMMUNITY_FLAG: set[tuple[RecordStatus, ModerationAction]] = {
    (RecordStatus.AUTO_APPROVED, ModerationAction.REJECT),
    (RecordStatus.AUTO_APPROVED, ModerationAction.DISMISS),
}


class RecordStateMachine:
    """Validates and applies moderation transitions on salary records.

    Side effects beyond the record itself (persistence, audit) belong to
    the moderation queue.
    """

    def __init__(self, approve_trust_floor: int = 80) -> None:
        self._approve_trust_floor = approve_trust_floor

    @staticmethod
    def validate(record: SalaryRecord, action: ModerationAction) -> list[str]:
        """Check whether action is allowed. Returns errors (empty = OK)."""
        key = (record.status, action)
        if key not in _TRANSITIONS:
            return [
                f"Illegal transition: {record.status.value} --{action.value}-->"
            ]
        if key in _REQUIRES_COMMUNITY_FLAG and record.community_flag_count < 1:
            return [
                f"Record {record.record_id}: {action.value} on an auto_approved "
                f"record requires at least one community flag"
            ]
        return []

    def apply(self, record: SalaryRecord, action: ModerationAction) -> list[str]:
        """Validate and apply the action in place. Returns errors."""
        errors = self.validate(record, action)
        if errors:
            return errors

        record.status = _TRANSITIONS[(record.status, action)]
        if action == ModerationAction.APPROVE:
            record.verified = True
            record.trust_score = max(record.trust_score, self._approve_trust_floor)
        elif action == ModerationAction.DISMISS:
            record.community_flag_count = 0
        elif action == ModerationAction.COMMUNITY_FLAG:
            record.community_flag_count += 1
        return []

    @staticmethod
    def is_terminal(status: RecordStatus) -> bool:
        return status == RecordStatus.REJECTED

    @staticmethod
    def valid_actions(record: SalaryRecord) -> set[ModerationAction]:
        """Actions that would currently succeed on this record."""
        return {
            action for action in ModerationAction
            if not RecordStateMachine.validate(record, action)
        }
