"""Error taxonomy for the intake pipeline.

Core components raise these; the service facade converts them into
ServiceResult errors. Every subclass is raised before any mutation of
the corpus or the submission window, except PersistenceError, which is
raised by the storage layer and leaves in-memory state untouched.
"""

from __future__ import annotations

from typing import Optional


class IntakeError(Exception):
    """Base class for expected, caller-facing intake failures."""

    kind = "intake_error"


class ValidationError(IntakeError):
    """A required field is missing or invalid. User-correctable."""

    kind = "validation"

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "invalid submission")


class RateLimitError(IntakeError):
    """Hard rate-limit block for a fingerprint."""

    kind = "rate_limited"

    def __init__(
        self,
        fingerprint: str,
        message: str,
        retry_after_seconds: int = 3600,
        reason: str = "rate_hard",
    ) -> None:
        self.fingerprint = fingerprint
        self.retry_after_seconds = retry_after_seconds
        self.reason = reason
        super().__init__(message)


class InvalidStateTransition(IntakeError):
    """A moderation action is not allowed from the record's current status."""

    kind = "invalid_state"

    def __init__(self, record_id: int, current: str, action: str) -> None:
        self.record_id = record_id
        self.current = current
        self.action = action
        super().__init__(
            f"Record {record_id}: action '{action}' not allowed from status '{current}'"
        )


class RecordNotFound(IntakeError):
    """No record with the requested identifier exists in the corpus."""

    kind = "not_found"

    def __init__(self, record_id: int) -> None:
        self.record_id = record_id
        super().__init__(f"Record not found: {record_id}")


class PersistenceError(IntakeError):
    """The corpus storage layer failed; the in-flight operation is aborted."""

    kind = "persistence"

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)
