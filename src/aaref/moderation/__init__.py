"""Community flagging and moderator review."""

from aaref.moderation.queue import AuditEntry, ModerationQueue, ReviewView

__all__ = ["AuditEntry", "ModerationQueue", "ReviewView"]
