"""Storage — the record corpus and the intake event log."""

from aaref.persistence.corpus import Corpus
from aaref.persistence.event_log import EventKind, EventLog, EventRecord

__all__ = ["Corpus", "EventKind", "EventLog", "EventRecord"]
