"""Tests for the intake event log — proves append-only and tamper detection."""

import json
from datetime import datetime, timezone

import pytest

from aaref.persistence.event_log import EventKind, EventLog, EventRecord


T0 = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


def _make_event(event_id: str = "EVT-00000001", kind: EventKind = EventKind.RECORD_ADMITTED) -> EventRecord:
    return EventRecord.create(
        event_id=event_id,
        event_kind=kind,
        subject_id="26",
        payload={"status": "auto_approved", "trust_score": 95},
        timestamp_utc=T0,
    )


class TestEventRecord:
    def test_hash_is_deterministic(self) -> None:
        assert _make_event().event_hash == _make_event().event_hash
        assert _make_event().event_hash.startswith("sha256:")

    def test_timestamp_format(self) -> None:
        assert _make_event().timestamp_utc == "2026-03-01T08:00:00Z"


class TestEventLog:
    def test_append_and_filter(self) -> None:
        log = EventLog()
        log.append(_make_event("EVT-00000001"))
        log.append(_make_event("EVT-00000002", EventKind.COMMUNITY_FLAGGED))
        assert log.count == 2
        assert len(log.events(EventKind.COMMUNITY_FLAGGED)) == 1
        assert len(log.events_for("26")) == 2
        assert log.last_event.event_id == "EVT-00000002"

    def test_duplicate_event_id_rejected(self) -> None:
        log = EventLog()
        log.append(_make_event())
        with pytest.raises(ValueError, match="Duplicate"):
            log.append(_make_event())
        assert log.count == 1

    def test_reload_from_file(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.append(_make_event("EVT-00000001"))
        log.append(_make_event("EVT-00000002", EventKind.RECORD_REJECTED))
        reloaded = EventLog(storage_path=path)
        assert reloaded.count == 2
        assert reloaded.last_event.event_kind == EventKind.RECORD_REJECTED

    def test_tampered_file_fails_to_load(self, tmp_path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).append(_make_event())
        data = json.loads(path.read_text(encoding="utf-8"))
        data["payload"]["trust_score"] = 100
        path.write_text(json.dumps(data) + "\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_write_failure_keeps_memory_clean(self, tmp_path) -> None:
        log = EventLog(storage_path=tmp_path / "missing" / "events.jsonl")
        with pytest.raises(OSError):
            log.append(_make_event())
        assert log.count == 0
