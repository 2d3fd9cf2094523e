"""Corpus — the store of admitted salary records.

Creation is append-only and records are never deleted. Moderation
mutates status, trust score, verified and community flag count through
mutate(), which works copy-on-write: the mutation is applied to a copy,
persisted, and only then swapped in. Readers holding a record object
therefore never observe a half-applied change.

Optional file persistence uses JSONL, one full record snapshot per line.
Both creation and mutation append a line; on load the last line per id
wins. The line is written before the change becomes visible in memory,
so a storage failure leaves memory untouched.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from aaref.errors import PersistenceError, RecordNotFound
from aaref.models.record import SalaryRecord


logger = logging.getLogger(__name__)


class Corpus:
    """In-memory record store with optional JSONL persistence.

    Thread-safe: a single lock serialises appends and mutations.
    Reads return the current record objects, which are never modified
    after publication.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: dict[int, SalaryRecord] = {}
        self._storage_path = storage_path
        self._lock = threading.RLock()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, record: SalaryRecord) -> SalaryRecord:
        """Append a record with a caller-chosen id.

        Raises ValueError on a duplicate id and PersistenceError if the
        storage write fails.
        """
        with self._lock:
            if record.record_id in self._records:
                raise ValueError(f"Duplicate record ID: {record.record_id}")
            self._write(record)
            self._records[record.record_id] = record
            return record

    def create(self, build: Callable[[int], SalaryRecord]) -> SalaryRecord:
        """Allocate the next id and append the record built for it."""
        with self._lock:
            return self.append(build(self._next_id()))

    def mutate(
        self, record_id: int, change: Callable[[SalaryRecord], None],
    ) -> SalaryRecord:
        """Apply change to a copy of the record, persist, then publish it."""
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise RecordNotFound(record_id)
            updated = dataclasses.replace(current, flags=list(current.flags))
            change(updated)
            self._write(updated)
            self._records[record_id] = updated
            return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, record_id: int) -> Optional[SalaryRecord]:
        with self._lock:
            return self._records.get(record_id)

    def require(self, record_id: int) -> SalaryRecord:
        record = self.get(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return record

    def snapshot(self) -> list[SalaryRecord]:
        """Point-in-time list of all records in insertion order."""
        with self._lock:
            return list(self._records.values())

    def query(self, predicate: Callable[[SalaryRecord], bool]) -> list[SalaryRecord]:
        return [r for r in self.snapshot() if predicate(r)]

    def submission_history(self) -> list[tuple[str, datetime]]:
        """(fingerprint, submitted_utc) for records that carry both."""
        return [
            (r.device_fingerprint, r.submitted_utc)
            for r in self.snapshot()
            if r.device_fingerprint and r.submitted_utc is not None
        ]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def __len__(self) -> int:
        return self.count

    def extend(self, records: Iterable[SalaryRecord]) -> int:
        """Append many records (used for seeding). Returns number added."""
        added = 0
        for record in records:
            self.append(record)
            added += 1
        return added

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    def _next_id(self) -> int:
        return max(self._records, default=0) + 1

    def _write(self, record: SalaryRecord) -> None:
        if not self._storage_path:
            return
        line = json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False)
        try:
            with self._storage_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            logger.error("Corpus write failed for record %s: %s", record.record_id, e)
            raise PersistenceError(f"Corpus write failed: {e}", cause=e) from e

    def _load_from_file(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = SalaryRecord.from_dict(json.loads(line))
                except (KeyError, ValueError) as e:
                    raise ValueError(
                        f"Corrupt corpus record (line {line_num}): {e}"
                    ) from e
                self._records[record.record_id] = record
        logger.info("Loaded %d records from %s", len(self._records), path)
