"""Durable append/query stores for visit records.

Two implementations share the ``VisitStore`` protocol:

    - ``MemoryVisitStore``: list-backed, lost on exit.
    - ``JsonlVisitStore``: append-only JSON-lines file, one record per line.

``query_all`` always returns an immutable snapshot, so aggregation can run while the
sampling loop keeps inserting.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol, Sequence

from visit_heatmap.geo import is_valid_coordinate
from visit_heatmap.models import MAX_RECORD_DURATION_S, VisitRecord

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a record cannot be persisted."""


class VisitStore(Protocol):
    """What the sampling policy and the heatmap need from a store."""

    def insert(self, record: VisitRecord) -> None:
        """Persist one record. Raises StoreError on failure."""

    def query_all(self) -> Sequence[VisitRecord]:
        """Return all records in insertion order."""


def record_to_dict(record: VisitRecord) -> dict[str, Any]:
    return {
        "latitude": record.latitude,
        "longitude": record.longitude,
        "timestamp_ms": record.timestamp_ms,
        "duration_s": record.duration_s,
    }


def record_from_dict(data: dict[str, Any]) -> VisitRecord:
    """Build a record from its JSON form.

    Raises:
        KeyError: If a field is missing.
        ValueError/TypeError: If a field has the wrong type or breaks a record invariant
            (coordinate out of range, duration outside [0, MAX_RECORD_DURATION_S]).
    """

    record = VisitRecord(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        timestamp_ms=int(data["timestamp_ms"]),
        duration_s=float(data.get("duration_s", 0.0) or 0.0),
    )
    if not is_valid_coordinate(record.latitude, record.longitude):
        raise ValueError(f"coordinate out of range: {record.latitude}, {record.longitude}")
    if not 0.0 <= record.duration_s <= MAX_RECORD_DURATION_S:
        raise ValueError(f"duration out of range: {record.duration_s}")
    return record


class MemoryVisitStore:
    """In-memory store (tests, dashboard scratch runs)."""

    def __init__(self, records: Sequence[VisitRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: list[VisitRecord] = list(records)

    def insert(self, record: VisitRecord) -> None:
        with self._lock:
            self._records.append(record)

    def query_all(self) -> tuple[VisitRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonlVisitStore:
    """Append-only JSON-lines store persisted on disk.

    Each insert appends exactly one line and closes the file. A crash can leave one
    unterminated trailing line: ``query_all`` skips it, and the next insert starts on a
    fresh line so it is not glued onto the broken one.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    def insert(self, record: VisitRecord) -> None:
        line = json.dumps(record_to_dict(record), ensure_ascii=False) + "\n"
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                if self._needs_newline():
                    line = "\n" + line
                with self._path.open("ab") as f:
                    f.write(line.encode("utf-8"))
            except OSError as exc:
                raise StoreError(f"cannot append to {self._path}: {exc}") from exc

    def _needs_newline(self) -> bool:
        """True when the file is non-empty and its last byte is not a newline."""

        if not self._path.exists():
            return False
        with self._path.open("rb") as f:
            f.seek(0, 2)
            if f.tell() == 0:
                return False
            f.seek(-1, 2)
            return f.read(1) != b"\n"

    def query_all(self) -> tuple[VisitRecord, ...]:
        """Replay the file into records (no-op if file not exists)."""

        with self._lock:
            if not self._path.exists():
                return ()
            records: list[VisitRecord] = []
            skipped = 0
            with self._path.open("rb") as f:
                for raw in f:
                    try:
                        s = raw.decode("utf-8").strip()
                        if not s:
                            continue
                        records.append(record_from_dict(json.loads(s)))
                    except (UnicodeDecodeError, json.JSONDecodeError, KeyError, ValueError, TypeError):
                        # partial tail line after a crash, or hand-edited garbage
                        skipped += 1
        if skipped:
            logger.warning("%s: skipped %s unreadable lines", self._path, skipped)
        return tuple(records)
