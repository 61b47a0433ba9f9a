"""Sampling policy: which raw fixes become persisted visit records."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable

from visit_heatmap.geo import haversine_m, is_valid_coordinate
from visit_heatmap.models import MAX_RECORD_DURATION_S, PositionFix, VisitRecord
from visit_heatmap.store import StoreError, VisitStore

logger = logging.getLogger(__name__)

VisitListener = Callable[[VisitRecord], None]


@dataclass(frozen=True, slots=True)
class SamplingParams:
    """Parameters controlling fix acceptance."""

    # Accept when the fix moved further than this from the last accepted one.
    min_distance_m: float = 100.0
    # ...or when this much time passed since the last acceptance.
    max_interval_s: float = 300.0
    # Gaps longer than this (app suspended, phone off) are not counted as dwell time.
    max_gap_s: float = 30 * 60.0
    # Extra attempts for a failed insert before the fix is dropped.
    insert_retries: int = 0
    # Reject fixes reporting a worse horizontal accuracy than this. None disables the filter.
    max_accuracy_m: float | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.max_gap_s <= MAX_RECORD_DURATION_S:
            raise ValueError(f"max_gap_s must be within [0, {MAX_RECORD_DURATION_S:g}], got {self.max_gap_s}")
        if self.max_accuracy_m is not None and self.max_accuracy_m < 0:
            raise ValueError(f"max_accuracy_m must be >= 0, got {self.max_accuracy_m}")


class SamplingPolicy:
    """Turn a serial stream of position fixes into visit records.

    One instance owns the "last accepted" state. ``on_fix`` is serialized with a lock,
    so fixes are always evaluated one at a time in the order they are handed in, and
    listeners are called under the same lock in acceptance order. A listener must not
    feed fixes back into the policy it is subscribed to.

    Args:
        store: Where accepted records are written.
        params: Thresholds.
        clock: Returns "now" in epoch milliseconds. When omitted, each fix's own
            ``geo_time_ms`` is used, which makes replays of recorded tracks deterministic.
    """

    def __init__(
        self,
        store: VisitStore,
        params: SamplingParams | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._store = store
        self._params = params or SamplingParams()
        self._clock = clock
        self._lock = threading.Lock()
        self._listeners: list[VisitListener] = []

        self._last_accepted: PositionFix | None = None
        self._last_accepted_ms: int | None = None
        self._current_fix: PositionFix | None = None
        self._tracking = True
        self._accepted = 0
        self._rejected = 0
        self._dropped = 0

    @property
    def last_accepted(self) -> PositionFix | None:
        return self._last_accepted

    @property
    def last_accepted_ms(self) -> int | None:
        return self._last_accepted_ms

    @property
    def current_fix(self) -> PositionFix | None:
        """Most recent valid fix received, accepted or not."""

        return self._current_fix

    @property
    def accepted_count(self) -> int:
        return self._accepted

    @property
    def rejected_count(self) -> int:
        """Fixes that failed validation or the acceptance test."""

        return self._rejected

    @property
    def dropped_count(self) -> int:
        """Fixes that passed the acceptance test but could not be stored."""

        return self._dropped

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    def start(self) -> None:
        self._tracking = True
        logger.info("tracking started")

    def stop(self) -> None:
        """Pause tracking. Fixes received while paused are ignored."""

        self._tracking = False
        logger.info("tracking stopped")

    def subscribe(self, listener: VisitListener) -> Callable[[], None]:
        """Register a callback for every persisted record.

        Returns:
            A function that removes the listener again.
        """

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_fix(self, fix: PositionFix) -> VisitRecord | None:
        """Evaluate one fix.

        Returns:
            The persisted record, or None if the fix was rejected, ignored or could not
            be stored.
        """

        with self._lock:
            record = self._evaluate(fix)
            if record is not None:
                self._notify(record)
        return record

    def process(self, fixes: Iterable[PositionFix]) -> list[VisitRecord]:
        """Feed fixes in order and collect the records that were persisted."""

        out: list[VisitRecord] = []
        for fix in fixes:
            record = self.on_fix(fix)
            if record is not None:
                out.append(record)
        return out

    def _evaluate(self, fix: PositionFix) -> VisitRecord | None:
        if not self._tracking:
            return None
        if not is_valid_coordinate(fix.latitude, fix.longitude):
            logger.debug("ignoring out-of-range fix %s,%s", fix.latitude, fix.longitude)
            self._rejected += 1
            return None
        p = self._params
        if p.max_accuracy_m is not None and fix.horizontal_accuracy_m > p.max_accuracy_m:
            logger.debug("ignoring imprecise fix (%.1f m)", fix.horizontal_accuracy_m)
            self._rejected += 1
            return None

        self._current_fix = fix
        now_ms = self._clock() if self._clock is not None else fix.geo_time_ms

        elapsed_s = 0.0
        if self._last_accepted_ms is not None:
            elapsed_s = max(0.0, (now_ms - self._last_accepted_ms) / 1000.0)
        duration_s = 0.0 if elapsed_s > p.max_gap_s else elapsed_s

        if self._last_accepted is None:
            accept = True
        else:
            distance_m = haversine_m(
                self._last_accepted.latitude,
                self._last_accepted.longitude,
                fix.latitude,
                fix.longitude,
            )
            accept = distance_m > p.min_distance_m or elapsed_s > p.max_interval_s

        if not accept:
            self._rejected += 1
            return None

        record = VisitRecord(
            latitude=fix.latitude,
            longitude=fix.longitude,
            timestamp_ms=now_ms,
            duration_s=duration_s,
        )
        if not self._insert(record):
            self._dropped += 1
            return None

        self._last_accepted = fix
        self._last_accepted_ms = now_ms
        self._accepted += 1
        return record

    def _insert(self, record: VisitRecord) -> bool:
        attempts = 1 + max(0, self._params.insert_retries)
        for attempt in range(1, attempts + 1):
            try:
                self._store.insert(record)
                return True
            except StoreError as exc:
                logger.warning("failed to save visit record (attempt %s/%s): %s", attempt, attempts, exc)
        return False

    def _notify(self, record: VisitRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("visit listener %r failed", listener)
