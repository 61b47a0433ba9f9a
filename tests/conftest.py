"""Shared fixtures and fakes for the visit_heatmap tests."""

from __future__ import annotations

import pytest

from visit_heatmap.models import PositionFix, VisitRecord
from visit_heatmap.store import StoreError

METERS_PER_DEGREE_LAT = 6_371_000.0 * 3.141592653589793 / 180.0
T0_MS = 1_767_225_600_000  # 2026-01-01 00:00:00 UTC


def north_of(lat: float, meters: float) -> float:
    """Latitude ``meters`` north of ``lat`` (exact on a sphere)."""

    return lat + meters / METERS_PER_DEGREE_LAT


def fix_at(seconds: float, lat: float = 48.137, lon: float = 11.575) -> PositionFix:
    return PositionFix(geo_time_ms=T0_MS + int(seconds * 1000), latitude=lat, longitude=lon)


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start_ms: int = T0_MS) -> None:
        self.now_ms = start_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += int(seconds * 1000)

    def __call__(self) -> int:
        return self.now_ms


class FlakyStore:
    """Store that fails the first ``failures`` inserts, then behaves."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.attempts = 0
        self.records: list[VisitRecord] = []

    def insert(self, record: VisitRecord) -> None:
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise StoreError("disk full")
        self.records.append(record)

    def query_all(self) -> tuple[VisitRecord, ...]:
        return tuple(self.records)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
