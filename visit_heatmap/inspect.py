"""Summaries of a visit record store."""

from __future__ import annotations

from dataclasses import dataclass
from statistics import median
from typing import Sequence

from visit_heatmap.geo import DEFAULT_CELL_PRECISION
from visit_heatmap.heatmap import aggregate_cells
from visit_heatmap.models import MAX_RECORD_DURATION_S, GridCellAggregate, VisitRecord


@dataclass(frozen=True, slots=True)
class RecordIntervals:
    """Time between consecutive records (seconds).

    ``idle_gaps`` counts intervals longer than a record may carry as dwell time, i.e. the
    places where tracking was paused or the device was off.
    """

    count: int
    shortest_s: float
    median_s: float
    longest_s: float
    idle_gaps: int


@dataclass(frozen=True, slots=True)
class StoreSummary:
    """High-level store inspection result."""

    records: int
    cells: int
    min_time_ms: int | None
    max_time_ms: int | None
    intervals: RecordIntervals | None
    total_duration_s: float
    zero_duration_records: int
    busiest_cell: GridCellAggregate | None
    longest_dwell_cell: GridCellAggregate | None


def record_intervals(records: Sequence[VisitRecord]) -> RecordIntervals | None:
    """Interval stats over records ordered by timestamp. None with fewer than two records."""

    times = sorted(r.timestamp_ms for r in records)
    gaps = [(b - a) / 1000.0 for a, b in zip(times, times[1:])]
    if not gaps:
        return None
    return RecordIntervals(
        count=len(gaps),
        shortest_s=min(gaps),
        median_s=median(gaps),
        longest_s=max(gaps),
        idle_gaps=sum(1 for g in gaps if g > MAX_RECORD_DURATION_S),
    )


def inspect_records(
    records: Sequence[VisitRecord],
    precision: int = DEFAULT_CELL_PRECISION,
) -> StoreSummary:
    """Inspect already-loaded records."""

    if not records:
        return StoreSummary(
            records=0,
            cells=0,
            min_time_ms=None,
            max_time_ms=None,
            intervals=None,
            total_duration_s=0.0,
            zero_duration_records=0,
            busiest_cell=None,
            longest_dwell_cell=None,
        )

    cells = aggregate_cells(records, precision)
    return StoreSummary(
        records=len(records),
        cells=len(cells),
        min_time_ms=min(r.timestamp_ms for r in records),
        max_time_ms=max(r.timestamp_ms for r in records),
        intervals=record_intervals(records),
        total_duration_s=sum(r.duration_s for r in records),
        zero_duration_records=sum(1 for r in records if r.duration_s == 0),
        busiest_cell=max(cells.values(), key=lambda c: c.count),
        longest_dwell_cell=max(cells.values(), key=lambda c: c.total_duration_s),
    )
