"""CSV input/output for raw fix exports and visit records."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from visit_heatmap.models import PositionFix, VisitRecord
from visit_heatmap.timeutils import local_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def _fix_from_row(row: dict[str, str]) -> PositionFix:
    return PositionFix(
        geo_time_ms=_parse_int(row["geoTime"]),
        latitude=_parse_float(row["latitude"]),
        longitude=_parse_float(row["longitude"]),
        horizontal_accuracy_m=_parse_float(row.get("horizontalAccuracy", "-1") or "-1"),
    )


def load_fixes(csv_path: str | Path) -> tuple[list[PositionFix], CsvSummary]:
    """Load raw fixes from an exported track CSV, sorted by time.

    Args:
        csv_path: Path to the CSV. Required columns: geoTime (epoch ms), latitude,
            longitude. horizontalAccuracy is optional.

    Returns:
        (fixes, summary)

    Raises:
        KeyError: If a required column is missing.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[PositionFix] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        missing = [c for c in ("geoTime", "latitude", "longitude") if c not in fieldnames]
        if missing:
            raise KeyError(f"CSV is missing required columns {missing}; found: {list(fieldnames)}")
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_fix_from_row(row))
            except (ValueError, TypeError, AttributeError):
                # damaged or empty rows
                continue

    parsed.sort(key=lambda fx: fx.geo_time_ms)
    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("skipped %s unparsable CSV rows", summary.rows_skipped)
    return parsed, summary


def write_records_csv(
    records: Iterable[VisitRecord],
    out_path: str | Path,
    tz_name: str,
    precision: int = 3,
) -> int:
    """Export records to a human-readable CSV.

    Returns:
        Number of rows written.
    """

    p = Path(out_path)
    n = 0
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "time_local",
                "timestamp_ms",
                "latitude",
                "longitude",
                "duration_s",
                "grid_cell",
            ],
        )
        w.writeheader()
        for r in records:
            w.writerow(
                {
                    "time_local": local_time(r.timestamp_ms, tz_name).isoformat(sep=" "),
                    "timestamp_ms": r.timestamp_ms,
                    "latitude": r.latitude,
                    "longitude": r.longitude,
                    "duration_s": f"{r.duration_s:.3f}",
                    "grid_cell": r.cell_key(precision),
                }
            )
            n += 1
    return n
