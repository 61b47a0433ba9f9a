from __future__ import annotations

import csv
from pathlib import Path

import pytest

from visit_heatmap.csv_io import load_fixes, write_records_csv
from visit_heatmap.models import PositionFix, VisitRecord


def test_load_fixes_sorts_and_skips_bad_rows(tmp_path: Path) -> None:
    path = tmp_path / "Path.csv"
    path.write_text(
        "geoTime,latitude,longitude,altitude,horizontalAccuracy\n"
        "1700000060000,48.1371,11.5751,520.0,5.0\n"
        "1700000000000,48.137,11.575,519.0,\n"
        "oops,48.0,11.0,0,0\n"
        "1700000120000,,11.5752,0,0\n",
        encoding="utf-8",
    )

    fixes, summary = load_fixes(path)

    assert fixes == [
        PositionFix(geo_time_ms=1_700_000_000_000, latitude=48.137, longitude=11.575, horizontal_accuracy_m=-1.0),
        PositionFix(geo_time_ms=1_700_000_060_000, latitude=48.1371, longitude=11.5751, horizontal_accuracy_m=5.0),
    ]
    assert (summary.rows_total, summary.rows_parsed, summary.rows_skipped) == (4, 2, 2)
    assert "altitude" in summary.fieldnames


def test_load_fixes_missing_column(tmp_path: Path) -> None:
    path = tmp_path / "Path.csv"
    path.write_text("geoTime,lat,lon\n1,2,3\n", encoding="utf-8")

    with pytest.raises(KeyError, match="latitude"):
        load_fixes(path)


def test_write_records_csv(tmp_path: Path) -> None:
    out = tmp_path / "records.csv"
    records = [VisitRecord(latitude=48.1374, longitude=11.5756, timestamp_ms=0, duration_s=12.5)]

    n = write_records_csv(records, out, "UTC")

    with out.open(encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert n == 1
    assert rows[0]["time_local"] == "1970-01-01 00:00:00+00:00"
    assert rows[0]["duration_s"] == "12.500"
    assert rows[0]["grid_cell"] == "lat_48.137_lng_11.576"
