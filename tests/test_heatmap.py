from __future__ import annotations

import pytest

from conftest import T0_MS
from visit_heatmap.heatmap import (
    HeatmapParams,
    aggregate_cells,
    compute_heatmap,
    heat_score,
    heatmap_from_aggregates,
    radius_for_score,
)
from visit_heatmap.models import VisitRecord


def _rec(lat: float, lon: float, seconds: float, duration_s: float) -> VisitRecord:
    return VisitRecord(latitude=lat, longitude=lon, timestamp_ms=T0_MS + int(seconds * 1000), duration_s=duration_s)


SCENARIO = [
    _rec(0.00001, 0.00001, 0, 300.0),
    _rec(0.00001, 0.00001, 10, 300.0),
    _rec(1.0, 1.0, 20, 10.0),
]


def test_empty_store_draws_nothing() -> None:
    assert aggregate_cells([]) == {}
    assert compute_heatmap([]) == []


def test_two_cell_scenario() -> None:
    cells = aggregate_cells(SCENARIO)

    assert set(cells) == {"lat_0.0_lng_0.0", "lat_1.0_lng_1.0"}
    home = cells["lat_0.0_lng_0.0"]
    assert (home.count, home.total_duration_s) == (2, 600.0)
    away = cells["lat_1.0_lng_1.0"]
    assert (away.count, away.total_duration_s) == (1, 10.0)

    points = compute_heatmap(SCENARIO)
    by_key = {pt.cell_key: pt for pt in points}
    hot = by_key["lat_0.0_lng_0.0"]
    cold = by_key["lat_1.0_lng_1.0"]

    assert hot.intensity == 1.0
    assert hot.radius_m == 350.0
    assert (hot.color.red, hot.color.green, hot.color.blue) == pytest.approx((1.0, 0.0, 0.0))
    assert hot.color.to_hex() == "#ff0000"
    assert cold.intensity == pytest.approx(0.5 * 0.5 + 0.5 * 10.0 / 600.0)
    assert cold.intensity == pytest.approx(0.258, abs=1e-3)
    assert cold.radius_m == pytest.approx(250.0 + 100.0 * cold.intensity)
    assert [pt.cell_key for pt in points] == ["lat_0.0_lng_0.0", "lat_1.0_lng_1.0"]


def test_single_record_without_dwell_scores_on_count_only() -> None:
    points = compute_heatmap([_rec(52.52, 13.405, 0, 0.0)])

    assert len(points) == 1
    # zero dwell everywhere: the time term defaults its denominator to 1
    assert points[0].intensity == pytest.approx(0.5)


def test_all_zero_durations_do_not_produce_nan() -> None:
    records = [_rec(10.0, 10.0, 0, 0.0), _rec(10.0, 10.0, 5, 0.0), _rec(20.0, 20.0, 10, 0.0)]

    scores = sorted(pt.intensity for pt in compute_heatmap(records))

    assert scores == [pytest.approx(0.25), pytest.approx(0.5)]


def test_representative_coordinate_is_first_record_seen() -> None:
    records = [
        _rec(0.0001, 0.0002, 0, 1.0),
        _rec(0.0004, 0.0003, 1, 1.0),
        _rec(-0.0004, -0.0001, 2, 1.0),
    ]

    cells = aggregate_cells(records)

    assert list(cells) == ["lat_0.0_lng_0.0"]
    cell = cells["lat_0.0_lng_0.0"]
    assert (cell.latitude, cell.longitude) == (0.0001, 0.0002)
    assert cell.count == 3


def test_same_cell_aggregates_together_regardless_of_position_inside_it() -> None:
    records = [_rec(37.7746, -122.4194, 0, 60.0), _rec(37.7754, -122.4186, 1, 30.0)]

    cells = aggregate_cells(records)

    assert len(cells) == 1
    assert next(iter(cells.values())).total_duration_s == 90.0


def test_coarser_precision_merges_cells() -> None:
    records = [_rec(37.771, -122.41, 0, 1.0), _rec(37.774, -122.41, 1, 1.0)]

    assert len(aggregate_cells(records, precision=3)) == 2
    assert len(aggregate_cells(records, precision=2)) == 1


def test_scores_stay_in_unit_interval_when_maxima_are_split() -> None:
    records = [_rec(1.0, 1.0, i, 1.0) for i in range(5)] + [_rec(2.0, 2.0, 10, 900.0)]

    points = compute_heatmap(records)

    assert all(0.0 <= pt.intensity <= 1.0 for pt in points)
    # max count and max dwell live in different cells: nobody reaches 1
    assert all(pt.intensity < 1.0 for pt in points)


def test_cell_with_both_maxima_is_the_only_one_at_one() -> None:
    records = [_rec(1.0, 1.0, i, 100.0) for i in range(3)] + [_rec(2.0, 2.0, 10, 50.0), _rec(3.0, 3.0, 20, 0.0)]

    points = compute_heatmap(records)

    assert [pt.intensity for pt in points].count(1.0) == 1
    assert points[0].cell_key == "lat_1.0_lng_1.0"


def test_heat_score_guards_zero_maxima() -> None:
    assert heat_score(0, 0.0, 0, 0.0) == 0.0
    assert heat_score(2, 0.0, 2, 0.0) == 0.5


def test_count_weight_shifts_the_blend() -> None:
    assert heat_score(1, 0.0, 1, 100.0, count_weight=1.0) == 1.0
    assert heat_score(1, 0.0, 1, 100.0, count_weight=0.0) == 0.0


def test_radius_is_affine_and_increasing() -> None:
    assert radius_for_score(0.0) == 250.0
    assert radius_for_score(1.0) == 350.0
    radii = [radius_for_score(s / 10) for s in range(11)]
    assert radii == sorted(set(radii))
    assert radius_for_score(0.5, HeatmapParams(base_radius_m=10.0, radius_span_m=20.0)) == 20.0


def test_heatmap_from_aggregates_reuses_aggregation() -> None:
    cells = aggregate_cells(SCENARIO)

    assert heatmap_from_aggregates(cells) == compute_heatmap(SCENARIO)
    assert heatmap_from_aggregates({}) == []
