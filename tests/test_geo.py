from __future__ import annotations

import pytest

from conftest import north_of
from visit_heatmap.geo import grid_cell_key, haversine_m, is_valid_coordinate, round_half_away
from visit_heatmap.models import VisitRecord


def test_haversine_known_distances() -> None:
    assert haversine_m(48.137, 11.575, 48.137, 11.575) == 0.0
    assert haversine_m(48.137, 11.575, north_of(48.137, 100.0), 11.575) == pytest.approx(100.0, rel=1e-6)
    # one degree of longitude on the equator
    assert haversine_m(0.0, 0.0, 0.0, 1.0) == pytest.approx(111_194.9, abs=1.0)


def test_grid_cell_key_format() -> None:
    assert grid_cell_key(37.77493, -122.41942) == "lat_37.775_lng_-122.419"
    assert grid_cell_key(1.0, 1.0) == "lat_1.0_lng_1.0"
    assert grid_cell_key(51.50735, -0.12776, precision=2) == "lat_51.51_lng_-0.13"


def test_ties_round_away_from_zero() -> None:
    assert grid_cell_key(0.0005, -0.0005) == "lat_0.001_lng_-0.001"
    assert round_half_away(2.5, 0) == 3.0
    assert round_half_away(-2.5, 0) == -3.0


def test_cells_straddling_zero_share_one_key() -> None:
    assert grid_cell_key(-0.0001, -0.0003) == grid_cell_key(0.0002, 0.0004) == "lat_0.0_lng_0.0"


def test_grid_cell_is_derived_from_coordinates_only() -> None:
    a = VisitRecord(latitude=40.7128, longitude=-74.006, timestamp_ms=0, duration_s=0.0)
    b = VisitRecord(latitude=40.7131, longitude=-74.0064, timestamp_ms=10_000_000, duration_s=1800.0)

    assert a.grid_cell == b.grid_cell == "lat_40.713_lng_-74.006"
    assert a.cell_key(2) == "lat_40.71_lng_-74.01"


@pytest.mark.parametrize(
    ("lat", "lon", "ok"),
    [
        (0.0, 0.0, True),
        (90.0, 180.0, True),
        (-90.0, -180.0, True),
        (90.0001, 0.0, False),
        (0.0, -180.0001, False),
        (float("nan"), 0.0, False),
        (0.0, float("-inf"), False),
    ],
)
def test_is_valid_coordinate(lat: float, lon: float, ok: bool) -> None:
    assert is_valid_coordinate(lat, lon) is ok
