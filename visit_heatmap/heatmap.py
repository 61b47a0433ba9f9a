"""Grid aggregation and heat scoring of visit records."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from visit_heatmap.colors import heat_color
from visit_heatmap.geo import DEFAULT_CELL_PRECISION, grid_cell_key
from visit_heatmap.models import GridCellAggregate, HeatmapPoint, VisitRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class HeatmapParams:
    """Parameters controlling binning, scoring and point size."""

    precision: int = DEFAULT_CELL_PRECISION
    # Weight of visit frequency in the heat score; dwell time gets the rest.
    count_weight: float = 0.5
    base_radius_m: float = 250.0
    radius_span_m: float = 100.0


def aggregate_cells(
    records: Iterable[VisitRecord],
    precision: int = DEFAULT_CELL_PRECISION,
) -> dict[str, GridCellAggregate]:
    """Bin records into grid cells in one pass.

    Args:
        records: Visit records, typically a store snapshot.
        precision: Decimal places the coordinates are rounded to.

    Returns:
        Mapping cell key -> aggregate. Empty input gives an empty mapping.

    Notes:
        The representative coordinate of a cell is the first record seen for it, so with
        an insertion-ordered store it is the oldest record in the cell.
    """

    # key -> [count, total_duration_s, lat, lon]
    acc: dict[str, list[float]] = {}
    for r in records:
        key = grid_cell_key(r.latitude, r.longitude, precision)
        cur = acc.get(key)
        if cur is None:
            acc[key] = [1, r.duration_s, r.latitude, r.longitude]
        else:
            cur[0] += 1
            cur[1] += r.duration_s

    return {
        key: GridCellAggregate(
            cell_key=key,
            count=int(v[0]),
            total_duration_s=v[1],
            latitude=v[2],
            longitude=v[3],
        )
        for key, v in acc.items()
    }


def heat_score(
    count: int,
    total_duration_s: float,
    max_count: float,
    max_duration_s: float,
    count_weight: float = 0.5,
) -> float:
    """Blend normalized visit count and dwell time into a [0, 1] score.

    Zero maxima are treated as 1 so an all-zero snapshot scores 0 instead of NaN.
    """

    max_count = max_count or 1
    max_duration_s = max_duration_s or 1
    score = count_weight * (count / max_count) + (1.0 - count_weight) * (total_duration_s / max_duration_s)
    return min(1.0, max(0.0, score))


def radius_for_score(score: float, params: HeatmapParams | None = None) -> float:
    """Hotter cells draw larger circles, independent of zoom."""

    p = params or HeatmapParams()
    return p.base_radius_m + p.radius_span_m * score


def heatmap_from_aggregates(
    cells: Mapping[str, GridCellAggregate],
    params: HeatmapParams | None = None,
) -> list[HeatmapPoint]:
    """Score aggregates against the snapshot-wide maxima.

    Returns:
        Points sorted hottest first (ties by cell key); order carries no meaning for
        renderers.
    """

    if not cells:
        return []

    p = params or HeatmapParams()
    max_count = max(c.count for c in cells.values())
    max_duration_s = max(c.total_duration_s for c in cells.values())

    points: list[HeatmapPoint] = []
    for cell in cells.values():
        score = heat_score(cell.count, cell.total_duration_s, max_count, max_duration_s, p.count_weight)
        points.append(
            HeatmapPoint(
                cell_key=cell.cell_key,
                latitude=cell.latitude,
                longitude=cell.longitude,
                intensity=score,
                radius_m=radius_for_score(score, p),
                color=heat_color(score),
                count=cell.count,
                total_duration_s=cell.total_duration_s,
            )
        )
    points.sort(key=lambda pt: (-pt.intensity, pt.cell_key))
    return points


def compute_heatmap(
    records: Iterable[VisitRecord],
    params: HeatmapParams | None = None,
) -> list[HeatmapPoint]:
    """Records -> render primitives, recomputed from scratch on every call."""

    p = params or HeatmapParams()
    cells = aggregate_cells(records, p.precision)
    points = heatmap_from_aggregates(cells, p)
    logger.debug("heatmap: %s cells", len(points))
    return points


def write_heatmap_csv(points: Sequence[HeatmapPoint], out_path: str | Path) -> None:
    """Write heatmap points to CSV (one row per cell)."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(
            f,
            fieldnames=[
                "cell_key",
                "latitude",
                "longitude",
                "count",
                "total_duration_s",
                "intensity",
                "radius_m",
                "color",
            ],
        )
        w.writeheader()
        for pt in points:
            w.writerow(
                {
                    "cell_key": pt.cell_key,
                    "latitude": pt.latitude,
                    "longitude": pt.longitude,
                    "count": pt.count,
                    "total_duration_s": f"{pt.total_duration_s:.3f}",
                    "intensity": f"{pt.intensity:.6f}",
                    "radius_m": f"{pt.radius_m:.3f}",
                    "color": pt.color.to_hex(),
                }
            )
