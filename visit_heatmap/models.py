"""Data models for position fixes, visit records and heatmap output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from visit_heatmap.geo import grid_cell_key

if TYPE_CHECKING:
    from visit_heatmap.colors import RGB


@dataclass(frozen=True, slots=True)
class PositionFix:
    """A single raw position report from the location sensor.

    Attributes:
        geo_time_ms: Unix epoch milliseconds.
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        horizontal_accuracy_m: Horizontal accuracy in meters. -1.0 when unknown.
    """

    geo_time_ms: int
    latitude: float
    longitude: float
    horizontal_accuracy_m: float = -1.0


@dataclass(frozen=True, slots=True)
class VisitRecord:
    """An accepted fix plus the dwell time attributed to it.

    Note:
        ``grid_cell`` is derived on read and never persisted.
    """

    latitude: float
    longitude: float
    timestamp_ms: int
    duration_s: float = 0.0

    @property
    def grid_cell(self) -> str:
        """Aggregation key at the default ~111m resolution."""

        return grid_cell_key(self.latitude, self.longitude)

    def cell_key(self, precision: int) -> str:
        return grid_cell_key(self.latitude, self.longitude, precision)


@dataclass(frozen=True, slots=True)
class GridCellAggregate:
    """Per-cell visit statistics for one heatmap pass.

    ``latitude``/``longitude`` come from the first record seen for the cell, not a centroid.
    """

    cell_key: str
    count: int
    total_duration_s: float
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class HeatmapPoint:
    """One render primitive: where to draw, how big and in which color."""

    cell_key: str
    latitude: float
    longitude: float
    intensity: float
    radius_m: float
    color: RGB
    count: int
    total_duration_s: float


DEFAULT_TZ: Final[str] = "UTC"

# Upper bound of the dwell time a single record may carry.
MAX_RECORD_DURATION_S: Final[float] = 30 * 60.0
