"""Heat color gradient: purple -> blue -> cyan -> green/yellow -> orange -> red."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final


@dataclass(frozen=True, slots=True)
class RGB:
    """Color with channels in [0, 1]."""

    red: float
    green: float
    blue: float

    def to_hex(self) -> str:
        """Return ``#rrggbb``."""

        return "#" + "".join(f"{_to_byte(c):02x}" for c in (self.red, self.green, self.blue))

    def to_rgba(self, alpha: float = 1.0) -> tuple[int, int, int, float]:
        return (_to_byte(self.red), _to_byte(self.green), _to_byte(self.blue), alpha)


def _to_byte(channel: float) -> int:
    return int(round(min(1.0, max(0.0, channel)) * 255))


BAND_WIDTH: Final[float] = 0.2

# (band start score, start color, per-unit-t slope) for each of the five bands.
# The end of band i (t = 1) is the start color of band i + 1.
GRADIENT_BANDS: Final[tuple[tuple[float, RGB, RGB], ...]] = (
    (0.0, RGB(0.5, 0.0, 0.8), RGB(-0.5, 0.2, 0.2)),  # purple -> blue
    (0.2, RGB(0.0, 0.2, 1.0), RGB(0.2, 0.5, 0.0)),  # blue -> cyan
    (0.4, RGB(0.2, 0.7, 1.0), RGB(0.5, 0.3, -0.5)),  # cyan -> green/yellow
    (0.6, RGB(0.7, 1.0, 0.5), RGB(0.3, -0.3, -0.5)),  # yellow -> orange
    (0.8, RGB(1.0, 0.7, 0.0), RGB(0.0, -0.7, 0.0)),  # orange -> red
)


def band_color(band: int, t: float) -> RGB:
    """Interpolate inside one gradient band.

    Args:
        band: Band index, 0..4.
        t: Position inside the band, 0.0 at its start and 1.0 at its end.
    """

    _, start, slope = GRADIENT_BANDS[band]
    return RGB(
        red=start.red + slope.red * t,
        green=start.green + slope.green * t,
        blue=start.blue + slope.blue * t,
    )


def band_index(score: float) -> int:
    """Return the band a (clamped) score falls into; 1.0 belongs to the last band."""

    for i, (band_start, _, _) in enumerate(GRADIENT_BANDS[1:]):
        if score < band_start:
            return i
    return len(GRADIENT_BANDS) - 1


def heat_color(score: float) -> RGB:
    """Map a heat score in [0, 1] to a color. Out-of-range scores are clamped."""

    s = min(1.0, max(0.0, score))
    band = band_index(s)
    band_start = GRADIENT_BANDS[band][0]
    return band_color(band, (s - band_start) / BAND_WIDTH)
