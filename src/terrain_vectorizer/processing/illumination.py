"""
Illumination Analyzer

Per-cell slope and aspect from a 3x3 Sobel-style kernel, then hillshade
intensity (0-255) for four fixed light directions:

    intensity = 255 * (cos(zenith) * cos(slope)
                       + sin(zenith) * sin(slope) * cos(azimuth - aspect))

Azimuths 0 and 310 give the two shadow intensities, 130 and 180 the two
highlight intensities. Each cell keeps the minimum of each pair.

Reference: https://pro.arcgis.com/en/pro-app/tool-reference/3d-analyst/how-hillshade-works.htm
"""

import math
from typing import Union

import numpy as np
import structlog

from ..data_ingestion.grid_assembler import SENTINEL, ElevationGrid

logger = structlog.get_logger(component="IlluminationAnalyzer")

ZENITH_DEG = 45.0
DARK_AZIMUTHS = (0.0, 310.0)
LIGHT_AZIMUTHS = (130.0, 180.0)

ArrayLike = Union[float, np.ndarray]


def azimuth_to_math_angle(azimuth_deg: float) -> float:
    """Compass bearing to a mathematical angle in radians."""
    return math.radians(360.0 - azimuth_deg + 90.0)


def hillshade_intensity(slope: ArrayLike, aspect: ArrayLike, azimuth_deg: float,
                        zenith_deg: float = ZENITH_DEG) -> ArrayLike:
    """Illumination of a surface with the given slope/aspect (radians)."""
    zenith = math.radians(zenith_deg)
    azimuth = azimuth_to_math_angle(azimuth_deg)
    return 255.0 * (
        math.cos(zenith) * np.cos(slope) +
        math.sin(zenith) * np.sin(slope) * np.cos(azimuth - aspect)
    )


def slope_aspect(dz_dx: np.ndarray, dz_dy: np.ndarray):
    """Slope and aspect in radians, aspect normalised into [0, 2pi)."""
    slope = np.arctan(np.sqrt(dz_dx ** 2 + dz_dy ** 2))

    aspect = np.arctan2(dz_dy, -dz_dx)
    aspect = np.where(aspect < 0, aspect + 2 * math.pi, aspect)

    # flat in x: face north/south by the sign of dz/dy, else fall back to slope
    flat_x = dz_dx == 0
    aspect = np.where(flat_x & (dz_dy > 0), math.pi / 2, aspect)
    aspect = np.where(flat_x & (dz_dy < 0), 2 * math.pi - math.pi / 2, aspect)
    aspect = np.where(flat_x & (dz_dy == 0), slope, aspect)

    return slope, aspect


class IlluminationAnalyzer:
    """Fills ``grid.dark`` and ``grid.light`` for every computable cell."""

    def __init__(self, cell_size: float = 5.0, zenith_deg: float = ZENITH_DEG):
        self.cell_size = cell_size
        self.zenith_deg = zenith_deg

    def analyze(self, grid: ElevationGrid) -> ElevationGrid:
        e = grid.elevation

        center = e[1:-1, 1:-1]
        nw, n, ne = e[:-2, :-2], e[:-2, 1:-1], e[:-2, 2:]
        w, east = e[1:-1, :-2], e[1:-1, 2:]
        sw, s, se = e[2:, :-2], e[2:, 1:-1], e[2:, 2:]

        valid = center != SENTINEL
        for neighbor in (nw, n, ne, w, east, sw, s, se):
            valid &= neighbor != SENTINEL

        scale = 8 * self.cell_size
        dz_dx = ((ne + 2 * east + se) - (nw + 2 * w + sw)) / scale
        dz_dy = ((sw + 2 * s + se) - (nw + 2 * n + ne)) / scale

        slope, aspect = slope_aspect(dz_dx, dz_dy)

        dark_one, dark_two = (
            hillshade_intensity(slope, aspect, az, self.zenith_deg) for az in DARK_AZIMUTHS
        )
        light_one, light_two = (
            hillshade_intensity(slope, aspect, az, self.zenith_deg) for az in LIGHT_AZIMUTHS
        )

        grid.dark[:] = np.nan
        grid.light[:] = np.nan
        grid.dark[1:-1, 1:-1] = np.where(valid, np.minimum(dark_one, dark_two), np.nan)
        # min as for shadows; the highlight thresholds are tuned to this
        grid.light[1:-1, 1:-1] = np.where(valid, np.minimum(light_one, light_two), np.nan)

        logger.debug(
            "Illumination computed",
            tile_id=grid.tile.tile_id if grid.tile else None,
            cells=int(valid.sum())
        )

        return grid
