"""
Hull Tracer

Turns the per-cell shade intensities into closed shadow/highlight polygons.

For every band (a threshold on ``dark`` or ``light``) the tile interior is
scanned row by row for cells on the border of the band. From each such cell
the border is followed with Moore-neighbour tracing until the trace returns
to its start. Rings whose first point lies inside an earlier ring of the
same band become holes of that ring's polygon.

Tracing runs on integer cell indices; coordinates are attached at the end.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import shapely
import structlog
from shapely.geometry import Polygon

from ..data_ingestion.grid_assembler import ElevationGrid

logger = structlog.get_logger(component="HullTracer")

Cell = Tuple[int, int]
Ring = List[List[float]]

# (shade, level, grid attribute)
BANDS = (
    ('shadow', 'ultra', 'dark'),
    ('shadow', 'high', 'dark'),
    ('shadow', 'medium', 'dark'),
    ('shadow', 'low', 'dark'),
    ('highlight', 'high', 'light'),
    ('highlight', 'low', 'light'),
)

# thresholds in BANDS order; flat ground shades to 255 * cos(45deg) ~ 180
DEFAULT_THRESHOLDS = (60.0, 100.0, 140.0, 165.0, 120.0, 160.0)
HULL_THRESHOLDS: Dict[int, Tuple[float, ...]] = {
    11: (40.0, 80.0, 120.0, 155.0, 100.0, 150.0),
    12: (50.0, 90.0, 130.0, 160.0, 110.0, 155.0),
    13: DEFAULT_THRESHOLDS,
    14: (70.0, 110.0, 145.0, 170.0, 130.0, 165.0),
}

MIN_RING_POINTS = 5
THINNING_MIN_ZOOM = 10

# clockwise from west, rows growing southwards
DIRECTIONS = (
    (0, -1),   # W
    (-1, -1),  # NW
    (-1, 0),   # N
    (-1, 1),   # NE
    (0, 1),    # E
    (1, 1),    # SE
    (1, 0),    # S
    (1, -1),   # SW
)


def thresholds_for_zoom(zoom: int) -> Tuple[float, ...]:
    return HULL_THRESHOLDS.get(zoom, DEFAULT_THRESHOLDS)


@dataclass
class HullPolygon:
    """Outer ring plus holes, as [lon, lat] coordinates."""
    outer: Ring
    holes: List[Ring] = field(default_factory=list)


@dataclass
class ShadeBand:
    """All polygons of one shade band."""
    shade: str
    level: str
    threshold: float
    polygons: List[HullPolygon] = field(default_factory=list)


def is_edge_candidate(mask: List[List[bool]], y: int, x: int) -> bool:
    """
    Whether in-band cell (y, x) starts a border of its region.

    The rules differ for the left column, right column, bottom row and the
    interior of the block.
    """
    last_row = len(mask) - 1
    last_col = len(mask[0]) - 1

    if x == 0:
        if y == last_row:
            return x < last_col and mask[y][x + 1]
        if x == last_col:
            return mask[y + 1][x]
        return mask[y][x + 1] or mask[y + 1][x] or mask[y + 1][x + 1]

    if mask[y][x - 1]:
        return False

    if x == last_col:
        if y == last_row:
            return False
        return mask[y + 1][x] or mask[y + 1][x - 1]

    if y == last_row:
        return mask[y][x + 1]

    return (mask[y][x + 1] or mask[y + 1][x] or
            mask[y + 1][x + 1] or mask[y + 1][x - 1])


def trace_ring(mask: List[List[bool]], visited: np.ndarray, start: Cell,
               max_steps: Optional[int] = None) -> List[Cell]:
    """
    Moore-neighbour trace of the region border through ``start``.

    ``visited`` is indexed like the mask. The returned ring ends on the
    start cell unless the start has no in-band neighbour.
    """
    rows = len(mask)
    cols = len(mask[0])
    if max_steps is None:
        max_steps = 8 * rows * cols

    y, x = start
    visited[y, x] = True
    ring = [start]
    # backtrack direction: the scan reached start from its west side
    direction = 0

    for _ in range(max_steps):
        for _ in range(8):
            direction = (direction + 1) % 8
            dy, dx = DIRECTIONS[direction]
            ny, nx = y + dy, x + dx
            if 0 <= ny < rows and 0 <= nx < cols and mask[ny][nx]:
                break
        else:
            return ring

        y, x = ny, nx
        visited[y, x] = True
        ring.append((y, x))
        if (y, x) == start:
            return ring

        # look back at the cell we came from, then keep sweeping clockwise
        direction = (direction + 4) % 8

    logger.warning("Trace did not close", start=start, steps=max_steps)
    return ring


def _direction(a: Cell, b: Cell) -> float:
    return math.atan2(b[0] - a[0], b[1] - a[1])


def simplify_ring(ring: List[Cell], zoom: int) -> List[Cell]:
    """Thin dense rings at high zoom, then drop colinear points."""
    if len(ring) > 6 and zoom >= THINNING_MIN_ZOOM:
        ring = [ring[0]] + ring[1:-1][::2] + [ring[-1]]

    if len(ring) < 3:
        return list(ring)

    collapsed = [ring[0]]
    for i in range(1, len(ring) - 1):
        if _direction(collapsed[-1], ring[i]) == _direction(ring[i], ring[i + 1]):
            continue
        collapsed.append(ring[i])
    collapsed.append(ring[-1])
    return collapsed


class HullTracer:
    """Traces shadow and highlight polygons over an illuminated grid."""

    def __init__(self, thresholds: Optional[Tuple[float, ...]] = None):
        if thresholds is not None and len(thresholds) != len(BANDS):
            raise ValueError(f"Expected {len(BANDS)} thresholds, got {len(thresholds)}")
        self.thresholds = thresholds

    def trace(self, grid: ElevationGrid, zoom: Optional[int] = None) -> List[ShadeBand]:
        """
        Polygons for every band, in band order.

        Bands without any polygon are returned empty.
        """
        if zoom is None:
            zoom = grid.tile.zoom if grid.tile else 0
        thresholds = self.thresholds or thresholds_for_zoom(zoom)

        bands = []
        for (shade, level, attribute), threshold in zip(BANDS, thresholds):
            values = getattr(grid, attribute)[1:-1, 1:-1]
            band = ShadeBand(shade=shade, level=level, threshold=threshold)
            band.polygons = self._trace_band(grid, values <= threshold, zoom)
            bands.append(band)

        logger.debug(
            "Hulls traced",
            tile_id=grid.tile.tile_id if grid.tile else None,
            polygons={f"{b.shade}/{b.level}": len(b.polygons) for b in bands}
        )

        return bands

    def _trace_band(self, grid: ElevationGrid, in_band: np.ndarray, zoom: int) -> List[HullPolygon]:
        grid.reset_visited()
        visited = grid.visited[1:-1, 1:-1]
        mask = in_band.tolist()
        size = len(mask)

        outers: List[Polygon] = []
        rings: List[Tuple[List[Cell], List[List[Cell]]]] = []

        for y in range(size):
            row = mask[y]
            for x in range(size):
                if not row[x] or visited[y, x]:
                    continue
                if not is_edge_candidate(mask, y, x):
                    continue

                traced = trace_ring(mask, visited, (y, x))
                if traced[-1] != traced[0]:
                    continue

                ring = simplify_ring(traced, zoom)
                if len(ring) < MIN_RING_POINTS:
                    continue

                first_y, first_x = ring[0]
                for outer, (_, holes) in zip(outers, rings):
                    if shapely.contains_xy(outer, first_x, first_y):
                        holes.append(ring)
                        break
                else:
                    outers.append(Polygon([(cx, cy) for cy, cx in ring]))
                    rings.append((ring, []))

        return [
            HullPolygon(
                outer=self._to_coordinates(grid, outer),
                holes=[self._to_coordinates(grid, hole) for hole in holes]
            )
            for outer, holes in rings
        ]

    @staticmethod
    def _to_coordinates(grid: ElevationGrid, ring: List[Cell]) -> Ring:
        return [[float(grid.lon[y + 1, x + 1]), float(grid.lat[y + 1, x + 1])] for y, x in ring]
