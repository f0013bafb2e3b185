"""
Contour Extractor

Marching-squares pass over an elevation grid. Every 2x2 cell whose local
elevation range contains a contour level contributes at most one 2-point
segment for that level.

Per-cell rules, in order of precedence:

1. all four corners on the level: flat, no line
2. three corners on the level: the diagonal between the two corners that
   are not adjacent to the odd one, if the odd corner is lower
3. two corners on the level: the pair itself when diagonal, otherwise the
   pair if one of the remaining corners is lower
4. otherwise: interpolate crossings on the four edges
"""

import math
from typing import Dict, List, Optional, Tuple

import structlog

from ..data_ingestion.grid_assembler import SENTINEL, ElevationGrid

Point = List[float]
Segment = List[Point]

logger = structlog.get_logger(component="ContourExtractor")

STEP_SIZES = {
    11: 100,
    12: 50,
    13: 20,
    14: 10,
}


def step_size_for_zoom(zoom: int) -> int:
    """Contour interval for a zoom level."""
    return STEP_SIZES.get(zoom, 1)


def contour_index(level: float, zoom: int, step: Optional[int] = None) -> float:
    """
    Position of a level within its decade of steps.

    The remainder keeps the sign of the level, so levels below sea level
    get indices in (-10, 0].
    """
    step = step or step_size_for_zoom(zoom)
    index = math.fmod(level / step, 10)
    return int(index) if float(index).is_integer() else index


def elevation_range(grid: ElevationGrid) -> Optional[Tuple[float, float]]:
    """Min/max over non-sentinel cells, or None if the grid holds no data."""
    mask = grid.has_data
    if not mask.any():
        return None
    values = grid.elevation[mask]
    return float(values.min()), float(values.max())


def contour_levels(grid: ElevationGrid, step: int) -> List[int]:
    """Every multiple of ``step`` in ``[ceil(min), floor(max)]``."""
    bounds = elevation_range(grid)
    if bounds is None:
        return []
    low = math.ceil(bounds[0])
    high = math.floor(bounds[1])
    first = -(-low // step) * step
    return list(range(first, high + 1, step))


def _interpolate(a: Tuple[float, float, float], b: Tuple[float, float, float],
                 level: float, axis: int) -> Optional[Point]:
    """
    Crossing of ``level`` on the edge a-b.

    Points are (lon, lat, elevation); ``axis`` is 0 to vary longitude
    (horizontal edge) and 1 to vary latitude (vertical edge). Callers pass
    the endpoints in grid order so shared edges give identical points.
    """
    if a[2] == b[2]:
        return None
    if a[2] == level:
        return [a[0], a[1]]
    if b[2] == level:
        return [b[0], b[1]]
    if (b[2] < level < a[2]) or (a[2] < level < b[2]):
        slope = (a[axis] - b[axis]) / (a[2] - b[2])
        value = slope * level + (a[axis] - slope * a[2])
        if axis == 0:
            return [value, a[1]]
        return [a[0], value]
    return None


def find_line(top_left: Tuple[float, float, float], top_right: Tuple[float, float, float],
              bottom_left: Tuple[float, float, float], bottom_right: Tuple[float, float, float],
              level: float) -> Optional[Segment]:
    """
    Contour segment through one 2x2 cell.

    Corners are (lon, lat, elevation) tuples. Returns a 2-point segment
    ``[[lon, lat], [lon, lat]]`` or None.
    """
    corners = (top_left, top_right, bottom_left, bottom_right)
    if any(c[2] == SENTINEL for c in corners):
        return None

    on_level = [c[2] == level for c in corners]
    equal_count = sum(on_level)

    if equal_count == 4:
        return None

    if equal_count == 3:
        # the odd corner must be below the flat trio
        if top_left[2] < level or bottom_right[2] < level:
            return [[top_right[0], top_right[1]], [bottom_left[0], bottom_left[1]]]
        if top_right[2] < level or bottom_left[2] < level:
            return [[top_left[0], top_left[1]], [bottom_right[0], bottom_right[1]]]
        return None

    if equal_count == 2:
        tl, tr, bl, br = on_level
        if tl and br:
            return [[top_left[0], top_left[1]], [bottom_right[0], bottom_right[1]]]
        if tr and bl:
            return [[top_right[0], top_right[1]], [bottom_left[0], bottom_left[1]]]

        line = [[c[0], c[1]] for c, eq in zip(corners, on_level) if eq]
        lower = any(c[2] < level for c, eq in zip(corners, on_level) if not eq)
        return line if lower else None

    # general case; edges are passed in grid order (top/left corner first)
    crossings = [
        _interpolate(top_left, top_right, level, 0),      # top
        _interpolate(top_right, bottom_right, level, 1),  # right
        _interpolate(bottom_left, bottom_right, level, 0),  # bottom
        _interpolate(top_left, bottom_left, level, 1),    # left
    ]

    points: List[Point] = []
    for point in crossings:
        if point is not None and point not in points:
            points.append(point)

    if len(points) == 4:
        # saddle: keep the segment cutting off the top-left corner
        return [points[0], points[3]]

    if len(points) != 2:
        return None

    return points


class ContourExtractor:
    """Runs marching squares over a grid for every contour level it spans."""

    def __init__(self, step_size: Optional[int] = None):
        self.step_size = step_size

    def extract(self, grid: ElevationGrid, step: Optional[int] = None) -> Dict[int, List[Segment]]:
        """
        Segments per contour level.

        Args:
            grid: Assembled elevation grid
            step: Contour interval; defaults to the configured step or the
                zoom table

        Returns:
            Mapping of level to its segments; levels without segments are
            left out
        """
        if step is None:
            step = self.step_size
        if step is None:
            step = step_size_for_zoom(grid.tile.zoom) if grid.tile else 1

        levels = contour_levels(grid, step)
        if not levels:
            return {}

        size = grid.size
        elevation = grid.elevation.tolist()
        lon = grid.lon.tolist()
        lat = grid.lat.tolist()

        contours: Dict[int, List[Segment]] = {}

        for y in range(size):
            for x in range(size):
                tl = (lon[y][x], lat[y][x], elevation[y][x])
                tr = (lon[y][x + 1], lat[y][x + 1], elevation[y][x + 1])
                bl = (lon[y + 1][x], lat[y + 1][x], elevation[y + 1][x])
                br = (lon[y + 1][x + 1], lat[y + 1][x + 1], elevation[y + 1][x + 1])

                values = (tl[2], tr[2], bl[2], br[2])
                if SENTINEL in values:
                    continue

                cell_min = min(values)
                cell_max = max(values)
                first = -(-math.ceil(cell_min) // step) * step

                for level in range(first, math.floor(cell_max) + 1, step):
                    segment = find_line(tl, tr, bl, br, level)
                    if segment is not None:
                        contours.setdefault(level, []).append(segment)

        logger.debug(
            "Contours extracted",
            tile_id=grid.tile.tile_id if grid.tile else None,
            levels=len(contours),
            segments=sum(len(s) for s in contours.values())
        )

        return contours
