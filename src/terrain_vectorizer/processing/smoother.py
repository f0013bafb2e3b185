"""
Smoother

Removes the staircase pattern marching squares leaves on contour lines and
rounds corners by replacing consecutive points with their midpoints. The
first and last point of every line are kept as they are.
"""

from typing import Dict, List

Point = List[float]
Polyline = List[Point]


def _side(line_start: Point, line_end: Point, point: Point) -> float:
    return ((line_start[1] - line_end[1]) * (point[0] - line_start[0]) +
            (line_end[0] - line_start[0]) * (point[1] - line_start[1]))


def is_staircase(line_start: Point, line_end: Point, p1: Point, p2: Point) -> bool:
    """True if p1 and p2 lie strictly on opposite sides of the line start-end."""
    return _side(line_start, line_end, p1) * _side(line_start, line_end, p2) < 0


def smooth_line(coordinates: Polyline) -> Polyline:
    """
    One smoothing pass over a polyline.

    Each window (prev, curr, next, next_next) either collapses a zigzag,
    keeping only next_next, or is replaced by the midpoint of curr and next.
    """
    count = len(coordinates)
    if count < 2:
        return [list(p) for p in coordinates]

    smoothed = [list(coordinates[0])]
    prev = coordinates[0]

    i = 1
    while i < count - 2:
        curr = coordinates[i]
        nxt = coordinates[i + 1]
        next_next = coordinates[i + 2]

        if is_staircase(prev, next_next, curr, nxt):
            smoothed.append(list(next_next))
            i += 2
        else:
            smoothed.append([(curr[0] + nxt[0]) / 2, (curr[1] + nxt[1]) / 2])
            prev = curr
            i += 1

    smoothed.append(list(coordinates[-1]))
    return smoothed


class Smoother:
    """Applies ``smooth_line`` to every polyline of every level."""

    def smooth(self, lines_by_level: Dict[int, List[Polyline]]) -> Dict[int, List[Polyline]]:
        return {
            level: [smooth_line(line) for line in lines]
            for level, lines in lines_by_level.items()
        }
