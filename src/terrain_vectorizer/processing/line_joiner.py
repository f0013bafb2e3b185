"""
Line Joiner

Stitches the 2-point marching-squares segments of each contour level into
polylines by exact endpoint matching. Joining repeats until a full pass
makes no merge, so the output has no two polylines sharing an endpoint.
Open strands stay open; rings come out with first point == last point.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

import structlog

Point = List[float]
Polyline = List[Point]

logger = structlog.get_logger(component="LineJoiner")

# orientations, checked in this order for a candidate i against target j
HEAD_TO_TAIL = 'head_i_tail_j'
TAIL_TO_HEAD = 'tail_i_head_j'
HEAD_TO_HEAD = 'head_i_head_j'
TAIL_TO_TAIL = 'tail_i_tail_j'


def _key(point: Point) -> Tuple[float, float]:
    return (point[0], point[1])


def _merge(line_i: Polyline, line_j: Polyline, orientation: str) -> Polyline:
    """Merge i into j, dropping the shared point once."""
    if orientation == HEAD_TO_TAIL:
        return line_j + line_i[1:]
    if orientation == TAIL_TO_HEAD:
        return line_i + line_j[1:]
    if orientation == HEAD_TO_HEAD:
        return list(reversed(line_i[1:])) + line_j
    return line_j + list(reversed(line_i[:-1]))


def _orientation(line_i: Polyline, line_j: Polyline) -> Optional[str]:
    head_i, tail_i = _key(line_i[0]), _key(line_i[-1])
    head_j, tail_j = _key(line_j[0]), _key(line_j[-1])

    if head_i == tail_j:
        return HEAD_TO_TAIL
    if tail_i == head_j:
        return TAIL_TO_HEAD
    if head_i == head_j:
        return HEAD_TO_HEAD
    if tail_i == tail_j:
        return TAIL_TO_TAIL
    return None


class _EndpointIndex:
    """Line ids keyed by their head and tail coordinates."""

    def __init__(self):
        self._ids: Dict[Tuple[float, float], Set[int]] = defaultdict(set)

    def add(self, line_id: int, line: Polyline) -> None:
        self._ids[_key(line[0])].add(line_id)
        self._ids[_key(line[-1])].add(line_id)

    def remove(self, line_id: int, line: Polyline) -> None:
        for point in (line[0], line[-1]):
            ids = self._ids.get(_key(point))
            if ids is not None:
                ids.discard(line_id)

    def partners(self, line_id: int, line: Polyline) -> List[int]:
        found = self._ids.get(_key(line[0]), set()) | self._ids.get(_key(line[-1]), set())
        found.discard(line_id)
        return sorted(found)


def join_lines(lines: List[Polyline]) -> List[Polyline]:
    """
    Join polylines sharing endpoints until no pair can be merged.

    Args:
        lines: Segments or polylines of a single level

    Returns:
        Joined polylines, in the order of the line each one grew from
    """
    working: List[Optional[Polyline]] = [[list(p) for p in line] for line in lines if len(line) >= 2]
    index = _EndpointIndex()
    for line_id, line in enumerate(working):
        index.add(line_id, line)

    merges = 0
    changed = True
    while changed:
        changed = False
        for j in range(len(working)):
            if working[j] is None:
                continue

            while True:
                line_j = working[j]
                merged = False
                for i in index.partners(j, line_j):
                    line_i = working[i]
                    orientation = _orientation(line_i, line_j)
                    if orientation is None:
                        continue

                    index.remove(i, line_i)
                    index.remove(j, line_j)
                    working[j] = _merge(line_i, line_j, orientation)
                    working[i] = None
                    index.add(j, working[j])

                    merges += 1
                    merged = changed = True
                    break

                if not merged:
                    break

    logger.debug("Lines joined", inputs=len(lines), merges=merges)

    return [line for line in working if line is not None]


class LineJoiner:
    """Joins the segments of every contour level."""

    def join(self, segments_by_level: Dict[int, List[Polyline]]) -> Dict[int, List[Polyline]]:
        return {level: join_lines(segments) for level, segments in segments_by_level.items()}
