"""
Unit Tests for contour extraction, line joining and smoothing

Grids are built in memory; a cone gives closed contour rings whose shape
is known in advance.
"""

import unittest
from pathlib import Path

import numpy as np
from shapely.geometry import LinearRing, Point, Polygon

# Import the modules to test
import sys
sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from terrain_vectorizer.data_ingestion.grid_assembler import SENTINEL, ElevationGrid
from terrain_vectorizer.processing.contour_extractor import (
    ContourExtractor,
    contour_index,
    contour_levels,
    find_line,
    step_size_for_zoom,
)
from terrain_vectorizer.processing.line_joiner import LineJoiner, join_lines
from terrain_vectorizer.processing.smoother import Smoother, is_staircase, smooth_line
from terrain_vectorizer.utils.projection import BoundingBox


def make_grid(elevation):
    """Grid whose interior cell (r, c) sits at lon = c - 0.5, lat = size + 0.5 - r."""
    elevation = np.asarray(elevation, dtype=np.float64)
    size = elevation.shape[0] - 2
    bbox = BoundingBox(west=0.0, south=0.0, east=float(size), north=float(size))
    return ElevationGrid.from_elevation(elevation, bbox)


def make_cone(size=12, offset=0.5):
    """Elevation rising 10 per cell away from the grid centre."""
    n = size + 2
    center = (n - 1) / 2
    rows, cols = np.mgrid[0:n, 0:n]
    return make_grid(10.0 * np.hypot(rows - center, cols - center) + offset)


def corner(lon, lat, elevation):
    return (float(lon), float(lat), float(elevation))


class TestZoomTables(unittest.TestCase):
    """Test suite for zoom-dependent contour intervals."""

    def test_step_sizes(self):
        self.assertEqual(step_size_for_zoom(11), 100)
        self.assertEqual(step_size_for_zoom(12), 50)
        self.assertEqual(step_size_for_zoom(13), 20)
        self.assertEqual(step_size_for_zoom(14), 10)
        self.assertEqual(step_size_for_zoom(8), 1)

    def test_contour_index(self):
        self.assertEqual(contour_index(1500, 12), 0)
        self.assertEqual(contour_index(1550, 12), 1)
        self.assertEqual(contour_index(130, 14), 3)
        self.assertEqual(contour_index(37, 5), 7)

    def test_contour_index_below_sea_level(self):
        """Negative levels keep their sign instead of wrapping to 0-9."""
        self.assertEqual(contour_index(-100, 11), -1)
        self.assertEqual(contour_index(-150, 12), -3)
        self.assertEqual(contour_index(-1000, 11), 0)

    def test_levels_skip_sentinel(self):
        elevation = np.full((4, 4), SENTINEL)
        elevation[1:3, 1:3] = [[12.0, 18.0], [25.0, 31.0]]

        self.assertEqual(contour_levels(make_grid(elevation), 10), [20, 30])


class TestFindLine(unittest.TestCase):
    """Test suite for the per-cell marching-squares rules."""

    def test_flat_cell(self):
        cells = [corner(0, 1, 10), corner(1, 1, 10), corner(0, 0, 10), corner(1, 0, 10)]

        self.assertIsNone(find_line(*cells, 10))

    def test_three_equal_with_lower_corner(self):
        tl, tr, bl, br = corner(0, 1, 10), corner(1, 1, 10), corner(0, 0, 10), corner(1, 0, 5)

        self.assertEqual(find_line(tl, tr, bl, br, 10), [[1.0, 1.0], [0.0, 0.0]])

    def test_three_equal_with_higher_corner(self):
        tl, tr, bl, br = corner(0, 1, 10), corner(1, 1, 10), corner(0, 0, 10), corner(1, 0, 15)

        self.assertIsNone(find_line(tl, tr, bl, br, 10))

    def test_two_equal_diagonal(self):
        tl, tr, bl, br = corner(0, 1, 10), corner(1, 1, 4), corner(0, 0, 16), corner(1, 0, 10)

        self.assertEqual(find_line(tl, tr, bl, br, 10), [[0.0, 1.0], [1.0, 0.0]])

    def test_two_equal_adjacent_needs_lower_corner(self):
        tl, tr = corner(0, 1, 10), corner(1, 1, 10)

        self.assertEqual(
            find_line(tl, tr, corner(0, 0, 5), corner(1, 0, 15), 10),
            [[0.0, 1.0], [1.0, 1.0]]
        )
        self.assertIsNone(find_line(tl, tr, corner(0, 0, 15), corner(1, 0, 20), 10))

    def test_general_case_interpolates(self):
        tl, tr, bl, br = corner(0, 1, 10), corner(1, 1, 20), corner(0, 0, 10), corner(1, 0, 20)

        segment = find_line(tl, tr, bl, br, 15)

        self.assertEqual(len(segment), 2)
        for point in segment:
            self.assertAlmostEqual(point[0], 0.5)
        self.assertEqual(sorted(p[1] for p in segment), [0.0, 1.0])

    def test_saddle_keeps_top_left_cut(self):
        """Corners 12, 8, 9, 15 at level 10 cross all four edges."""
        tl, tr, bl, br = corner(0, 1, 12), corner(1, 1, 8), corner(0, 0, 9), corner(1, 0, 15)

        segment = find_line(tl, tr, bl, br, 10)

        self.assertEqual(len(segment), 2)
        top, left = segment
        self.assertAlmostEqual(top[0], 0.5)
        self.assertAlmostEqual(top[1], 1.0)
        self.assertAlmostEqual(left[0], 0.0)
        self.assertAlmostEqual(left[1], 1.0 / 3.0)
        self.assertIsNone(find_line(tl, tr, bl, br, 20))

    def test_sentinel_corner(self):
        cells = [corner(0, 1, SENTINEL), corner(1, 1, 20), corner(0, 0, 5), corner(1, 0, 20)]

        self.assertIsNone(find_line(*cells, 10))


class TestContourExtractor(unittest.TestCase):
    """Test suite for whole-grid contour extraction."""

    def test_uniform_grid_has_no_contours(self):
        self.assertEqual(ContourExtractor(step_size=10).extract(make_grid(np.full((6, 6), 100.0))), {})

    def test_all_sentinel_grid(self):
        self.assertEqual(ContourExtractor(step_size=10).extract(make_grid(np.full((6, 6), SENTINEL))), {})

    def test_single_cell_scenarios(self):
        """A size-2 grid whose only data cell is the top-left 2x2 block."""
        elevation = np.full((4, 4), SENTINEL)
        elevation[0:2, 0:2] = [[10.0, 10.0], [10.0, 5.0]]

        contours = ContourExtractor().extract(make_grid(elevation), step=10)

        self.assertEqual(list(contours), [10])
        self.assertEqual(len(contours[10]), 1)

    def test_diagonal_step(self):
        elevation = np.full((4, 4), SENTINEL)
        elevation[0:2, 0:2] = [[100.0, 100.0], [100.0, 90.0]]

        contours = ContourExtractor().extract(make_grid(elevation), step=10)

        # top-right to bottom-left, the corners away from the low one
        self.assertEqual(contours[100], [[[0.5, 2.5], [-0.5, 1.5]]])
        self.assertNotIn(90, contours)

    def test_cone_levels(self):
        contours = ContourExtractor().extract(make_cone(), step=10)

        for level in (10, 20, 30, 40):
            self.assertIn(level, contours)
        self.assertTrue(all(len(seg) == 2 for segs in contours.values() for seg in segs))

    def test_segments_inside_data_area(self):
        grid = make_cone()
        contours = ContourExtractor().extract(grid, step=10)

        lon_min, lon_max = grid.lon.min(), grid.lon.max()
        lat_min, lat_max = grid.lat.min(), grid.lat.max()
        for segments in contours.values():
            for segment in segments:
                for lon, lat in segment:
                    self.assertTrue(lon_min <= lon <= lon_max)
                    self.assertTrue(lat_min <= lat <= lat_max)


class TestLineJoiner(unittest.TestCase):
    """Test suite for stitching segments into polylines."""

    def test_chain_with_reversal(self):
        segments = [[[0, 0], [1, 0]], [[1, 0], [2, 0]], [[3, 0], [2, 0]]]

        self.assertEqual(join_lines(segments), [[[0, 0], [1, 0], [2, 0], [3, 0]]])

    def test_disjoint_segments_stay_apart(self):
        segments = [[[0, 0], [1, 0]], [[5, 5], [6, 5]]]

        self.assertEqual(join_lines(segments), segments)

    def test_idempotent(self):
        segments = [
            [[0, 0], [1, 0]], [[2, 1], [1, 0]], [[2, 1], [3, 1]],
            [[9, 9], [8, 8]], [[8, 8], [7, 7]],
        ]

        joined = join_lines(segments)

        self.assertEqual(join_lines(joined), joined)
        self.assertEqual(len(joined), 2)

    def test_no_shared_endpoints_after_join(self):
        contours = ContourExtractor().extract(make_cone(), step=10)
        joined = LineJoiner().join(contours)

        for lines in joined.values():
            open_ends = [tuple(p) for line in lines if line[0] != line[-1] for p in (line[0], line[-1])]
            self.assertEqual(len(open_ends), len(set(open_ends)))

    def test_cone_gives_closed_rings(self):
        """Levels that fit inside the grid come out as one closed ring around the peak."""
        joined = LineJoiner().join(ContourExtractor().extract(make_cone(), step=10))
        summit = Point(6.0, 6.0)

        for level in (10, 20, 30, 40):
            with self.subTest(level=level):
                self.assertEqual(len(joined[level]), 1)
                ring = joined[level][0]
                self.assertEqual(ring[0], ring[-1])
                self.assertTrue(LinearRing(ring).is_valid)
                self.assertTrue(Polygon(ring).contains(summit))

                radius = (level - 0.5) / 10.0
                for lon, lat in ring:
                    self.assertAlmostEqual(summit.distance(Point(lon, lat)), radius, delta=0.25)


class TestSmoother(unittest.TestCase):
    """Test suite for staircase removal and corner rounding."""

    def test_staircase_detection(self):
        self.assertTrue(is_staircase([0, 0], [2, 0], [1, 1], [1, -1]))
        self.assertFalse(is_staircase([0, 0], [2, 0], [1, 1], [1, 2]))

    def test_midpoint(self):
        self.assertEqual(
            smooth_line([[0, 0], [1, 1], [2, 1], [3, 0]]),
            [[0, 0], [1.5, 1.0], [3, 0]]
        )

    def test_zigzag_collapsed(self):
        line = [[0, 0], [1, 1], [2, -1], [3, 0], [4, 0]]

        smoothed = smooth_line(line)

        self.assertEqual(smoothed[1], [3, 0])
        self.assertNotIn([1, 1], smoothed)
        self.assertNotIn([2, -1], smoothed)

    def test_endpoints_preserved(self):
        rng = np.random.default_rng(7)
        for length in range(2, 12):
            line = rng.uniform(-10, 10, size=(length, 2)).tolist()
            with self.subTest(length=length):
                smoothed = smooth_line(line)
                self.assertEqual(smoothed[0], line[0])
                self.assertEqual(smoothed[-1], line[-1])

    def test_rings_stay_closed(self):
        joined = LineJoiner().join(ContourExtractor().extract(make_cone(), step=10))

        smoothed = Smoother().smooth(joined)

        for level in (10, 20, 30, 40):
            ring = smoothed[level][0]
            self.assertEqual(ring[0], ring[-1])


if __name__ == '__main__':
    unittest.main()
