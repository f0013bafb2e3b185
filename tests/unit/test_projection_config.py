"""
Unit Tests for tile projection and run configuration.
"""

import math
import unittest
from pathlib import Path

# Import the modules to test
import sys
sys.path.append(str(Path(__file__).parent.parent.parent / "src"))

from terrain_vectorizer.utils.config import Config
from terrain_vectorizer.utils.projection import (
    BoundingBox,
    TileCoordinate,
    bounding_box,
    tile_to_bbox,
)


class TestProjection(unittest.TestCase):
    """Test suite for slippy-map tile math."""

    def test_world_tile_bbox(self):
        """Zoom 0 covers the whole Web Mercator world."""
        bbox = tile_to_bbox(0, 0, 0)

        self.assertAlmostEqual(bbox.west, -180.0)
        self.assertAlmostEqual(bbox.east, 180.0)
        self.assertAlmostEqual(bbox.north, 85.0511287798, places=6)
        self.assertAlmostEqual(bbox.south, -85.0511287798, places=6)

    def test_adjacent_tiles_share_edges(self):
        """Neighbouring tiles meet exactly on their shared border."""
        tile = TileCoordinate(x=2620, y=6332, zoom=14)
        bbox = tile_to_bbox(tile.x, tile.y, tile.zoom)
        right = tile.neighbor(1, 0)
        below = tile.neighbor(0, 1)

        self.assertEqual(bbox.east, tile_to_bbox(right.x, right.y, right.zoom).west)
        self.assertEqual(bbox.south, tile_to_bbox(below.x, below.y, below.zoom).north)

    def test_bounding_box_steps(self):
        """Per-pixel steps divide the tile extent evenly."""
        bbox, lon_step, lat_step = bounding_box(1, 1, 2, 256)

        self.assertAlmostEqual(lon_step * 256, bbox.east - bbox.west)
        self.assertAlmostEqual(lat_step * 256, bbox.north - bbox.south)
        self.assertGreater(lon_step, 0)
        self.assertGreater(lat_step, 0)

    def test_tile_id(self):
        self.assertEqual(TileCoordinate(x=3, y=5, zoom=7).tile_id, "7/3/5")

    def test_degenerate_bbox_rejected(self):
        with self.assertRaises(ValueError):
            BoundingBox(west=1.0, south=0.0, east=1.0, north=1.0)

    def test_contains_is_strict(self):
        bbox = BoundingBox(west=0.0, south=0.0, east=1.0, north=1.0)

        self.assertTrue(bbox.contains(0.5, 0.5))
        self.assertFalse(bbox.contains(0.0, 0.5))
        self.assertFalse(bbox.contains(0.5, 1.0))


class TestConfig(unittest.TestCase):
    """Test suite for run configuration."""

    def test_defaults(self):
        config = Config()

        self.assertTrue(config.smooth)
        self.assertEqual(config.size, 512)
        self.assertEqual(config.units, "metric")
        self.assertEqual(config.tippecanoe_layer, "contourLines")
        self.assertFalse(config.overwrite)
        self.assertEqual(config.workers, 1)
        self.assertEqual(config.output_format, "geojson")
        config.validate()

    def test_validate_rejects_bad_values(self):
        for bad in (
            Config(units="furlongs"),
            Config(output_format="pbf"),
            Config(size=0),
            Config(workers=0),
            Config(step_size=-10),
        ):
            with self.subTest(config=bad):
                with self.assertRaises(ValueError):
                    bad.validate()

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"size": 256, "threads": 4, "smooth": None})

        self.assertEqual(config.size, 256)
        self.assertTrue(config.smooth)
        self.assertEqual(config.workers, 1)

    def test_dict_round_trip(self):
        config = Config(size=64, units="feet", workers=3, step_size=25)

        self.assertEqual(Config.from_dict(config.to_dict()), config)

    def test_from_env(self):
        environ = {
            "TERRAIN_SIZE": "256",
            "TERRAIN_SMOOTH": "false",
            "TERRAIN_UNITS": "feet",
            "TERRAIN_STEP_SIZE": "20",
            "TERRAIN_CELL_SIZE": "2.5",
            "UNRELATED": "1",
        }

        config = Config.from_env(environ)

        self.assertEqual(config.size, 256)
        self.assertFalse(config.smooth)
        self.assertEqual(config.units, "feet")
        self.assertEqual(config.step_size, 20)
        self.assertTrue(math.isclose(config.cell_size, 2.5))


if __name__ == '__main__':
    unittest.main()
