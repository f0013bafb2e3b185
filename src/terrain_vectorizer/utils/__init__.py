"""
Shared utilities: configuration, slippy-map projection and logging setup.
"""

from .config import Config
from .projection import BoundingBox, TileCoordinate, bounding_box, tile_to_bbox
from .logging_config import configure_logging

__all__ = [
    "Config",
    "BoundingBox",
    "TileCoordinate",
    "bounding_box",
    "tile_to_bbox",
    "configure_logging"
]
