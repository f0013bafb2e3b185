"""
Slippy-map Projection

Maps Web Mercator tile coordinates (x, y, zoom) to geographic bounding
boxes and per-pixel longitude/latitude steps.
"""

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class TileCoordinate:
    """Identity of a single tile in the slippy-map pyramid."""
    x: int
    y: int
    zoom: int

    @property
    def tile_id(self) -> str:
        """Get unique tile identifier."""
        return f"{self.zoom}/{self.x}/{self.y}"

    def neighbor(self, dx: int, dy: int) -> "TileCoordinate":
        """Tile offset by (dx, dy) at the same zoom level."""
        return TileCoordinate(x=self.x + dx, y=self.y + dy, zoom=self.zoom)


@dataclass(frozen=True)
class BoundingBox:
    """Geographic extent of a tile in degrees."""
    west: float
    south: float
    east: float
    north: float

    def __post_init__(self):
        if not (self.west < self.east and self.south < self.north):
            raise ValueError(f"Degenerate bounding box: {self.as_tuple()}")

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def contains(self, lon: float, lat: float) -> bool:
        """Strict containment (points on the border are outside)."""
        return self.west < lon < self.east and self.south < lat < self.north


def tile_to_bbox(x: int, y: int, zoom: int) -> BoundingBox:
    """Convert tile coordinates to bounding box in degrees."""
    n = 2.0 ** zoom

    # Calculate longitude bounds
    lon_min = x / n * 360.0 - 180.0
    lon_max = (x + 1) / n * 360.0 - 180.0

    # Calculate latitude bounds
    lat_rad_min = math.atan(math.sinh(math.pi * (1 - 2 * (y + 1) / n)))
    lat_rad_max = math.atan(math.sinh(math.pi * (1 - 2 * y / n)))

    return BoundingBox(
        west=lon_min,
        south=math.degrees(lat_rad_min),
        east=lon_max,
        north=math.degrees(lat_rad_max)
    )


def bounding_box(x: int, y: int, zoom: int, size: int) -> Tuple[BoundingBox, float, float]:
    """
    Bounding box of a square tile plus its per-pixel steps.

    Args:
        x: Tile column
        y: Tile row
        zoom: Zoom level
        size: Tile edge length in pixels

    Returns:
        (bbox, lon_step, lat_step) where the steps are degrees per pixel
    """
    bbox = tile_to_bbox(x, y, zoom)
    lon_step = (bbox.east - bbox.west) / size
    lat_step = (bbox.north - bbox.south) / size
    return bbox, lon_step, lat_step
