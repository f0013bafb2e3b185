"""
Elevation Data Ingestion

Reads Terrain-RGB PNG tiles (elevation packed into the R, G and B
channels) and decodes them into elevation arrays:

    elevation = -10000 + (R * 65536 + G * 256 + B) * 0.1

Tiles are addressed as ``{input_root}/{zoom}/{x}/{y}.png``. A missing file
is reported as ``None`` so the grid assembler can decide whether that is
fatal (centre tile) or expected (neighbour at the edge of a dataset).
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..exceptions import DecodeError
from ..monitoring.metrics import MetricsCollector
from ..utils.config import FEET_PER_METER
from ..utils.projection import TileCoordinate
from .base_ingester import BaseDataIngester


def decode_terrain_rgb(pixels: np.ndarray, units: str = "metric") -> np.ndarray:
    """
    Decode an (H, W, >=3) uint8 array into elevations.

    Args:
        pixels: RGB(A) pixel array
        units: "metric" for metres, "feet" for feet

    Returns:
        float64 array of shape (H, W)
    """
    rgb = pixels[..., :3].astype(np.float64)
    elevation = -10000.0 + (rgb[..., 0] * 65536.0 + rgb[..., 1] * 256.0 + rgb[..., 2]) * 0.1

    if units == "feet":
        elevation = elevation * FEET_PER_METER

    return elevation


def encode_terrain_rgb(elevation: np.ndarray) -> np.ndarray:
    """Inverse of ``decode_terrain_rgb`` for metric elevations (0.1 m precision)."""
    value = np.rint((np.asarray(elevation, dtype=np.float64) + 10000.0) * 10.0).astype(np.int64)
    value = np.clip(value, 0, 256 ** 3 - 1)

    pixels = np.empty(value.shape + (3,), dtype=np.uint8)
    pixels[..., 0] = (value >> 16) & 0xFF
    pixels[..., 1] = (value >> 8) & 0xFF
    pixels[..., 2] = value & 0xFF
    return pixels


class ElevationDataIngester(BaseDataIngester):
    """
    Terrain-RGB PNG tile reader.

    Acts as the elevation source of the grid assembler: ``read_elevation``
    returns the decoded ``size x size`` array for a tile, or ``None`` when
    the file does not exist.
    """

    def __init__(
        self,
        input_root: Union[str, Path],
        size: int = 512,
        units: str = "metric",
        metrics_collector: Optional[MetricsCollector] = None
    ):
        super().__init__(metrics_collector)
        self.input_root = Path(input_root)
        self.size = size
        self.units = units

    def tile_path(self, tile: TileCoordinate) -> Path:
        """Location of a tile's PNG below the input root."""
        return self.input_root / str(tile.zoom) / str(tile.x) / f"{tile.y}.png"

    def read_elevation(self, tile: TileCoordinate) -> Optional[np.ndarray]:
        """Decoded elevations of a tile, or None if its file is absent."""
        path = self.tile_path(tile)
        if not path.exists():
            self.stats['sources_missing'] += 1
            self.logger.debug("Raster not found", tile_id=tile.tile_id, path=str(path))
            return None
        return self.ingest(path)

    def extract(self, source: Union[str, Path]) -> np.ndarray:
        try:
            with Image.open(source) as image:
                return np.asarray(image.convert("RGB"), dtype=np.uint8)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise DecodeError(f"Cannot decode raster {source}: {e}", path=source) from e

    def validate(self, data: np.ndarray) -> bool:
        if data.ndim != 3 or data.shape[2] < 3:
            self.logger.warning("Raster is not RGB", shape=data.shape)
            return False
        if data.shape[0] != self.size or data.shape[1] != self.size:
            self.logger.warning(
                "Raster size does not match configured size",
                shape=data.shape[:2],
                expected=self.size
            )
            return False
        return True

    def transform(self, data: np.ndarray) -> np.ndarray:
        return decode_terrain_rgb(data, self.units)

    def discover_tiles(self) -> List[TileCoordinate]:
        """Every ``{z}/{x}/{y}.png`` below the input root, sorted."""
        return sorted(self._iter_tiles(), key=lambda t: (t.zoom, t.x, t.y))

    def _iter_tiles(self) -> Iterator[TileCoordinate]:
        for path in self.input_root.glob("*/*/*.png"):
            try:
                y = int(path.stem)
                x = int(path.parent.name)
                zoom = int(path.parent.parent.name)
            except ValueError:
                self.logger.debug("Skipping non-tile file", path=str(path))
                continue
            yield TileCoordinate(x=x, y=y, zoom=zoom)


class ArrayElevationSource:
    """Elevation source backed by in-memory arrays keyed by tile."""

    def __init__(self, arrays: Optional[Dict[TileCoordinate, np.ndarray]] = None):
        self.arrays = dict(arrays or {})

    def add(self, tile: TileCoordinate, elevation: np.ndarray) -> None:
        self.arrays[tile] = np.asarray(elevation, dtype=np.float64)

    def read_elevation(self, tile: TileCoordinate) -> Optional[np.ndarray]:
        return self.arrays.get(tile)
