"""
Grid Assembler

Builds the ``(size + 2) x (size + 2)`` sample grid of one tile. The tile's
own raster fills the interior; the eight neighbours each contribute only the
strip (or corner pixel) that touches the centre tile, forming a one-cell
halo so that marching-squares cells on the tile border see real data.

Halo cells whose neighbour raster is absent keep ``elevation == SENTINEL``.
"""

from dataclasses import dataclass, field
from typing import Optional, Protocol, Tuple

import numpy as np
import structlog

from ..exceptions import DataUnavailable, DecodeError
from ..utils.projection import BoundingBox, TileCoordinate, bounding_box

# Decoded Terrain-RGB never goes below -10000 m (-32808.4 ft)
SENTINEL = -99999.0

logger = structlog.get_logger(component="GridAssembler")


class ElevationSource(Protocol):
    """Anything that can hand out the decoded elevations of a tile."""

    def read_elevation(self, tile: TileCoordinate) -> Optional[np.ndarray]:
        ...


@dataclass
class Sample:
    """One grid cell."""
    lat: float
    lon: float
    elevation: float
    dark: float
    light: float
    visited: bool

    @property
    def has_data(self) -> bool:
        return self.elevation != SENTINEL


@dataclass
class ElevationGrid:
    """
    Dense per-cell arrays of one tile plus its halo.

    ``elevation``, ``lat`` and ``lon`` are fixed after assembly. ``dark``,
    ``light`` and ``visited`` belong to the illumination/hull path.
    """
    size: int
    elevation: np.ndarray
    lat: np.ndarray
    lon: np.ndarray
    tile: Optional[TileCoordinate] = None
    bbox: Optional[BoundingBox] = None
    dark: np.ndarray = field(default=None)
    light: np.ndarray = field(default=None)
    visited: np.ndarray = field(default=None)

    def __post_init__(self):
        shape = (self.size + 2, self.size + 2)
        for name in ("elevation", "lat", "lon"):
            if getattr(self, name).shape != shape:
                raise ValueError(f"{name} must have shape {shape}")
        if self.dark is None:
            self.dark = np.full(shape, np.nan)
        if self.light is None:
            self.light = np.full(shape, np.nan)
        if self.visited is None:
            self.visited = np.zeros(shape, dtype=bool)

    @classmethod
    def empty(cls, size: int, tile: Optional[TileCoordinate] = None,
              bbox: Optional[BoundingBox] = None) -> "ElevationGrid":
        shape = (size + 2, size + 2)
        return cls(
            size=size,
            elevation=np.full(shape, SENTINEL),
            lat=np.zeros(shape),
            lon=np.zeros(shape),
            tile=tile,
            bbox=bbox
        )

    @classmethod
    def from_elevation(cls, elevation: np.ndarray, bbox: BoundingBox,
                       tile: Optional[TileCoordinate] = None) -> "ElevationGrid":
        """
        Grid from a full ``(size + 2)``-square elevation array.

        Coordinates continue the centre tile's pixel spacing into the halo.
        """
        elevation = np.asarray(elevation, dtype=np.float64)
        size = elevation.shape[0] - 2
        lon_step = (bbox.east - bbox.west) / size
        lat_step = (bbox.north - bbox.south) / size

        offsets = np.arange(-1, size + 1) + 0.5
        lon_row = bbox.west + offsets * lon_step
        lat_col = bbox.north - offsets * lat_step
        lon, lat = np.meshgrid(lon_row, lat_col)

        return cls(size=size, elevation=elevation.copy(), lat=lat, lon=lon, tile=tile, bbox=bbox)

    @property
    def has_data(self) -> np.ndarray:
        """Boolean mask of cells holding real elevation."""
        return self.elevation != SENTINEL

    def sample(self, row: int, col: int) -> Sample:
        return Sample(
            lat=float(self.lat[row, col]),
            lon=float(self.lon[row, col]),
            elevation=float(self.elevation[row, col]),
            dark=float(self.dark[row, col]),
            light=float(self.light[row, col]),
            visited=bool(self.visited[row, col])
        )

    def reset_visited(self) -> None:
        self.visited[:] = False


# logical position -> (dx, dy) offset of the source tile
_HALO_LAYOUT = {
    'topLeft': (-1, -1),
    'top': (0, -1),
    'topRight': (1, -1),
    'left': (-1, 0),
    'center': (0, 0),
    'right': (1, 0),
    'bottomLeft': (-1, 1),
    'bottom': (0, 1),
    'bottomRight': (1, 1),
}


def _halo_slices(dx: int, dy: int, size: int) -> Tuple[slice, slice, slice, slice]:
    """Source and destination slices for the part of a neighbour that is copied."""
    def axis(d: int) -> Tuple[slice, slice]:
        if d < 0:
            # neighbour lies before the centre: take its last row/column
            return slice(size - 1, size), slice(0, 1)
        if d > 0:
            # neighbour lies after the centre: take its first row/column
            return slice(0, 1), slice(size + 1, size + 2)
        return slice(0, size), slice(1, size + 1)

    src_cols, dst_cols = axis(dx)
    src_rows, dst_rows = axis(dy)
    return src_rows, src_cols, dst_rows, dst_cols


class GridAssembler:
    """Assembles halo-padded elevation grids from a tile and its neighbours."""

    def __init__(self, source: ElevationSource, size: int = 512):
        self.source = source
        self.size = size

    def assemble(self, tile: TileCoordinate) -> ElevationGrid:
        """
        Build the grid for ``tile``.

        Raises:
            DataUnavailable: the tile's own raster is missing
            DecodeError: a raster has the wrong shape or cannot be decoded
        """
        size = self.size
        bbox, _, _ = bounding_box(tile.x, tile.y, tile.zoom, size)
        grid = ElevationGrid.empty(size, tile=tile, bbox=bbox)

        center = self.source.read_elevation(tile)
        if center is None:
            tile_path = getattr(self.source, "tile_path", None)
            raise DataUnavailable(
                f"No elevation raster for tile {tile.tile_id}",
                path=tile_path(tile) if tile_path else None
            )
        self._copy(grid, tile, center, 0, 0)

        missing = []
        for position, (dx, dy) in _HALO_LAYOUT.items():
            if position == 'center':
                continue
            neighbor = tile.neighbor(dx, dy)
            elevation = self.source.read_elevation(neighbor)
            if elevation is None:
                missing.append(position)
                continue
            self._copy(grid, neighbor, elevation, dx, dy)

        if missing:
            logger.debug("Halo incomplete", tile_id=tile.tile_id, missing=missing)

        return grid

    def _copy(self, grid: ElevationGrid, source_tile: TileCoordinate,
              elevation: np.ndarray, dx: int, dy: int) -> None:
        size = self.size
        elevation = np.asarray(elevation, dtype=np.float64)
        if elevation.shape != (size, size):
            raise DecodeError(
                f"Raster for tile {source_tile.tile_id} has shape {elevation.shape}, "
                f"expected {(size, size)}"
            )

        src_bbox, lon_step, lat_step = bounding_box(
            source_tile.x, source_tile.y, source_tile.zoom, size
        )
        pixel = np.arange(size) + 0.5
        lon_row = src_bbox.west + pixel * lon_step
        # raster row 0 is the northern edge
        lat_col = src_bbox.north - pixel * lat_step

        src_rows, src_cols, dst_rows, dst_cols = _halo_slices(dx, dy, size)
        rows = src_rows.stop - src_rows.start
        cols = src_cols.stop - src_cols.start

        grid.elevation[dst_rows, dst_cols] = elevation[src_rows, src_cols]
        grid.lon[dst_rows, dst_cols] = np.broadcast_to(lon_row[src_cols], (rows, cols))
        grid.lat[dst_rows, dst_cols] = np.broadcast_to(lat_col[src_rows][:, None], (rows, cols))
