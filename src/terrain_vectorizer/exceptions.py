"""
Error kinds raised while turning elevation tiles into vector features.

Only raster-level problems are errors. Degenerate geometry inside a tile
(flat cells, saddles, rings that collapse) is skipped by policy and never
raised by the processing core.
"""

from pathlib import Path
from typing import Optional, Union


class TerrainVectorizerError(Exception):
    """Base class for all terrain vectorizer errors."""


class DataUnavailable(TerrainVectorizerError):
    """The centre raster of a tile is missing."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class DecodeError(TerrainVectorizerError):
    """A raster exists but could not be decoded into elevation samples."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class GeometryDegenerate(TerrainVectorizerError):
    """A line or ring has too few distinct points to be usable."""
