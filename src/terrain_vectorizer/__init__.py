"""
Terrain Vectorizer

Converts Terrain-RGB elevation tiles into vector tiles of contour lines
and hillshade (shadow/highlight) polygons.
"""

__version__ = "1.0.0"

# Core modules
from . import data_ingestion
from . import processing
from . import tile_generation
from . import monitoring
from . import utils
from .exceptions import DataUnavailable, DecodeError, GeometryDegenerate, TerrainVectorizerError

__all__ = [
    "data_ingestion",
    "processing",
    "tile_generation",
    "monitoring",
    "utils",
    "TerrainVectorizerError",
    "DataUnavailable",
    "DecodeError",
    "GeometryDegenerate"
]
