"""
Tile Generation Module

Runs the per-tile pipeline, packages its output as features and writes
GeoJSON or Mapbox Vector Tiles for a whole work-list.
"""

from .feature_assembler import ContourFeature, FeatureAssembler, FeatureCollection, HullFeature
from .tile_processor import TileProcessor
from .vector_tile_generator import TileResult, VectorTileGenerator

__all__ = [
    "ContourFeature",
    "HullFeature",
    "FeatureAssembler",
    "FeatureCollection",
    "TileProcessor",
    "TileResult",
    "VectorTileGenerator"
]
