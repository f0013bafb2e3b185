"""
Data Ingestion Module

Reads Terrain-RGB elevation tiles and assembles them, together with their
eight neighbours, into halo-padded elevation grids.
"""

from .base_ingester import BaseDataIngester
from .elevation_ingestion import ArrayElevationSource, ElevationDataIngester, decode_terrain_rgb
from .grid_assembler import SENTINEL, ElevationGrid, GridAssembler, Sample

__all__ = [
    "BaseDataIngester",
    "ElevationDataIngester",
    "ArrayElevationSource",
    "decode_terrain_rgb",
    "ElevationGrid",
    "GridAssembler",
    "Sample",
    "SENTINEL"
]
