"""
Feature Assembler

Packages contour polylines and hull polygons of one tile into a single
ordered feature list: contours by ascending elevation, then one
MultiPolygon per non-empty shade band.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from shapely.geometry import LineString, MultiPolygon

from ..processing.contour_extractor import contour_index
from ..processing.hull_tracer import HullPolygon, ShadeBand
from ..utils.projection import BoundingBox, TileCoordinate


@dataclass
class ContourFeature:
    """One contour polyline at a given elevation."""
    elevation: int
    index: Union[int, float]
    coordinates: List[List[float]]

    geometry_type = "LineString"

    @property
    def properties(self) -> Dict[str, Any]:
        return {'ele': self.elevation, 'index': self.index}

    def to_shape(self) -> LineString:
        return LineString(self.coordinates)

    def geometry(self) -> Dict[str, Any]:
        return {'type': self.geometry_type, 'coordinates': self.coordinates}


@dataclass
class HullFeature:
    """All polygons of one shade band."""
    shade: str
    level: str
    polygons: List[HullPolygon]

    geometry_type = "MultiPolygon"

    @property
    def properties(self) -> Dict[str, Any]:
        return {'shade': self.shade, 'level': self.level}

    def to_shape(self) -> MultiPolygon:
        return MultiPolygon([(p.outer, p.holes) for p in self.polygons])

    def geometry(self) -> Dict[str, Any]:
        return {
            'type': self.geometry_type,
            'coordinates': [[p.outer] + p.holes for p in self.polygons]
        }


Feature = Union[ContourFeature, HullFeature]


@dataclass
class FeatureCollection:
    """Features of one tile, ready for serialization."""
    tile: Optional[TileCoordinate]
    bbox: Optional[BoundingBox]
    layer: str
    features: List[Feature] = field(default_factory=list)

    @property
    def contours(self) -> List[ContourFeature]:
        return [f for f in self.features if isinstance(f, ContourFeature)]

    @property
    def hulls(self) -> List[HullFeature]:
        return [f for f in self.features if isinstance(f, HullFeature)]

    def to_geojson(self) -> Dict[str, Any]:
        """GeoJSON FeatureCollection with a tippecanoe layer tag per feature."""
        return {
            'type': 'FeatureCollection',
            'features': [
                {
                    'type': 'Feature',
                    'properties': feature.properties,
                    'tippecanoe': {'layer': self.layer},
                    'geometry': feature.geometry()
                }
                for feature in self.features
            ]
        }


class FeatureAssembler:
    """Combines per-level contours and per-band hulls into a FeatureCollection."""

    def __init__(self, layer: str = "contourLines"):
        self.layer = layer

    def assemble(
        self,
        contours: Dict[int, List[List[List[float]]]],
        bands: List[ShadeBand],
        zoom: int,
        step: Optional[int] = None,
        tile: Optional[TileCoordinate] = None,
        bbox: Optional[BoundingBox] = None
    ) -> FeatureCollection:
        collection = FeatureCollection(tile=tile, bbox=bbox, layer=self.layer)

        for level in sorted(contours):
            index = contour_index(level, zoom, step)
            for line in contours[level]:
                collection.features.append(
                    ContourFeature(elevation=level, index=index, coordinates=line)
                )

        for band in bands:
            if band.polygons:
                collection.features.append(
                    HullFeature(shade=band.shade, level=band.level, polygons=band.polygons)
                )

        return collection
