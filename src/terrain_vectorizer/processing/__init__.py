"""
Processing Module

The per-tile geometry algorithms: marching-squares contours, line joining,
smoothing, illumination and shade hull tracing.
"""

from .contour_extractor import ContourExtractor, step_size_for_zoom
from .line_joiner import LineJoiner
from .smoother import Smoother
from .illumination import IlluminationAnalyzer
from .hull_tracer import HullTracer, ShadeBand, HullPolygon

__all__ = [
    "ContourExtractor",
    "step_size_for_zoom",
    "LineJoiner",
    "Smoother",
    "IlluminationAnalyzer",
    "HullTracer",
    "ShadeBand",
    "HullPolygon"
]
