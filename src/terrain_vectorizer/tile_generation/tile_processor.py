"""
Tile Processor

Runs the per-tile pipeline:

    grid assembly -> contours -> joining -> smoothing
                  -> illumination -> hull tracing
    -> feature assembly

Everything happens synchronously on one grid owned by the call.
"""

import time
from typing import Optional

import structlog

from ..data_ingestion.elevation_ingestion import ElevationDataIngester
from ..data_ingestion.grid_assembler import ElevationGrid, ElevationSource, GridAssembler
from ..monitoring.metrics import MetricsCollector
from ..processing.contour_extractor import ContourExtractor, step_size_for_zoom
from ..processing.hull_tracer import HullTracer
from ..processing.illumination import IlluminationAnalyzer
from ..processing.line_joiner import LineJoiner
from ..processing.smoother import Smoother
from ..utils.config import Config
from ..utils.projection import TileCoordinate
from .feature_assembler import FeatureAssembler, FeatureCollection


class TileProcessor:
    """Turns one tile coordinate into its FeatureCollection."""

    def __init__(
        self,
        config: Config,
        source: Optional[ElevationSource] = None,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        self.config = config
        self.metrics = metrics_collector or MetricsCollector(enable_prometheus=False)
        self.source = source or ElevationDataIngester(
            config.input_root,
            size=config.size,
            units=config.units,
            metrics_collector=self.metrics
        )

        self.grid_assembler = GridAssembler(self.source, size=config.size)
        self.contour_extractor = ContourExtractor(step_size=config.step_size)
        self.line_joiner = LineJoiner()
        self.smoother = Smoother() if config.smooth else None
        self.illumination = IlluminationAnalyzer(cell_size=config.cell_size)
        self.hull_tracer = HullTracer()
        self.feature_assembler = FeatureAssembler(layer=config.tippecanoe_layer)

        self.logger = structlog.get_logger(component="TileProcessor")

    def process(self, tile: TileCoordinate) -> FeatureCollection:
        """
        Build all features of a tile.

        Raises:
            DataUnavailable: the tile's own raster is missing
            DecodeError: a raster could not be decoded
        """
        start_time = time.time()

        grid = self.grid_assembler.assemble(tile)
        collection = self.process_grid(grid, tile.zoom)

        self.logger.debug(
            "Tile processed",
            tile_id=tile.tile_id,
            features=len(collection.features),
            processing_time=time.time() - start_time
        )

        return collection

    def process_grid(self, grid: ElevationGrid, zoom: int) -> FeatureCollection:
        """Run the contour and hillshade paths on an assembled grid."""
        step = self.config.step_size or step_size_for_zoom(zoom)

        segments = self.contour_extractor.extract(grid, step)
        lines = self.line_joiner.join(segments)
        if self.smoother is not None:
            lines = self.smoother.smooth(lines)

        bands = []
        if self.config.hillshade:
            self.illumination.analyze(grid)
            bands = self.hull_tracer.trace(grid, zoom)

        return self.feature_assembler.assemble(
            lines,
            bands,
            zoom=zoom,
            step=step,
            tile=grid.tile,
            bbox=grid.bbox
        )
