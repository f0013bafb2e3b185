"""
Vector Tile Generator

Drains a work-list of tile coordinates: each tile is processed into
contour and hillshade features, encoded as GeoJSON or Mapbox Vector Tile
(MVT), and written to ``{output_root}/{z}/{x}/{y}.{geojson|mvt}``.

Tiles share no state, so with ``workers > 1`` the work-list is split
round-robin and every partition is drained by its own process. A failing
tile is logged and reported; the remaining tiles are still processed.
"""

import concurrent.futures
import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import mapbox_vector_tile
import structlog
from mapbox_vector_tile.encoder import on_invalid_geometry_make_valid

from ..data_ingestion.elevation_ingestion import ElevationDataIngester
from ..data_ingestion.grid_assembler import ElevationSource
from ..exceptions import TerrainVectorizerError
from ..monitoring.metrics import MetricsCollector
from ..utils.config import Config
from ..utils.projection import TileCoordinate
from .feature_assembler import FeatureCollection
from .tile_processor import TileProcessor

MVT_EXTENT = 4096

ErrorHandler = Callable[[TileCoordinate, str], None]


@dataclass
class TileResult:
    """Outcome of processing one tile."""
    tile: TileCoordinate
    success: bool
    skipped: bool = False
    feature_count: int = 0
    contour_count: int = 0
    hull_count: int = 0
    error: Optional[str] = None
    processing_time: float = 0.0
    output_path: Optional[str] = None

    @property
    def tile_id(self) -> str:
        return self.tile.tile_id


def split_round_robin(tiles: Sequence[TileCoordinate], parts: int) -> List[List[TileCoordinate]]:
    """Deal tiles into ``parts`` partitions like cards."""
    partitions: List[List[TileCoordinate]] = [[] for _ in range(parts)]
    for i, tile in enumerate(tiles):
        partitions[i % parts].append(tile)
    return partitions


def encode_geojson(collection: FeatureCollection) -> bytes:
    return json.dumps(collection.to_geojson()).encode('utf-8')


def encode_mvt(collection: FeatureCollection) -> bytes:
    """Single-layer MVT quantized to the tile's bounding box."""
    layer = {
        'name': collection.layer,
        'features': [
            {'geometry': feature.to_shape(), 'properties': feature.properties}
            for feature in collection.features
        ]
    }

    options: Dict[str, Any] = {
        'extents': MVT_EXTENT,
        'on_invalid_geometry': on_invalid_geometry_make_valid,
    }
    if collection.bbox is not None:
        options['quantize_bounds'] = collection.bbox.as_tuple()

    return mapbox_vector_tile.encode([layer], default_options=options)


class VectorTileGenerator:
    """
    Tileset generator for elevation tiles.

    Produces one contour/hillshade vector tile per input elevation tile.
    """

    def __init__(
        self,
        config: Config,
        source: Optional[ElevationSource] = None,
        metrics_collector: Optional[MetricsCollector] = None
    ):
        """
        Initialize the vector tile generator.

        Args:
            config: Run configuration
            source: Elevation source; defaults to PNG tiles below
                ``config.input_root``
            metrics_collector: Optional metrics collector
        """
        config.validate()
        self.config = config
        self.output_root = Path(config.output_root)
        self.source = source
        self.metrics = metrics_collector or MetricsCollector()
        self.processor = TileProcessor(config, source=source, metrics_collector=self.metrics)

        self.logger = structlog.get_logger(
            generator_type="VectorTileGenerator",
            output_format=config.output_format
        )

        self.stats = {
            'tiles_generated': 0,
            'tiles_skipped': 0,
            'tiles_failed': 0,
            'total_features': 0,
            'total_processing_time': 0.0,
            'errors': []
        }

    def discover_tiles(self) -> List[TileCoordinate]:
        """Every PNG tile below the configured input root."""
        ingester = ElevationDataIngester(self.config.input_root, self.config.size, self.config.units)
        return ingester.discover_tiles()

    def output_path(self, tile: TileCoordinate) -> Path:
        extension = 'mvt' if self.config.output_format == 'mvt' else 'geojson'
        return self.output_root / str(tile.zoom) / str(tile.x) / f"{tile.y}.{extension}"

    def generate_tileset(
        self,
        tiles: Optional[Sequence[TileCoordinate]] = None,
        error_handler: Optional[ErrorHandler] = None
    ) -> Dict[str, Any]:
        """
        Process a whole work-list.

        Args:
            tiles: Tiles to process; discovered from the input root if None
            error_handler: Called with (tile, message) for every failed tile

        Returns:
            Dictionary containing run results and statistics
        """
        start_time = time.time()

        if tiles is None:
            tiles = self.discover_tiles()
        tiles = list(tiles)

        self.logger.info(
            "Starting tileset generation",
            tiles=len(tiles),
            workers=self.config.workers
        )

        if self.config.workers > 1 and len(tiles) > 1:
            results = self._generate_parallel(tiles)
        else:
            results = self._drain(tiles)

        for result in results:
            self._record(result)
            if not result.success and error_handler is not None:
                error_handler(result.tile, result.error)

        failed = [r for r in results if not r.success]
        generated = sum(1 for r in results if r.success and not r.skipped)
        skipped = sum(1 for r in results if r.skipped)
        total_time = time.time() - start_time
        self.stats['total_processing_time'] += total_time

        self.logger.info(
            "Tileset generation completed",
            tiles_generated=generated,
            tiles_skipped=skipped,
            tiles_failed=len(failed),
            processing_time=total_time
        )

        return {
            'success': not failed,
            'tiles_total': len(tiles),
            'tiles_generated': generated,
            'tiles_skipped': skipped,
            'tiles_failed': len(failed),
            'errors': [f"Tile {r.tile_id}: {r.error}" for r in failed],
            'processing_time': total_time,
            'output_dir': str(self.output_root)
        }

    def generate_single_tile(self, tile: TileCoordinate) -> TileResult:
        """Process, encode and save one tile. Never raises for tile-level failures."""
        start_time = time.time()
        path = self.output_path(tile)

        if not self.config.overwrite and path.exists():
            self.logger.debug("Output exists, skipping", tile_id=tile.tile_id)
            return TileResult(tile=tile, success=True, skipped=True, output_path=str(path))

        try:
            collection = self.processor.process(tile)
            self._save_tile(self.encode(collection), path)

        except TerrainVectorizerError as e:
            self.logger.error("Failed to generate tile", tile_id=tile.tile_id, error=str(e))
            return TileResult(
                tile=tile, success=False, error=str(e),
                processing_time=time.time() - start_time
            )
        except Exception as e:
            self.logger.exception("Unexpected error generating tile", tile_id=tile.tile_id)
            return TileResult(
                tile=tile, success=False, error=f"{type(e).__name__}: {e}",
                processing_time=time.time() - start_time
            )

        contours = len(collection.contours)
        return TileResult(
            tile=tile,
            success=True,
            feature_count=len(collection.features),
            contour_count=contours,
            hull_count=len(collection.features) - contours,
            processing_time=time.time() - start_time,
            output_path=str(path)
        )

    def encode(self, collection: FeatureCollection) -> bytes:
        if self.config.output_format == 'mvt':
            return encode_mvt(collection)
        if self.config.output_format == 'geojson':
            return encode_geojson(collection)
        raise ValueError(f"Unsupported output format: {self.config.output_format}")

    def _drain(self, tiles: Sequence[TileCoordinate]) -> List[TileResult]:
        results = []
        remaining = len(tiles)
        for tile in tiles:
            self.metrics.set_gauge('tile_queue_size', remaining)
            results.append(self.generate_single_tile(tile))
            remaining -= 1
        self.metrics.set_gauge('tile_queue_size', 0)
        return results

    def _generate_parallel(self, tiles: Sequence[TileCoordinate]) -> List[TileResult]:
        partitions = [p for p in split_round_robin(tiles, self.config.workers) if p]
        config_values = self.config.to_dict()
        results: List[TileResult] = []

        with concurrent.futures.ProcessPoolExecutor(max_workers=len(partitions)) as executor:
            future_to_partition = {
                executor.submit(_drain_partition, partition, config_values, self.source): partition
                for partition in partitions
            }

            for future in concurrent.futures.as_completed(future_to_partition):
                partition = future_to_partition[future]
                try:
                    results.extend(future.result())
                except Exception as e:
                    # the worker died; its whole partition counts as failed
                    self.logger.error(
                        "Worker failed",
                        tiles=len(partition),
                        error=str(e)
                    )
                    results.extend(
                        TileResult(tile=tile, success=False, error=f"worker failed: {e}")
                        for tile in partition
                    )

        return results

    def _record(self, result: TileResult) -> None:
        if result.skipped:
            status = 'skipped'
            self.stats['tiles_skipped'] += 1
        elif result.success:
            status = 'success'
            self.stats['tiles_generated'] += 1
            self.stats['total_features'] += result.feature_count
            self.metrics.record_histogram('tile_processing_duration_seconds', result.processing_time)
            self.metrics.increment_counter('features_emitted_total', result.contour_count, {'kind': 'contour'})
            self.metrics.increment_counter('features_emitted_total', result.hull_count, {'kind': 'hull'})
        else:
            status = 'failed'
            self.stats['tiles_failed'] += 1
            self.stats['errors'].append(f"Tile {result.tile_id}: {result.error}")

        self.metrics.increment_counter('tiles_processed_total', labels={'status': status})

    def _save_tile(self, tile_data: bytes, tile_path: Path) -> None:
        """Write via a sibling temp file so a partial tile never looks finished."""
        tile_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = tile_path.with_name(tile_path.name + ".tmp")
        try:
            with open(tmp_path, 'wb') as f:
                f.write(tile_data)
            tmp_path.replace(tile_path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def get_generation_stats(self) -> Dict[str, Any]:
        """Get tile generation statistics."""
        return dict(self.stats)


def _drain_partition(
    tiles: List[TileCoordinate],
    config_values: Dict[str, Any],
    source: Optional[ElevationSource] = None
) -> List[TileResult]:
    """Worker entry point: drain one partition with a private generator."""
    config = Config.from_dict(config_values)
    generator = VectorTileGenerator(
        config,
        source=source,
        metrics_collector=MetricsCollector(enable_prometheus=False)
    )
    return generator._drain(tiles)
