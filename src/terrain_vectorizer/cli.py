"""CLI entrypoint for converting a directory of elevation tiles."""

import argparse
import sys
from typing import List, Optional

import structlog

from .tile_generation.vector_tile_generator import VectorTileGenerator
from .utils.config import SUPPORTED_FORMATS, SUPPORTED_UNITS, Config
from .utils.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="terrain-vectorizer",
        description="Turn Terrain-RGB elevation tiles into contour and hillshade vector tiles"
    )
    parser.add_argument("-i", "--input", help="Input root holding {z}/{x}/{y}.png tiles")
    parser.add_argument("-o", "--output", help="Output root for generated tiles")
    parser.add_argument("-s", "--size", type=int, help="Pixel size of the input tiles")
    parser.add_argument("-u", "--units", choices=SUPPORTED_UNITS, help="Elevation units")
    parser.add_argument("-w", "--overwrite", action="store_true", default=None,
                        help="Regenerate tiles whose output already exists")
    parser.add_argument("--no-smooth", dest="smooth", action="store_false", default=None,
                        help="Keep raw marching-squares contours")
    parser.add_argument("-l", "--tippecanoe-layer", dest="tippecanoe_layer",
                        help="Layer name written on every feature")
    parser.add_argument("-t", "--threads", dest="workers", type=int,
                        help="Number of worker processes")
    parser.add_argument("-f", "--format", dest="output_format", choices=SUPPORTED_FORMATS,
                        help="Output encoding")
    parser.add_argument("--no-hillshade", dest="hillshade", action="store_false", default=None,
                        help="Skip shadow/highlight polygons")
    parser.add_argument("-v", "--verbose", action="store_true", default=None,
                        help="Debug logging")
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[Config] = None) -> Config:
    """Command line values override ``base`` (environment by default)."""
    values = (base or Config.from_env()).to_dict()
    overrides = {
        "input_root": args.input,
        "output_root": args.output,
        "size": args.size,
        "units": args.units,
        "overwrite": args.overwrite,
        "smooth": args.smooth,
        "tippecanoe_layer": args.tippecanoe_layer,
        "workers": args.workers,
        "output_format": args.output_format,
        "hillshade": args.hillshade,
        "verbose": args.verbose,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return Config.from_dict(values)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args)
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    configure_logging(config.verbose)
    logger = structlog.get_logger(component="cli")

    generator = VectorTileGenerator(config)
    summary = generator.generate_tileset()

    logger.info(
        "Run finished",
        tiles_total=summary["tiles_total"],
        tiles_generated=summary["tiles_generated"],
        tiles_skipped=summary["tiles_skipped"],
        tiles_failed=summary["tiles_failed"],
        output_dir=summary["output_dir"]
    )

    return 0 if summary["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
