"""
Configuration

Run options shared by the per-tile pipeline, the tileset generator and the
command line. Values come from code, a plain dictionary, or ``TERRAIN_*``
environment variables.
"""

import os
from dataclasses import dataclass, fields, asdict
from typing import Any, Dict, Optional


FEET_PER_METER = 3.2808398950131

SUPPORTED_UNITS = ("metric", "feet")
SUPPORTED_FORMATS = ("geojson", "mvt")


@dataclass
class Config:
    """Options for converting elevation tiles into contour/hillshade features."""
    smooth: bool = True
    size: int = 512
    units: str = "metric"
    tippecanoe_layer: str = "contourLines"
    overwrite: bool = False
    workers: int = 1
    input_root: str = "./hillshades"
    output_root: str = "./out"
    output_format: str = "geojson"
    step_size: Optional[int] = None
    cell_size: float = 5.0
    hillshade: bool = True
    verbose: bool = False

    def validate(self) -> None:
        """Raise ValueError if any option is out of range."""
        if self.units not in SUPPORTED_UNITS:
            raise ValueError(f"Unsupported units: {self.units}")
        if self.output_format not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported output format: {self.output_format}")
        if self.size <= 0:
            raise ValueError("size must be positive")
        if self.workers <= 0:
            raise ValueError("workers must be positive")
        if self.step_size is not None and self.step_size <= 0:
            raise ValueError("step_size must be positive")
        if self.cell_size <= 0:
            raise ValueError("cell_size must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "Config":
        """Build a config from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in values.items() if k in known and v is not None})

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Config":
        """Build a config from TERRAIN_* environment variables."""
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        for f in fields(cls):
            raw = environ.get(f"TERRAIN_{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _coerce(raw, f.default)

        return cls.from_dict(values)


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if default is None:
        # step_size is the only optional option
        return int(raw)
    return raw
