"""Bike-share station maps over deprivation and health indicator layers.

Pipeline stages, leaf-first:
- Region lookup, deprivation index and health indicator tables
- Fine (LSOA) and coarse (local authority) polygon layers in one CRS
- Two map specifications with the docking stations on top
"""

__version__ = "0.1.0"

from bikeshare_map.errors import (
    DataLoadError,
    FetchError,
    MapPipelineError,
    ProjectionError,
    SchemaError,
)
from bikeshare_map.pipeline import MapPipeline, PipelineResult, build_maps

__all__ = [
    "MapPipelineError",
    "FetchError",
    "DataLoadError",
    "SchemaError",
    "ProjectionError",
    "MapPipeline",
    "PipelineResult",
    "build_maps",
]
