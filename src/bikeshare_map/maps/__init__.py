"""Map composition and rendering."""

from bikeshare_map.maps.composer import (
    comparison_scale,
    compose_deprivation_map,
    compose_indicator_map,
    decile_scale,
)
from bikeshare_map.maps.spec import (
    CategoricalScale,
    ChoroplethLayer,
    MapSpec,
    MarkerLayer,
    TileLayer,
    Viewport,
)
from bikeshare_map.maps.visualizer import MapVisualizer, render_map

__all__ = [
    "compose_deprivation_map",
    "compose_indicator_map",
    "decile_scale",
    "comparison_scale",
    "CategoricalScale",
    "ChoroplethLayer",
    "MapSpec",
    "MarkerLayer",
    "TileLayer",
    "Viewport",
    "MapVisualizer",
    "render_map",
]
