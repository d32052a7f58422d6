"""Compose stations and polygon layers into the two map specifications.

Both functions are pure: they read the layers and return a new MapSpec.
"""

from typing import Optional, Sequence

import geopandas as gpd

from bikeshare_map.config import MapConfig
from bikeshare_map.data.columns import (
    COARSE_AREA_NAME,
    COMPARISON_CATEGORY,
    DEPRIVATION_DECILE,
)
from bikeshare_map.data.indicator import COMPARISON_CATEGORIES
from bikeshare_map.data.points import PointRecord
from bikeshare_map.maps.spec import (
    CategoricalScale,
    ChoroplethLayer,
    MapSpec,
    MarkerLayer,
    TileLayer,
    Viewport,
)

DEPRIVATION_LAYER = "Deprivation decile"
AUTHORITY_LAYER = "Local authorities"
INDICATOR_LAYER = "Health indicator"
STATIONS_LAYER = "Docking stations"


def _viewport(style: MapConfig) -> Viewport:
    lat, lon = style.center
    return Viewport(lat=lat, lon=lon, zoom=style.zoom)


def _tiles(style: MapConfig) -> TileLayer:
    return TileLayer(url=style.tile_url, attribution=style.tile_attribution)


def _markers(points: Sequence[PointRecord], style: MapConfig) -> MarkerLayer:
    return MarkerLayer(
        name=STATIONS_LAYER,
        points=list(points),
        color=style.marker_color,
        size=style.marker_size,
    )


def decile_scale(fine_layer: gpd.GeoDataFrame, style: Optional[MapConfig] = None) -> CategoricalScale:
    """Ordinal scale over the deciles observed in ``fine_layer``.

    Each decile keeps its fixed palette colour whatever else is present;
    values outside 1-10 fall through to the missing colour.
    """
    style = style or MapConfig()
    if fine_layer.empty:
        observed = []
    else:
        observed = sorted(
            int(d)
            for d in fine_layer[DEPRIVATION_DECILE].dropna().unique()
            if 1 <= int(d) <= len(style.decile_palette)
        )
    return CategoricalScale(
        domain=tuple(observed),
        colors=tuple(style.decile_palette[d - 1] for d in observed),
        missing_color=style.missing_color,
    )


def comparison_scale(style: Optional[MapConfig] = None) -> CategoricalScale:
    """Traffic-light scale; the domain is always Similar, Worse, Better."""
    style = style or MapConfig()
    return CategoricalScale(
        domain=COMPARISON_CATEGORIES,
        colors=tuple(style.comparison_colors[c] for c in COMPARISON_CATEGORIES),
        missing_color=style.missing_color,
    )


def compose_deprivation_map(
    points: Sequence[PointRecord],
    fine_layer: gpd.GeoDataFrame,
    coarse_layer: gpd.GeoDataFrame,
    style: Optional[MapConfig] = None,
) -> MapSpec:
    """Stations over fine areas coloured by deprivation decile.

    Coarse areas are drawn unfilled, as labelled outlines on top.
    """
    style = style or MapConfig()
    return MapSpec(
        title="Docking stations and deprivation decile",
        viewport=_viewport(style),
        layers=[
            _tiles(style),
            ChoroplethLayer(
                name=DEPRIVATION_LAYER,
                data=fine_layer,
                value_column=DEPRIVATION_DECILE,
                scale=decile_scale(fine_layer, style),
                fill_opacity=style.fill_opacity,
                edge_color=style.edge_color,
                edge_width=style.edge_width,
                zorder=1,
            ),
            _markers(points, style),
            ChoroplethLayer(
                name=AUTHORITY_LAYER,
                data=coarse_layer,
                fill_opacity=0.0,
                edge_color="black",
                edge_width=1.0,
                label_column=COARSE_AREA_NAME,
                zorder=2,
            ),
        ],
    )


def compose_indicator_map(
    points: Sequence[PointRecord],
    coarse_layer: gpd.GeoDataFrame,
    style: Optional[MapConfig] = None,
) -> MapSpec:
    """Stations over coarse areas coloured by comparison to England."""
    style = style or MapConfig()
    return MapSpec(
        title="Docking stations and health indicator comparison",
        viewport=_viewport(style),
        layers=[
            _tiles(style),
            ChoroplethLayer(
                name=INDICATOR_LAYER,
                data=coarse_layer,
                value_column=COMPARISON_CATEGORY,
                scale=comparison_scale(style),
                fill_opacity=style.fill_opacity,
                edge_color=style.edge_color,
                edge_width=style.edge_width,
                zorder=1,
            ),
            _markers(points, style),
        ],
    )
