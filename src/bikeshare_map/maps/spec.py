"""
Declarative map description.

A ``MapSpec`` lists layers, styling and viewport without touching any
rendering library; ``MapVisualizer`` turns it into a figure and ``to_dict``
turns it into JSON for the viewer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import mapping

from bikeshare_map.data.columns import AREA_CODE
from bikeshare_map.data.points import PointRecord


def _plain(value: Any) -> Any:
    """JSON-safe scalar."""
    if value is None:
        return None
    if isinstance(value, (list, tuple, dict)):
        return value
    if pd.isna(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    return value


@dataclass(frozen=True)
class Viewport:
    """Initial map view: fixed centre and slippy-map zoom level."""

    lat: float
    lon: float
    zoom: int

    def bounds(self, aspect: float = 1.0) -> Tuple[float, float, float, float]:
        """(min_lon, min_lat, max_lon, max_lat) covered at this zoom.

        Uses the web-mercator tile width (360 / 2**zoom degrees per tile)
        over a four-tile-wide view; ``aspect`` is height over width.
        """
        width = 4 * 360.0 / (2 ** self.zoom)
        height = width * aspect * np.cos(np.radians(self.lat))
        return (
            self.lon - width / 2,
            self.lat - height / 2,
            self.lon + width / 2,
            self.lat + height / 2,
        )

    def to_dict(self) -> dict:
        return {"center": [self.lat, self.lon], "zoom": self.zoom}


@dataclass(frozen=True)
class CategoricalScale:
    """Fixed mapping from category values to colours.

    Attributes:
        domain: Ordered category values
        colors: One colour per domain value
        missing_color: Colour for values outside the domain or missing
    """

    domain: Tuple[Any, ...]
    colors: Tuple[str, ...]
    missing_color: str = "lightgrey"

    def __post_init__(self):
        if len(self.domain) != len(self.colors):
            raise ValueError(
                f"Scale has {len(self.domain)} categories but {len(self.colors)} colours"
            )

    def color_for(self, value: Any) -> str:
        value = _plain(value)
        for category, color in zip(self.domain, self.colors):
            if category == value:
                return color
        return self.missing_color

    def to_dict(self) -> dict:
        return {
            "domain": [_plain(v) for v in self.domain],
            "colors": list(self.colors),
            "missing_color": self.missing_color,
        }


@dataclass
class TileLayer:
    """Base tile layer."""

    url: str
    attribution: str
    name: str = "Base map"

    def to_dict(self) -> dict:
        return {
            "type": "tiles",
            "name": self.name,
            "url": self.url,
            "attribution": self.attribution,
        }


@dataclass
class ChoroplethLayer:
    """Polygons coloured by a categorical scale.

    A layer with ``fill_opacity`` 0 is drawn as outlines only, with optional
    labels from ``label_column``.
    """

    name: str
    data: gpd.GeoDataFrame
    value_column: Optional[str] = None
    scale: Optional[CategoricalScale] = None
    fill_opacity: float = 0.6
    edge_color: str = "#444444"
    edge_width: float = 0.3
    label_column: Optional[str] = None
    zorder: int = 1

    @property
    def is_empty(self) -> bool:
        return self.data is None or self.data.empty

    def colors(self) -> List[str]:
        """Fill colour per feature, in row order."""
        if self.is_empty:
            return []
        if self.value_column is None or self.scale is None:
            return [self.edge_color] * len(self.data)
        return [self.scale.color_for(v) for v in self.data[self.value_column]]

    def to_dict(self) -> dict:
        properties = [AREA_CODE, self.value_column, self.label_column]
        properties = [p for p in properties if p is not None]
        features = []
        if not self.is_empty:
            for (_, row), color in zip(self.data.iterrows(), self.colors()):
                features.append({
                    "type": "Feature",
                    "geometry": mapping(row[self.data.geometry.name]),
                    "properties": dict(
                        {p: _plain(row.get(p)) for p in properties},
                        fill=color,
                    ),
                })
        return {
            "type": "choropleth",
            "name": self.name,
            "value_column": self.value_column,
            "scale": self.scale.to_dict() if self.scale else None,
            "fill_opacity": self.fill_opacity,
            "edge_color": self.edge_color,
            "edge_width": self.edge_width,
            "label_column": self.label_column,
            "features": {"type": "FeatureCollection", "features": features},
        }


@dataclass
class MarkerLayer:
    """Point markers, one per record."""

    name: str
    points: Sequence[PointRecord] = field(default_factory=list)
    color: str = "#003688"
    size: float = 8.0
    zorder: int = 3

    def to_dict(self) -> dict:
        return {
            "type": "markers",
            "name": self.name,
            "color": self.color,
            "size": self.size,
            "points": [p.to_dict() for p in self.points],
        }


Layer = Union[TileLayer, ChoroplethLayer, MarkerLayer]


@dataclass
class MapSpec:
    """Layers, styling and viewport of one map."""

    title: str
    viewport: Viewport
    layers: List[Layer] = field(default_factory=list)

    def layer(self, name: str) -> Layer:
        """Look up a layer by name.

        Raises:
            KeyError: If no layer has that name
        """
        for layer in self.layers:
            if layer.name == name:
                return layer
        raise KeyError(f"Layer '{name}' not found. Available layers: {self.layer_names}")

    @property
    def layer_names(self) -> List[str]:
        return [layer.name for layer in self.layers]

    def layers_of(self, kind: type) -> List[Layer]:
        return [layer for layer in self.layers if isinstance(layer, kind)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "viewport": self.viewport.to_dict(),
            "layers": [layer.to_dict() for layer in self.layers],
        }
