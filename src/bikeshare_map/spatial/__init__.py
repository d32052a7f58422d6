"""Polygon layers aligned to a common CRS."""

from bikeshare_map.spatial.layers import SpatialLayer, load_layer, reproject

__all__ = ["SpatialLayer", "load_layer", "reproject"]
