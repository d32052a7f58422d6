"""Tabular loaders: station feed, region lookup, deprivation and indicator tables."""

from bikeshare_map.data.columns import canonical_name, canonicalize_columns
from bikeshare_map.data.deprivation import load_deprivation
from bikeshare_map.data.indicator import COMPARISON_CATEGORIES, load_indicator
from bikeshare_map.data.lookup import load_lookup
from bikeshare_map.data.points import PointFeedClient, PointRecord, fetch_points

__all__ = [
    "canonical_name",
    "canonicalize_columns",
    "load_lookup",
    "load_deprivation",
    "load_indicator",
    "COMPARISON_CATEGORIES",
    "PointFeedClient",
    "PointRecord",
    "fetch_points",
]
