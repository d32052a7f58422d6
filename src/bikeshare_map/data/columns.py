"""Canonical column names and header normalization.

Every raw table is passed through ``canonicalize_columns`` straight after it
is read, so all join keys downstream compare against one naming scheme.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Union

import pandas as pd

from bikeshare_map.errors import DataLoadError, SchemaError

logger = logging.getLogger(__name__)

# Region lookup
FINE_AREA_NAME = "fine_area_name"
FINE_AREA_CODE = "fine_area_code"
COARSE_AREA_NAME = "coarse_area_name"
COARSE_AREA_CODE = "coarse_area_code"
LOOKUP_COLUMNS = [FINE_AREA_NAME, FINE_AREA_CODE, COARSE_AREA_NAME, COARSE_AREA_CODE]

# Deprivation index
DEPRIVATION_RANK = "deprivation_rank"
DEPRIVATION_DECILE = "deprivation_decile"

# Health indicator
TIME_PERIOD = "time_period"
COMPARISON_CATEGORY = "comparison_category"
RAW_VALUE = "raw_value"
INDICATOR_COLUMNS = [COARSE_AREA_CODE, TIME_PERIOD, COMPARISON_CATEGORY, RAW_VALUE]

# Polygon layers
AREA_CODE = "area_code"

_NON_ALNUM = re.compile(r"[^0-9a-z]+")


def canonical_name(name: str) -> str:
    """Lower-case, snake-separated form of a header.

    Example:
        >>> canonical_name("Index of Multiple Deprivation (IMD) Rank")
        'index_of_multiple_deprivation_imd_rank'
    """
    return _NON_ALNUM.sub("_", str(name).strip().lower()).strip("_")


def canonicalize_columns(frame: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of ``frame`` with canonical headers.

    The geometry column of a GeoDataFrame is left untouched so the active
    geometry stays valid.
    """
    geometry_name = getattr(frame, "_geometry_column_name", None)
    mapping = {
        column: canonical_name(column)
        for column in frame.columns
        if column != geometry_name
    }
    return frame.rename(columns=mapping)


def require_columns(frame: pd.DataFrame, columns: Iterable[str], source: str):
    """Raise SchemaError if any of ``columns`` is missing from ``frame``."""
    missing = [column for column in columns if column not in frame.columns]
    if missing:
        raise SchemaError(
            f"Missing columns in {source}: {missing}. "
            f"Available columns: {list(frame.columns)}"
        )


def read_table(path: Union[str, Path], **kwargs) -> pd.DataFrame:
    """Read a CSV table and canonicalize its headers.

    Raises:
        DataLoadError: If the file does not exist or cannot be parsed
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"Data file not found: {path}")

    try:
        frame = pd.read_csv(path, **kwargs)
    except (OSError, ValueError) as exc:
        raise DataLoadError(f"Could not parse {path}: {exc}") from exc

    logger.debug("Read %d rows from %s", len(frame), path)
    return canonicalize_columns(frame)


def missing_codes(left: pd.Series, right: pd.Series) -> List[str]:
    """Codes present in ``left`` with no counterpart in ``right``."""
    return sorted(set(left.dropna()) - set(right.dropna()))
