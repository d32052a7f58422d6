"""Region lookup: fine area -> coarse area -> region."""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from bikeshare_map.config import LookupColumns
from bikeshare_map.data.columns import (
    COARSE_AREA_CODE,
    COARSE_AREA_NAME,
    FINE_AREA_CODE,
    FINE_AREA_NAME,
    LOOKUP_COLUMNS,
    read_table,
    require_columns,
)

logger = logging.getLogger(__name__)

REGION = "region"


def filter_region(lookup: pd.DataFrame, region_name: str) -> pd.DataFrame:
    """Keep rows whose region equals ``region_name``.

    Works on the renamed lookup before projection, so the region column
    is still present. Applying it twice gives the same rows.

    Raises:
        SchemaError: If the frame has no region column
    """
    require_columns(lookup, [REGION], "lookup")
    return lookup[lookup[REGION] == region_name].reset_index(drop=True)


def load_lookup(
    path: Union[str, Path],
    region_name: str,
    columns: Optional[LookupColumns] = None,
) -> pd.DataFrame:
    """Load the lookup table restricted to one region.

    Args:
        path: CSV lookup file
        region_name: Value of the region column to keep (e.g. "London")
        columns: Canonical source column names

    Returns:
        DataFrame with fine_area_name, fine_area_code, coarse_area_name and
        coarse_area_code. Empty when no row matches the region.

    Raises:
        DataLoadError: If the file is missing or unparsable
        SchemaError: If a configured column is absent
    """
    columns = columns or LookupColumns()
    raw = read_table(path, dtype=str)

    renames = {
        columns.fine_area_name: FINE_AREA_NAME,
        columns.fine_area_code: FINE_AREA_CODE,
        columns.coarse_area_name: COARSE_AREA_NAME,
        columns.coarse_area_code: COARSE_AREA_CODE,
        columns.region: REGION,
    }
    require_columns(raw, renames, f"lookup {path}")

    lookup = filter_region(raw.rename(columns=renames), region_name)
    if lookup.empty:
        logger.warning("No lookup rows for region %r in %s", region_name, path)
    else:
        logger.info(
            "Lookup for %s: %d fine areas in %d coarse areas",
            region_name,
            len(lookup),
            lookup[COARSE_AREA_CODE].nunique(),
        )

    return lookup[LOOKUP_COLUMNS].reset_index(drop=True)

