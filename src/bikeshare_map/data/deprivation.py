"""Deprivation index table joined to the region lookup."""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from bikeshare_map.config import DeprivationColumns
from bikeshare_map.data.columns import (
    DEPRIVATION_DECILE,
    DEPRIVATION_RANK,
    FINE_AREA_CODE,
    LOOKUP_COLUMNS,
    missing_codes,
    read_table,
    require_columns,
)
from bikeshare_map.errors import SchemaError

logger = logging.getLogger(__name__)


def join_deprivation(deprivation: pd.DataFrame, lookup: pd.DataFrame) -> pd.DataFrame:
    """Inner-join canonical deprivation rows to the lookup on fine_area_code.

    Rows with no lookup match are dropped. A lookup with duplicate codes fans
    the join out; uniqueness of fine_area_code is assumed, not checked.
    """
    joined = deprivation.merge(
        lookup[LOOKUP_COLUMNS],
        on=FINE_AREA_CODE,
        how="inner",
    )

    dropped = missing_codes(deprivation[FINE_AREA_CODE], lookup[FINE_AREA_CODE])
    if dropped:
        logger.info(
            "Deprivation join dropped %d areas with no lookup match",
            len(dropped),
        )
    return joined.reset_index(drop=True)


def load_deprivation(
    path: Union[str, Path],
    lookup: pd.DataFrame,
    columns: Optional[DeprivationColumns] = None,
) -> pd.DataFrame:
    """Load the deprivation table and attach lookup fields.

    Args:
        path: CSV deprivation index file
        lookup: Output of ``load_lookup``
        columns: Canonical source column names

    Returns:
        DataFrame with fine_area_code, deprivation_rank, deprivation_decile
        and the four lookup columns

    Raises:
        DataLoadError: If the file is missing or unparsable
        SchemaError: If a configured column is absent or rank/decile are
            not whole numbers
    """
    columns = columns or DeprivationColumns()
    raw = read_table(path)

    renames = {
        columns.area_code: FINE_AREA_CODE,
        columns.rank: DEPRIVATION_RANK,
        columns.decile: DEPRIVATION_DECILE,
    }
    require_columns(raw, renames, f"deprivation table {path}")

    deprivation = raw[list(renames)].rename(columns=renames)
    codes = deprivation[FINE_AREA_CODE].astype("string").str.strip()
    blank = codes.fillna("").eq("").to_numpy(dtype=bool)
    if blank.any():
        logger.warning("Skipping %d deprivation rows with no area code in %s", int(blank.sum()), path)
    deprivation = deprivation[~blank].copy()
    deprivation[FINE_AREA_CODE] = codes[~blank].astype(str)

    for column in (DEPRIVATION_RANK, DEPRIVATION_DECILE):
        values = pd.to_numeric(deprivation[column], errors="coerce")
        try:
            deprivation[column] = values.astype("Int64")
        except (TypeError, ValueError) as exc:
            raise SchemaError(
                f"Column {column!r} in {path} holds non-integer values"
            ) from exc

    joined = join_deprivation(deprivation, lookup)
    logger.info("Loaded %d deprivation records from %s", len(joined), path)
    return joined
