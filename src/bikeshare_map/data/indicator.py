"""Public health indicator table from the Fingertips service.

The service returns one CSV per indicator covering every area of the
requested area type and every time period, broken down by sex, age and
category. Only the headline rows of one period in the configured coarse
areas are kept.
"""

import io
import logging
from typing import Iterable, Optional

import pandas as pd
import requests

from bikeshare_map.config import IndicatorConfig
from bikeshare_map.data.columns import (
    COARSE_AREA_CODE,
    COMPARISON_CATEGORY,
    INDICATOR_COLUMNS,
    RAW_VALUE,
    TIME_PERIOD,
    canonicalize_columns,
    require_columns,
)
from bikeshare_map.errors import FetchError, SchemaError

logger = logging.getLogger(__name__)

COMPARISON_CATEGORIES = ("Similar", "Worse", "Better")


def fetch_indicator_table(
    indicator_id: int,
    area_type_id: int,
    settings: Optional[IndicatorConfig] = None,
) -> pd.DataFrame:
    """Download the raw indicator CSV with canonical headers.

    Raises:
        FetchError: If the request fails or the body is not a CSV table
    """
    settings = settings or IndicatorConfig()
    params = {
        "indicator_ids": indicator_id,
        "child_area_type_id": area_type_id,
    }

    with requests.Session() as session:
        try:
            response = session.get(settings.url, params=params, timeout=settings.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(
                f"Indicator {indicator_id} request failed: {exc}"
            ) from exc

    try:
        raw = pd.read_csv(io.StringIO(response.text), dtype=str)
    except ValueError as exc:
        raise FetchError(f"Indicator {indicator_id} returned an unreadable table") from exc

    logger.info(
        "Fetched %d rows for indicator %s (area type %s)",
        len(raw),
        indicator_id,
        area_type_id,
    )
    return canonicalize_columns(raw)


def _comparison(value) -> Optional[str]:
    if isinstance(value, str) and value.strip() in COMPARISON_CATEGORIES:
        return value.strip()
    return None


def filter_indicator(
    raw: pd.DataFrame,
    valid_area_codes: Iterable[str],
    time_period: str,
    settings: Optional[IndicatorConfig] = None,
) -> pd.DataFrame:
    """Reduce a canonical indicator table to IndicatorRecords.

    Keeps headline rows (no category breakdown, and the configured sex and
    age where those columns exist) whose area code is in ``valid_area_codes``
    and whose period equals ``time_period``. Comparison values outside
    Similar/Worse/Better become None.

    Raises:
        SchemaError: If the area code, period, comparison or value column
            is absent, or an area still has more than one headline row
    """
    settings = settings or IndicatorConfig()
    renames = {
        settings.area_code_column: COARSE_AREA_CODE,
        settings.time_period_column: TIME_PERIOD,
        settings.comparison_column: COMPARISON_CATEGORY,
        settings.value_column: RAW_VALUE,
    }
    require_columns(raw, renames, "indicator table")

    frame = raw
    if settings.category_type_column in frame.columns:
        category_type = frame[settings.category_type_column]
        frame = frame[category_type.isna() | (category_type.astype(str).str.strip() == "")]

    for column, wanted in (
        (settings.sex_column, settings.sex),
        (settings.age_column, settings.age),
    ):
        if wanted is not None and column in frame.columns:
            frame = frame[frame[column].astype(str).str.strip() == wanted]

    codes = set(valid_area_codes)
    frame = frame[
        frame[settings.area_code_column].isin(codes)
        & (frame[settings.time_period_column] == time_period)
    ]

    records = frame[list(renames)].rename(columns=renames).reset_index(drop=True)
    records[COMPARISON_CATEGORY] = records[COMPARISON_CATEGORY].map(_comparison)
    records[RAW_VALUE] = pd.to_numeric(records[RAW_VALUE], errors="coerce")

    repeated = records[COARSE_AREA_CODE][records[COARSE_AREA_CODE].duplicated()].unique()
    if len(repeated):
        raise SchemaError(
            f"Indicator has several headline rows for {sorted(repeated)} in {time_period}; "
            "narrow the breakdown with the sex or age setting"
        )

    if records.empty:
        logger.warning(
            "No indicator rows for period %r in %d coarse areas",
            time_period,
            len(codes),
        )
    return records[INDICATOR_COLUMNS]


def load_indicator(
    indicator_id: int,
    area_type_id: int,
    valid_area_codes: Iterable[str],
    time_period: str,
    settings: Optional[IndicatorConfig] = None,
) -> pd.DataFrame:
    """Fetch and filter one indicator.

    Args:
        indicator_id: Fingertips indicator id
        area_type_id: Fingertips child area type id
        valid_area_codes: Coarse area codes to keep
        time_period: Period label to keep, e.g. "2018/19"
        settings: Service URL, timeout and source column names

    Returns:
        DataFrame with coarse_area_code, time_period, comparison_category
        and raw_value. Empty when nothing matches.

    Raises:
        FetchError: On service failure
        SchemaError: If expected columns are absent
    """
    raw = fetch_indicator_table(indicator_id, area_type_id, settings)
    return filter_indicator(raw, valid_area_codes, time_period, settings)
