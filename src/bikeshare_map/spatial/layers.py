"""
Polygon boundary layers.

This module loads a shapefile set, reprojects it to the common geographic
CRS used by every map, and attaches a tabular dataset by area code.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

import geopandas as gpd
import pandas as pd
from pyproj import CRS
from pyproj.exceptions import CRSError, ProjError

from bikeshare_map.data.columns import AREA_CODE, canonicalize_columns, require_columns
from bikeshare_map.errors import DataLoadError, ProjectionError

logger = logging.getLogger(__name__)

DEFAULT_CRS = "EPSG:4326"

# A shapefile is only readable with its index and attribute table beside it;
# the .prj sidecar is optional on disk but required here via the CRS check.
SHAPEFILE_SIDECARS = (".shx", ".dbf")


def check_shapefile_set(path: Union[str, Path]) -> Path:
    """Verify the .shp file and its required sidecars exist.

    Raises:
        DataLoadError: If any file of the set is missing
    """
    path = Path(path)
    if not path.exists():
        raise DataLoadError(f"Shapefile not found: {path}")

    if path.suffix.lower() == ".shp":
        missing = [
            str(path.with_suffix(suffix))
            for suffix in SHAPEFILE_SIDECARS
            if not path.with_suffix(suffix).exists()
        ]
        if missing:
            raise DataLoadError(f"Incomplete shapefile set for {path}, missing: {missing}")
    return path


def reproject(frame: gpd.GeoDataFrame, target_crs: Union[str, CRS] = DEFAULT_CRS) -> gpd.GeoDataFrame:
    """Transform every geometry of ``frame`` to ``target_crs``.

    Raises:
        ProjectionError: If the frame has no CRS or either CRS is unusable
    """
    if frame.crs is None:
        raise ProjectionError("Layer has no declared coordinate reference system")

    try:
        target = CRS.from_user_input(target_crs)
    except CRSError as exc:
        raise ProjectionError(f"Unsupported target CRS {target_crs!r}") from exc

    try:
        return frame.to_crs(target)
    except (CRSError, ProjError) as exc:
        raise ProjectionError(
            f"Cannot transform layer from {frame.crs} to {target}"
        ) from exc


class SpatialLayer:
    """A polygon layer aligned to one CRS and joined to an attribute table.

    Steps are order-sensitive:
    1. Load geometries with their native CRS and attributes
    2. Reproject to the target CRS
    3. Canonicalize attribute headers
    4. Optionally restrict to a set of area codes
    5. Inner-join the attribute table on the area code
    """

    def __init__(
        self,
        path: Union[str, Path],
        code_column: str,
        target_crs: Union[str, CRS] = DEFAULT_CRS,
        name: Optional[str] = None,
    ):
        """Initialize the layer.

        Args:
            path: Path to the .shp file (or any format GeoPandas reads)
            code_column: Canonical attribute column holding the area code
            target_crs: CRS every geometry is transformed to
            name: Human-readable layer name
        """
        self.path = Path(path)
        self.code_column = code_column
        self.target_crs = target_crs
        self.name = name or self.path.stem
        self._data: Optional[gpd.GeoDataFrame] = None

    def load(self) -> gpd.GeoDataFrame:
        """Load, reproject and canonicalize the layer.

        Raises:
            DataLoadError: If the shapefile set is missing or unreadable
            ProjectionError: If the source CRS is undeclared or unsupported
            SchemaError: If the code column is absent
        """
        if self._data is not None:
            return self._data

        check_shapefile_set(self.path)
        try:
            raw = gpd.read_file(str(self.path))
        except Exception as exc:
            raise DataLoadError(f"Could not read {self.path}: {exc}") from exc

        frame = canonicalize_columns(reproject(raw, self.target_crs))
        require_columns(frame, [self.code_column], f"layer {self.name}")
        frame[self.code_column] = frame[self.code_column].astype(str)

        logger.info(
            "Loaded %d polygons for %s (source CRS %s)",
            len(frame),
            self.name,
            raw.crs.to_string() if raw.crs is not None else None,
        )
        self._data = frame
        return frame

    def join(
        self,
        join_table: pd.DataFrame,
        join_key: str,
        filter_codes: Optional[Iterable[str]] = None,
        deduplicate: bool = False,
    ) -> gpd.GeoDataFrame:
        """Attach ``join_table`` rows to polygons by area code.

        Args:
            join_table: Tabular dataset with a ``join_key`` column
            join_key: Column of ``join_table`` matched against the layer code
            filter_codes: Optional area codes to restrict the layer to
            deduplicate: Keep one row per area code after the join

        Returns:
            GeoDataFrame with an ``area_code`` column and the joined
            attributes. Empty (not an error) when nothing matches.
        """
        layer = self.load()
        require_columns(join_table, [join_key], f"join table for {self.name}")

        if filter_codes is not None:
            codes = {str(code) for code in filter_codes}
            layer = layer[layer[self.code_column].isin(codes)]

        table = join_table.copy()
        table[join_key] = table[join_key].astype(str)
        if join_key == self.code_column:
            joined = layer.merge(table, on=join_key, how="inner")
        else:
            joined = layer.merge(
                table, left_on=self.code_column, right_on=join_key, how="inner"
            )

        if deduplicate:
            joined = joined.drop_duplicates(subset=self.code_column)

        joined = joined.reset_index(drop=True)
        joined[AREA_CODE] = joined[self.code_column]

        if joined.empty:
            logger.warning("Join on %r matched no polygons in %s", join_key, self.name)
        else:
            logger.info("Joined %d polygons in %s", len(joined), self.name)
        return joined


def load_layer(
    shapefile_path: Union[str, Path],
    reproject_to: Union[str, CRS],
    join_table: pd.DataFrame,
    join_key: str,
    filter_codes: Optional[Iterable[str]] = None,
    area_code_column: Optional[str] = None,
    deduplicate: bool = False,
) -> gpd.GeoDataFrame:
    """Convenience function to load, reproject and join a polygon layer.

    Args:
        shapefile_path: Path to the .shp file
        reproject_to: Target CRS, e.g. "EPSG:4326"
        join_table: Tabular dataset to attach
        join_key: Join column of ``join_table``
        filter_codes: Optional area codes to restrict the layer to
        area_code_column: Canonical code column of the layer (defaults to
            ``join_key``)
        deduplicate: Keep one row per area code after the join

    Example:
        >>> fine = load_layer(
        ...     "data/LSOA_2011_London_gen_MHW.shp",
        ...     "EPSG:4326",
        ...     deprivation,
        ...     "fine_area_code",
        ...     area_code_column="lsoa11cd",
        ... )
    """
    layer = SpatialLayer(
        shapefile_path,
        code_column=area_code_column or join_key,
        target_crs=reproject_to,
    )
    return layer.join(
        join_table,
        join_key,
        filter_codes=filter_codes,
        deduplicate=deduplicate,
    )
