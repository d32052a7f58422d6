"""End-to-end pipeline: load, join, compose and render both maps."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd

from bikeshare_map.config import BoundaryConfig, Config, config as default_config
from bikeshare_map.data.columns import (
    COARSE_AREA_CODE,
    COARSE_AREA_NAME,
    FINE_AREA_CODE,
)
from bikeshare_map.data.deprivation import load_deprivation
from bikeshare_map.data.indicator import load_indicator
from bikeshare_map.data.lookup import load_lookup
from bikeshare_map.data.points import PointRecord, fetch_points
from bikeshare_map.maps.composer import compose_deprivation_map, compose_indicator_map
from bikeshare_map.maps.spec import MapSpec
from bikeshare_map.maps.visualizer import MapVisualizer, layer_summary
from bikeshare_map.spatial.layers import SpatialLayer

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Container for every dataset built in one run and the two maps."""

    points: List[PointRecord]
    lookup: pd.DataFrame
    deprivation: pd.DataFrame
    indicator: pd.DataFrame
    fine_layer: gpd.GeoDataFrame
    coarse_layer: gpd.GeoDataFrame
    deprivation_map: MapSpec
    indicator_map: MapSpec

    def maps(self) -> Dict[str, MapSpec]:
        return {
            "deprivation": self.deprivation_map,
            "indicator": self.indicator_map,
        }


class MapPipeline:
    """Runs every stage in dependency order.

    Handles:
    - Station feed fetch
    - Lookup, deprivation and indicator loading
    - Fine and coarse polygon layers
    - Composition of both map specifications

    Any MapPipelineError aborts the run before rendering.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or default_config

    def _layer(self, boundaries: BoundaryConfig) -> SpatialLayer:
        return SpatialLayer(
            self.config.paths.resolve(boundaries.path_key),
            code_column=boundaries.code_column,
            target_crs=self.config.target_crs,
            name=boundaries.name,
        )

    def run(self) -> PipelineResult:
        """Build every dataset and both map specifications.

        The deprivation map's authority outlines come from the coarse layer,
        which is joined to the indicator table; a period with no indicator
        rows leaves that map without outlines.
        """
        cfg = self.config
        logger.info("Starting map pipeline for region %s", cfg.region_name)

        points = fetch_points(cfg.feed)

        lookup = load_lookup(
            cfg.paths.resolve("lookup_file"),
            cfg.region_name,
            cfg.lookup_columns,
        )
        deprivation = load_deprivation(
            cfg.paths.resolve("deprivation_file"),
            lookup,
            cfg.deprivation_columns,
        )
        indicator = load_indicator(
            cfg.indicator.indicator_id,
            cfg.indicator.area_type_id,
            lookup[COARSE_AREA_CODE].unique(),
            cfg.indicator.time_period,
            cfg.indicator,
        )

        fine_layer = self._layer(cfg.fine_boundaries).join(deprivation, FINE_AREA_CODE)

        # One row per fine area; the coarse layer keeps one per authority.
        coarse_table = indicator.merge(
            lookup[[COARSE_AREA_CODE, COARSE_AREA_NAME]],
            on=COARSE_AREA_CODE,
            how="inner",
        )
        coarse_layer = self._layer(cfg.coarse_boundaries).join(
            coarse_table,
            COARSE_AREA_CODE,
            filter_codes=deprivation[COARSE_AREA_CODE].unique(),
            deduplicate=True,
        )

        deprivation_map = compose_deprivation_map(points, fine_layer, coarse_layer, cfg.map)
        indicator_map = compose_indicator_map(points, coarse_layer, cfg.map)

        for name, spec in (("deprivation", deprivation_map), ("indicator", indicator_map)):
            logger.info("Composed %s map: %s", name, layer_summary(spec))

        return PipelineResult(
            points=points,
            lookup=lookup,
            deprivation=deprivation,
            indicator=indicator,
            fine_layer=fine_layer,
            coarse_layer=coarse_layer,
            deprivation_map=deprivation_map,
            indicator_map=indicator_map,
        )


def write_maps(
    maps: Dict[str, MapSpec],
    output_dir: Union[str, Path],
    config: Optional[Config] = None,
    format: str = "png",
) -> Dict[str, Path]:
    """Render each map to ``<name>_map.<format>`` and ``<name>_map.json``."""
    config = config or default_config
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    viz = MapVisualizer(config.map)
    written = {}
    for name, spec in maps.items():
        image_path = output_dir / f"{name}_map.{format}"
        json_path = output_dir / f"{name}_map.json"

        fig, _ax = viz.render(spec)
        try:
            viz.save(image_path, fig)
        finally:
            plt.close(fig)

        with json_path.open("w", encoding="utf-8") as f:
            json.dump(spec.to_dict(), f, ensure_ascii=False)

        logger.info("Wrote %s and %s", image_path, json_path)
        written[name] = image_path
    return written


def build_maps(
    config: Optional[Config] = None,
    output_dir: Union[str, Path] = "./output",
) -> Dict[str, Path]:
    """Run the pipeline and write both maps.

    Returns:
        Mapping of map name to rendered image path
    """
    result = MapPipeline(config).run()
    return write_maps(result.maps(), output_dir, config)
