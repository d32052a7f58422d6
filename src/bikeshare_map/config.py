"""Configuration management for the bike-share map pipeline."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple


@dataclass
class FeedConfig:
    """Live docking-station feed settings."""

    url: str = field(
        default_factory=lambda: os.getenv(
            "BIKESHARE_FEED_URL", "https://api.tfl.gov.uk/BikePoint"
        )
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv("BIKESHARE_HTTP_TIMEOUT", "30"))
    )

    # Source field names in the flattened feed
    id_field: str = "id"
    name_field: str = "commonName"
    lat_field: str = "lat"
    lon_field: str = "lon"


@dataclass
class IndicatorConfig:
    """Public health indicator service settings.

    Column names are given in their canonical (snake_case) form, i.e. after
    ``canonicalize_columns`` has been applied to the service's CSV headers.
    """

    url: str = field(
        default_factory=lambda: os.getenv(
            "BIKESHARE_INDICATOR_URL",
            "https://fingertips.phe.org.uk/api/all_data/csv/by_indicator_id",
        )
    )
    timeout: float = field(
        default_factory=lambda: float(os.getenv("BIKESHARE_HTTP_TIMEOUT", "30"))
    )
    indicator_id: int = field(
        default_factory=lambda: int(os.getenv("BIKESHARE_INDICATOR_ID", "93014"))
    )
    area_type_id: int = field(
        default_factory=lambda: int(os.getenv("BIKESHARE_AREA_TYPE_ID", "101"))
    )
    time_period: str = field(
        default_factory=lambda: os.getenv("BIKESHARE_TIME_PERIOD", "2018/19")
    )
    # Headline breakdown; None disables the filter for that column
    sex: Optional[str] = field(
        default_factory=lambda: os.getenv("BIKESHARE_INDICATOR_SEX", "Persons")
    )
    age: Optional[str] = field(
        default_factory=lambda: os.getenv("BIKESHARE_INDICATOR_AGE") or None
    )

    area_code_column: str = "area_code"
    time_period_column: str = "time_period"
    comparison_column: str = "compared_to_england_value_or_percentiles"
    value_column: str = "value"
    category_type_column: str = "category_type"
    sex_column: str = "sex"
    age_column: str = "age"


@dataclass
class DataPaths:
    """Local input files, relative to ``data_dir``."""

    data_dir: str = field(
        default_factory=lambda: os.getenv("BIKESHARE_DATA_DIR", "./data")
    )
    lookup_file: str = "lsoa11_lad19_rgn19_lookup.csv"
    deprivation_file: str = "imd2019_lsoa.csv"
    fine_boundaries: str = "statistical-gis-boundaries-london/LSOA_2011_London_gen_MHW.shp"
    coarse_boundaries: str = "statistical-gis-boundaries-london/London_Borough_Excluding_MHW.shp"

    def resolve(self, name: str) -> Path:
        """Absolute-ish path for one of the configured files."""
        return Path(self.data_dir) / getattr(self, name)


@dataclass
class LookupColumns:
    """Canonical source columns of the region lookup table."""

    fine_area_name: str = "lsoa11nm"
    fine_area_code: str = "lsoa11cd"
    coarse_area_name: str = "lad19nm"
    coarse_area_code: str = "lad19cd"
    region: str = "rgn19nm"


@dataclass
class DeprivationColumns:
    """Canonical source columns of the deprivation index table."""

    area_code: str = "lsoa_code_2011"
    rank: str = "index_of_multiple_deprivation_imd_rank"
    decile: str = "index_of_multiple_deprivation_imd_decile"


@dataclass
class BoundaryConfig:
    """A polygon boundary layer.

    Attributes:
        path_key: Attribute of ``DataPaths`` holding the shapefile path
        code_column: Canonical attribute column holding the area code
        name: Human-readable name for the layer
    """

    path_key: str
    code_column: str
    name: Optional[str] = None


@dataclass
class MapConfig:
    """Viewport and styling constants shared by both maps."""

    center: Tuple[float, float] = (51.5074, -0.1278)  # (lat, lon)
    zoom: int = 12
    tile_url: str = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    tile_attribution: str = "© OpenStreetMap contributors"
    background_color: str = "#f2efe9"

    # Decile 1 (most deprived) to decile 10 (least deprived)
    decile_palette: Tuple[str, ...] = (
        "#a50026",
        "#d73027",
        "#f46d43",
        "#fdae61",
        "#fee090",
        "#e0f3f8",
        "#abd9e9",
        "#74add1",
        "#4575b4",
        "#313695",
    )
    comparison_colors: Dict[str, str] = field(
        default_factory=lambda: {
            "Similar": "#ffbf00",
            "Worse": "#d7191c",
            "Better": "#1a9641",
        }
    )
    missing_color: str = "lightgrey"
    fill_opacity: float = 0.6
    edge_color: str = "#444444"
    edge_width: float = 0.3
    marker_color: str = "#003688"
    marker_size: float = 8.0
    figsize: Tuple[int, int] = (12, 10)


@dataclass
class Config:
    """Main configuration container."""

    feed: FeedConfig = field(default_factory=FeedConfig)
    indicator: IndicatorConfig = field(default_factory=IndicatorConfig)
    paths: DataPaths = field(default_factory=DataPaths)
    lookup_columns: LookupColumns = field(default_factory=LookupColumns)
    deprivation_columns: DeprivationColumns = field(default_factory=DeprivationColumns)
    fine_boundaries: BoundaryConfig = field(
        default_factory=lambda: BoundaryConfig(
            path_key="fine_boundaries",
            code_column="lsoa11cd",
            name="LSOA boundaries",
        )
    )
    coarse_boundaries: BoundaryConfig = field(
        default_factory=lambda: BoundaryConfig(
            path_key="coarse_boundaries",
            code_column="gss_code",
            name="Local authority boundaries",
        )
    )
    map: MapConfig = field(default_factory=MapConfig)

    region_name: str = field(
        default_factory=lambda: os.getenv("BIKESHARE_REGION", "London")
    )
    target_crs: str = "EPSG:4326"


# Global config instance
config = Config()


def load_config_from_env() -> Config:
    """Load configuration from environment variables."""
    return Config(
        feed=FeedConfig(),
        indicator=IndicatorConfig(),
        paths=DataPaths(),
    )
