from __future__ import annotations

import csv
from pathlib import Path

import geopandas as gpd
import matplotlib
import pytest
import requests
from shapely.geometry import box

matplotlib.use("Agg")

# British National Grid origin for the test squares, roughly central London
EASTING = 530000
NORTHING = 180000


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: str = "", raises_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self._raises_json = raises_json

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP status: {self.status_code}")

    def json(self):
        if self._raises_json:
            raise ValueError("bad json")
        return self._payload


@pytest.fixture
def fake_get(monkeypatch):
    """Patch requests.Session.get to return the given response (or raise it)."""
    calls = []

    def install(response):
        def _get(self, url, **kwargs):
            calls.append({"url": url, **kwargs})
            if isinstance(response, Exception):
                raise response
            return response

        monkeypatch.setattr(requests.Session, "get", _get)
        return calls

    return install


def write_csv(path: Path, headers: list[str], rows: list[list]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(headers)
        writer.writerows(rows)
    return path


LOOKUP_HEADERS = ["LSOA11CD", "LSOA11NM", "LAD19CD", "LAD19NM", "RGN19NM"]
LOOKUP_ROWS = [
    ["E01000001", "City of London 001A", "E09000001", "City of London", "London"],
    ["E01000002", "City of London 001B", "E09000001", "City of London", "London"],
    ["E01000003", "Camden 001A", "E09000007", "Camden", "London"],
    ["E01009999", "Birmingham 001A", "E08000025", "Birmingham", "West Midlands"],
]

DEPRIVATION_HEADERS = [
    "LSOA code (2011)",
    "LSOA name (2011)",
    "Index of Multiple Deprivation (IMD) Rank",
    "Index of Multiple Deprivation (IMD) Decile",
]
DEPRIVATION_ROWS = [
    ["E01000001", "City of London 001A", "29199", "9"],
    ["E01000002", "City of London 001B", "30379", "10"],
    ["E01000003", "Camden 001A", "14486", "5"],
    ["E01009999", "Birmingham 001A", "1200", "1"],
    ["E01088888", "Unknown 001A", "500", "1"],
]


@pytest.fixture
def lookup_csv(tmp_path) -> Path:
    return write_csv(tmp_path / "lookup.csv", LOOKUP_HEADERS, LOOKUP_ROWS)


@pytest.fixture
def deprivation_csv(tmp_path) -> Path:
    return write_csv(tmp_path / "imd.csv", DEPRIVATION_HEADERS, DEPRIVATION_ROWS)


def _square(col: int, row: int, size: int = 1000):
    x = EASTING + col * size
    y = NORTHING + row * size
    return box(x, y, x + size, y + size)


def write_shapefile(path: Path, records: dict, geometries: list, crs="EPSG:27700") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    gdf = gpd.GeoDataFrame(records, geometry=geometries, crs=crs)
    gdf.to_file(path)
    return path


@pytest.fixture
def fine_shapefile(tmp_path) -> Path:
    return write_shapefile(
        tmp_path / "shapes" / "lsoa.shp",
        {"LSOA11CD": ["E01000001", "E01000002", "E01000003"]},
        [_square(0, 0), _square(1, 0), _square(0, 1)],
    )


@pytest.fixture
def coarse_shapefile(tmp_path) -> Path:
    return write_shapefile(
        tmp_path / "shapes" / "boroughs.shp",
        {
            "GSS_CODE": ["E09000001", "E09000007", "E09000033"],
            "NAME": ["City of London", "Camden", "Westminster"],
        },
        [
            box(EASTING, NORTHING, EASTING + 2000, NORTHING + 1000),
            _square(0, 1),
            _square(2, 0),
        ],
    )


INDICATOR_CSV = """Indicator ID,Indicator Name,Area Code,Area Name,Area Type,Sex,Age,Category Type,Category,Time period,Value,Compared to England value or percentiles
93014,Physically active adults,E09000001,City of London,District & UA,Persons,19+ yrs,,,2018/19,71.2,Better
93014,Physically active adults,E09000007,Camden,District & UA,Persons,19+ yrs,,,2018/19,64.1,Worse
93014,Physically active adults,E09000007,Camden,District & UA,Male,19+ yrs,,,2018/19,69.9,Better
93014,Physically active adults,E09000007,Camden,District & UA,Persons,19+ yrs,,,2017/18,66.0,Similar
93014,Physically active adults,E09000007,Camden,District & UA,Persons,19+ yrs,Deprivation deciles,Most deprived decile,2018/19,55.0,Worse
93014,Physically active adults,E08000025,Birmingham,District & UA,Persons,19+ yrs,,,2018/19,58.3,Worse
"""

STATIONS = [
    {"id": "BikePoints_1", "commonName": "River Street , Clerkenwell", "lat": 51.529163, "lon": -0.10997, "additionalProperties": []},
    {"id": "BikePoints_2", "commonName": "Phillimore Gardens, Kensington", "lat": 51.499606, "lon": -0.197574, "additionalProperties": []},
    {"id": "BikePoints_3", "commonName": "Christopher Street, Liverpool Street", "lat": 51.521283, "lon": -0.084605, "additionalProperties": []},
]


@pytest.fixture
def routed_get(monkeypatch):
    """Patch requests.Session.get to answer by URL substring."""

    def install(routes: dict):
        def _get(self, url, **kwargs):
            for fragment, response in routes.items():
                if fragment in url:
                    if isinstance(response, Exception):
                        raise response
                    return response
            raise requests.ConnectionError(f"no route for {url}")

        monkeypatch.setattr(requests.Session, "get", _get)

    return install


@pytest.fixture
def pipeline_config(tmp_path, lookup_csv, deprivation_csv, fine_shapefile, coarse_shapefile):
    from bikeshare_map.config import Config, DataPaths, FeedConfig, IndicatorConfig

    return Config(
        feed=FeedConfig(url="https://feed.example/BikePoint"),
        indicator=IndicatorConfig(url="https://indicators.example/csv", time_period="2018/19"),
        paths=DataPaths(
            data_dir=str(tmp_path),
            lookup_file=lookup_csv.name,
            deprivation_file=deprivation_csv.name,
            fine_boundaries="shapes/lsoa.shp",
            coarse_boundaries="shapes/boroughs.shp",
        ),
        region_name="London",
    )


@pytest.fixture
def live_services(routed_get):
    routed_get({
        "feed.example": FakeResponse(200, STATIONS),
        "indicators.example": FakeResponse(200, text=INDICATOR_CSV),
    })
