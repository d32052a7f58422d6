import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from bikeshare_map.data.columns import AREA_CODE
from bikeshare_map.errors import DataLoadError, ProjectionError
from bikeshare_map.spatial.layers import SpatialLayer, load_layer, reproject

from conftest import EASTING, NORTHING, write_shapefile


@pytest.fixture
def deprivation_table():
    return pd.DataFrame(
        {
            "fine_area_code": ["E01000001", "E01000003"],
            "deprivation_decile": [9, 5],
            "coarse_area_code": ["E09000001", "E09000007"],
        }
    )


def test_load_layer_reprojects_to_lon_lat(fine_shapefile, deprivation_table):
    layer = load_layer(
        fine_shapefile, "EPSG:4326", deprivation_table, "fine_area_code", area_code_column="lsoa11cd"
    )

    assert layer.crs.to_epsg() == 4326
    minx, miny, maxx, maxy = layer.total_bounds
    assert -1.0 < minx < maxx < 0.5
    assert 51.0 < miny < maxy < 52.0


def test_inner_join_attaches_attributes(fine_shapefile, deprivation_table):
    layer = load_layer(
        fine_shapefile, "EPSG:4326", deprivation_table, "fine_area_code", area_code_column="lsoa11cd"
    )

    assert sorted(layer[AREA_CODE]) == ["E01000001", "E01000003"]
    assert layer.set_index(AREA_CODE).loc["E01000003", "deprivation_decile"] == 5


def test_filter_codes_is_subset_of_valid_codes(coarse_shapefile):
    table = pd.DataFrame(
        {"coarse_area_code": ["E09000001", "E09000007", "E09000033"], "comparison_category": ["Better", "Worse", "Similar"]}
    )
    valid = {"E09000001", "E09000007"}

    layer = load_layer(
        coarse_shapefile, "EPSG:4326", table, "coarse_area_code",
        filter_codes=valid, area_code_column="gss_code",
    )

    assert set(layer[AREA_CODE]) <= valid
    assert len(layer) == 2


def test_deduplicate_keeps_one_row_per_code(coarse_shapefile):
    fanned_out = pd.DataFrame(
        {
            "coarse_area_code": ["E09000001", "E09000001", "E09000007"],
            "comparison_category": ["Better", "Better", "Worse"],
        }
    )
    layer = SpatialLayer(coarse_shapefile, code_column="gss_code")

    assert len(layer.join(fanned_out, "coarse_area_code")) == 3
    assert len(layer.join(fanned_out, "coarse_area_code", deduplicate=True)) == 2


def test_zero_matches_gives_empty_layer(fine_shapefile):
    table = pd.DataFrame({"fine_area_code": ["X1"], "deprivation_decile": [1]})

    layer = load_layer(fine_shapefile, "EPSG:4326", table, "fine_area_code", area_code_column="lsoa11cd")

    assert isinstance(layer, gpd.GeoDataFrame)
    assert len(layer) == 0


def test_reprojection_round_trip():
    original = gpd.GeoDataFrame(
        {"code": ["a"]}, geometry=[box(-0.12, 51.50, -0.11, 51.51)], crs="EPSG:4326"
    )

    for crs in ("EPSG:27700", "EPSG:3857"):
        back = reproject(reproject(original, crs), "EPSG:4326")
        expected = np.array(original.geometry.iloc[0].exterior.coords)
        actual = np.array(back.geometry.iloc[0].exterior.coords)
        assert np.allclose(actual, expected, atol=1e-6)


def test_missing_crs_raises_projection_error():
    frame = gpd.GeoDataFrame({"code": ["a"]}, geometry=[box(0, 0, 1, 1)])

    with pytest.raises(ProjectionError):
        reproject(frame, "EPSG:4326")


def test_unsupported_target_crs_raises_projection_error():
    frame = gpd.GeoDataFrame({"code": ["a"]}, geometry=[box(0, 0, 1, 1)], crs="EPSG:4326")

    with pytest.raises(ProjectionError):
        reproject(frame, "EPSG:not-a-crs")


def test_shapefile_without_prj_raises_projection_error(tmp_path, deprivation_table):
    path = write_shapefile(
        tmp_path / "noprj" / "lsoa.shp",
        {"LSOA11CD": ["E01000001"]},
        [box(EASTING, NORTHING, EASTING + 10, NORTHING + 10)],
    )
    path.with_suffix(".prj").unlink()

    with pytest.raises(ProjectionError):
        load_layer(path, "EPSG:4326", deprivation_table, "fine_area_code", area_code_column="lsoa11cd")


def test_missing_shapefile_raises_data_load_error(tmp_path, deprivation_table):
    with pytest.raises(DataLoadError):
        load_layer(tmp_path / "missing.shp", "EPSG:4326", deprivation_table, "fine_area_code")


def test_incomplete_shapefile_set_raises_data_load_error(fine_shapefile, deprivation_table):
    fine_shapefile.with_suffix(".dbf").unlink()

    with pytest.raises(DataLoadError, match="dbf"):
        load_layer(fine_shapefile, "EPSG:4326", deprivation_table, "fine_area_code", area_code_column="lsoa11cd")
