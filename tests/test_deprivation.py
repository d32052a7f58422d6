import pandas as pd
import pytest

from bikeshare_map.data.deprivation import join_deprivation, load_deprivation
from bikeshare_map.data.lookup import load_lookup
from bikeshare_map.errors import DataLoadError, SchemaError

from conftest import DEPRIVATION_HEADERS, write_csv


def test_scenario_single_match():
    lookup = pd.DataFrame(
        [["LSOA1", "A1", "LA1", "L1"]],
        columns=["fine_area_name", "fine_area_code", "coarse_area_name", "coarse_area_code"],
    )
    deprivation = pd.DataFrame(
        {"fine_area_code": ["A1"], "deprivation_rank": [5], "deprivation_decile": [3]}
    )

    joined = join_deprivation(deprivation, lookup)

    assert len(joined) == 1
    record = joined.iloc[0]
    assert record["fine_area_code"] == "A1"
    assert record["deprivation_decile"] == 3
    assert record["coarse_area_code"] == "L1"


def test_load_deprivation_drops_unmatched_rows(lookup_csv, deprivation_csv):
    lookup = load_lookup(lookup_csv, "London")

    joined = load_deprivation(deprivation_csv, lookup)

    assert sorted(joined["fine_area_code"]) == ["E01000001", "E01000002", "E01000003"]
    assert "E01009999" not in set(joined["fine_area_code"])
    assert "E01088888" not in set(joined["fine_area_code"])
    source_codes = pd.read_csv(deprivation_csv)["LSOA code (2011)"]
    assert len(joined) <= lookup["fine_area_code"].isin(source_codes).sum()
    camden = joined.set_index("fine_area_code").loc["E01000003"]
    assert camden["deprivation_rank"] == 14486
    assert camden["deprivation_decile"] == 5
    assert camden["coarse_area_name"] == "Camden"


def test_empty_lookup_gives_empty_join(lookup_csv, deprivation_csv):
    lookup = load_lookup(lookup_csv, "Atlantis")

    joined = load_deprivation(deprivation_csv, lookup)

    assert joined.empty


def test_duplicate_lookup_codes_fan_out():
    lookup = pd.DataFrame(
        [["n1", "A1", "LA1", "L1"], ["n1", "A1", "LA2", "L2"]],
        columns=["fine_area_name", "fine_area_code", "coarse_area_name", "coarse_area_code"],
    )
    deprivation = pd.DataFrame(
        {"fine_area_code": ["A1"], "deprivation_rank": [5], "deprivation_decile": [3]}
    )

    assert len(join_deprivation(deprivation, lookup)) == 2


def test_missing_deprivation_file(tmp_path, lookup_csv):
    lookup = load_lookup(lookup_csv, "London")

    with pytest.raises(DataLoadError):
        load_deprivation(tmp_path / "missing.csv", lookup)


def test_blank_area_codes_are_skipped(tmp_path, lookup_csv):
    path = write_csv(
        tmp_path / "imd_blank.csv",
        DEPRIVATION_HEADERS,
        [["", "No code", "100", "1"], ["E01000003", "Camden 001A", "14486", "5"]],
    )
    lookup = load_lookup(lookup_csv, "London")

    joined = load_deprivation(path, lookup)

    assert joined["fine_area_code"].tolist() == ["E01000003"]
    assert "nan" not in set(joined["fine_area_code"])


def test_fractional_decile_raises_schema_error(tmp_path, lookup_csv):
    path = write_csv(
        tmp_path / "imd_fraction.csv",
        DEPRIVATION_HEADERS,
        [["E01000003", "Camden 001A", "14486", "3.5"]],
    )
    lookup = load_lookup(lookup_csv, "London")

    with pytest.raises(SchemaError, match="deprivation_decile"):
        load_deprivation(path, lookup)
