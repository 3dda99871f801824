"""Tests for county election data parsing and import."""
import json

import pytest
from sqlalchemy import func, select

from app.models.election import County, CountyDemographic, CountyElectionResult
from app.services.election_import import (
    ElectionImporter,
    calculate_swing,
    election_columns,
    group_by_county,
    load_boundaries,
    normalize_fips,
    parse_demographics_csv,
    parse_election_csv,
    validate_election_year,
)

LONG_CSV = """county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes
17031,Cook County,IL,Illinois,2016,1611946,453287,102277,2167510
17031,Cook County,IL,Illinois,2020,1725891,738227,45987,2510105
6037,Los Angeles County,CA,California,2020,3028885,1145530,91100,4265515
"""

WIDE_CSV = """fips,geo,2016_D,2016_R,2016_O,2016_T,2020_D,2020_R,2020_O,2020_T
0500000US17031,"Cook County, Illinois",1611946,453287,102277,2167510,1725891,738227,45987,2510105
"""

GEOJSON = {
    "type": "FeatureCollection",
    "features": [
        {
            "type": "Feature",
            "properties": {"GEOID": "17031"},
            "geometry": {"type": "Polygon", "coordinates": [[[-88.0, 41.0], [-87.0, 41.0], [-87.0, 42.0], [-88.0, 42.0]]]},
        },
        {
            "type": "Feature",
            "properties": {"FIPS": "6037"},
            "geometry": {"type": "MultiPolygon", "coordinates": [[[[-119.0, 34.0], [-117.0, 34.0], [-118.0, 35.0]]]]},
        },
    ],
}

DEMOGRAPHICS_CSV = """county_fips,year,population,median_age,median_household_income,poverty_rate
17031,2020,5275541,37.4,68428,13.1
06037,,10014009,37.0,71358,n/a
"""


class TestParsing:
    @pytest.mark.parametrize("raw,expected", [
        ("0500000US17031", "17031"),
        ("6037", "06037"),
        ("17031", "17031"),
        (" 1001 ", "01001"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize_fips(self, raw, expected):
        assert normalize_fips(raw) == expected

    def test_long_format(self):
        counties = group_by_county(parse_election_csv(LONG_CSV))

        assert set(counties) == {"17031", "06037"}
        cook = counties["17031"]
        assert cook.state_abbr == "IL"
        assert cook.elections["2020"] == {"D": 1725891, "R": 738227, "O": 45987, "T": 2510105}

    def test_wide_and_long_formats_agree(self):
        long = group_by_county(parse_election_csv(LONG_CSV))["17031"]
        wide = group_by_county(parse_election_csv(WIDE_CSV))["17031"]

        assert wide.elections == long.elections
        assert wide.county_name == "Cook County"
        assert wide.state_name == "Illinois"
        assert wide.state_abbr == "IL"

    def test_rows_without_fips_are_skipped(self):
        text = "county_fips,county_name,year,total_votes\n,Nowhere,2020,10\n"
        assert group_by_county(parse_election_csv(text)) == {}

    def test_boundaries_and_centroids(self):
        boundaries = load_boundaries(GEOJSON)

        cook = boundaries["17031"]
        assert cook.centroid_lng == pytest.approx(-87.5)
        assert cook.centroid_lat == pytest.approx(41.5)
        la = boundaries["06037"]
        assert la.centroid_lng == pytest.approx(-118.0)
        assert la.centroid_lat == pytest.approx(34.333333)

    def test_demographics(self):
        rows = parse_demographics_csv(DEMOGRAPHICS_CSV)

        assert rows[0]["population"] == 5275541
        assert rows[0]["median_age"] == pytest.approx(37.4)
        assert rows[1]["county_fips"] == "06037"
        assert rows[1]["data_year"] == 2020
        assert rows[1]["poverty_rate"] is None


class TestAnalysisHelpers:
    def test_swing(self):
        swing = calculate_swing({"D": 40, "R": 60, "T": 100}, {"D": 55, "R": 45, "T": 100})
        assert swing == pytest.approx(30.0)

    def test_swing_without_totals(self):
        assert calculate_swing({"D": 1, "R": 2, "T": 0}, {"D": 1, "R": 2, "T": 3}) == 0.0
        assert calculate_swing(None, {"D": 1, "R": 2, "T": 3}) == 0.0

    def test_valid_years(self):
        assert validate_election_year(2024)
        assert validate_election_year(1892)
        assert not validate_election_year(2022)
        assert not validate_election_year(1904, "MS")
        assert validate_election_year(1904, "IL")
        assert not validate_election_year(1900, "TX")
        assert validate_election_year(1912, "TX")

    def test_election_columns(self):
        assert election_columns(2020)["total"] == "2020_T"


class TestElectionImporter:
    async def test_import_directory(self, db, tmp_path):
        (tmp_path / "county_election_results.csv").write_text(LONG_CSV)
        (tmp_path / "county_boundaries.geojson").write_text(json.dumps(GEOJSON))
        (tmp_path / "county_demographics.csv").write_text(DEMOGRAPHICS_CSV)

        stats = await ElectionImporter(db).import_directory(tmp_path)

        assert stats.counties == 2
        assert stats.errors == 0
        assert stats.years == 2
        assert stats.demographics == 2

        county = (await db.execute(select(County).where(County.fips_code == "17031"))).scalar_one()
        assert county.centroid_lat == pytest.approx(41.5)
        result = (await db.execute(
            select(CountyElectionResult).where(CountyElectionResult.county_fips == "06037")
        )).scalar_one()
        assert result.election_data["2020"]["T"] == 4265515

    async def test_reimport_updates_in_place(self, db, tmp_path):
        (tmp_path / "county_election_results.csv").write_text(LONG_CSV)
        (tmp_path / "county_demographics.csv").write_text(DEMOGRAPHICS_CSV)
        importer = ElectionImporter(db)

        await importer.import_directory(tmp_path)
        await importer.import_directory(tmp_path)

        assert (await db.execute(select(func.count(County.id)))).scalar() == 2
        assert (await db.execute(select(func.count(CountyElectionResult.id)))).scalar() == 2
        assert (await db.execute(select(func.count(CountyDemographic.id)))).scalar() == 2

    async def test_missing_results_file(self, db, tmp_path):
        with pytest.raises(FileNotFoundError):
            await ElectionImporter(db).import_directory(tmp_path)
