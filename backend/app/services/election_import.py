"""Election data import - county results (CSV), boundaries (GeoJSON), demographics (CSV).

Expected layout of the data directory::

    county_election_results.csv   (required; long or wide format)
    county_boundaries.geojson     (optional)
    county_demographics.csv       (optional)

Long format has one row per county and year::

    county_fips,county_name,state_abbr,state_name,year,democratic_votes,republican_votes,other_votes,total_votes

Wide format has one row per county and ``<year>_<D|R|O|T>`` columns.
"""
import csv
import io
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.election import County, CountyDemographic, CountyElectionResult

logger = structlog.get_logger()


STATE_ABBREVIATIONS: Dict[str, str] = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR", "California": "CA",
    "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE", "Florida": "FL", "Georgia": "GA",
    "Hawaii": "HI", "Idaho": "ID", "Illinois": "IL", "Indiana": "IN", "Iowa": "IA",
    "Kansas": "KS", "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS", "Missouri": "MO",
    "Montana": "MT", "Nebraska": "NE", "Nevada": "NV", "New Hampshire": "NH", "New Jersey": "NJ",
    "New Mexico": "NM", "New York": "NY", "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH",
    "Oklahoma": "OK", "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT", "Vermont": "VT",
    "Virginia": "VA", "Washington": "WA", "West Virginia": "WV", "Wisconsin": "WI", "Wyoming": "WY",
    "District of Columbia": "DC",
}

# Presidential elections covered by the county dataset
VALID_ELECTION_YEARS: Tuple[int, ...] = tuple(range(1892, 2025, 4))
MODERN_ELECTION_YEARS: Tuple[int, ...] = tuple(y for y in VALID_ELECTION_YEARS if y >= 1960)

PARTIES = ("D", "R", "O", "T")

FIPS_COLUMNS = ("fips", "county_fips", "FIPS", "fips_code")
YEAR_COLUMNS = ("year", "Year", "YEAR")
STATE_ABBR_COLUMNS = ("state_abbr", "State", "STATE")
LONG_VOTE_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "D": ("democratic_votes", "dem_votes", "D"),
    "R": ("republican_votes", "rep_votes", "R"),
    "O": ("other_votes", "other", "O"),
    "T": ("total_votes", "total", "T"),
}

DEMOGRAPHIC_INT_FIELDS = ("population", "median_household_income")
DEMOGRAPHIC_FLOAT_FIELDS = (
    "median_age", "poverty_rate", "unemployment_rate", "college_degree_rate",
    "white_percentage", "black_percentage", "hispanic_percentage", "asian_percentage",
    "other_race_percentage", "population_density", "urban_percentage",
    "english_only_percentage", "spanish_home_percentage", "other_language_percentage",
    "voter_turnout_rate",
)
DEFAULT_DEMOGRAPHIC_YEAR = 2020

_WIDE_COLUMN_RE = re.compile(r"^(\d{4})_([DROT])$")
_LEADING_INT_RE = re.compile(r"^\s*(-?\d+)")
_LEADING_FLOAT_RE = re.compile(r"^\s*(-?\d+(?:\.\d*)?|-?\.\d+)")


# ============== Field helpers ==============

def normalize_fips(raw: Optional[str]) -> str:
    """
    Normalize a county FIPS code to five digits.

    Census GEO_IDs keep only the part after ``US`` ("0500000US17031" -> "17031");
    short numeric codes are left-padded ("6037" -> "06037"). Empty stays empty.
    """
    fips = (raw or "").strip()
    if "US" in fips:
        fips = fips.split("US", 1)[1]
    if not fips:
        return ""
    return fips.zfill(5)


def state_abbr(state_name: str) -> str:
    return STATE_ABBREVIATIONS.get(state_name.strip(), "")


def _first(record: Mapping[str, Any], keys: Iterable[str], default: str = "") -> str:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return str(value)
    return default


def _to_int(value: Any) -> int:
    """Leading integer of a value, 0 when there is none."""
    match = _LEADING_INT_RE.match(str(value or ""))
    return int(match.group(1)) if match else 0


def _to_optional_int(value: Any) -> Optional[int]:
    match = _LEADING_INT_RE.match(str(value or ""))
    return int(match.group(1)) if match else None


def _to_optional_float(value: Any) -> Optional[float]:
    match = _LEADING_FLOAT_RE.match(str(value or ""))
    return float(match.group(1)) if match else None


def _county_and_state(record: Mapping[str, Any]) -> Tuple[str, str]:
    """Split a "County, State" geo label, falling back to explicit columns."""
    geo = (record.get("geo") or "").strip()
    if "," in geo:
        county, state = geo.split(",", 1)
        return county.strip(), state.strip()
    county = _first(record, ("county_name", "County", "NAME"), geo)
    state = _first(record, ("state_name", "StateName"))
    return county, state


# ============== Election results ==============

@dataclass
class ElectionRow:
    """One county's result for one year."""
    county_fips: str
    county_name: str
    state_abbr: str
    state_name: str
    year: str
    votes: Dict[str, int] = field(default_factory=lambda: {p: 0 for p in PARTIES})


@dataclass
class CountyRecord:
    fips: str
    county_name: str
    state_abbr: str
    state_name: str
    elections: Dict[str, Dict[str, int]] = field(default_factory=dict)


def is_wide_format(fieldnames: Iterable[str]) -> bool:
    return any(_WIDE_COLUMN_RE.match(name or "") for name in fieldnames)


def parse_election_csv(text: str) -> List[ElectionRow]:
    """Parse election results in either long or wide format."""
    reader = csv.DictReader(io.StringIO(text))
    fieldnames = reader.fieldnames or []
    wide = is_wide_format(fieldnames)

    rows: List[ElectionRow] = []
    for record in reader:
        fips = normalize_fips(_first(record, FIPS_COLUMNS))
        county_name, state_name = _county_and_state(record)
        abbr = state_abbr(state_name) or _first(record, STATE_ABBR_COLUMNS)

        if not wide:
            rows.append(ElectionRow(
                county_fips=fips,
                county_name=county_name,
                state_abbr=abbr,
                state_name=state_name,
                year=_first(record, YEAR_COLUMNS),
                votes={p: _to_int(_first(record, LONG_VOTE_COLUMNS[p])) for p in PARTIES},
            ))
            continue

        by_year: Dict[str, ElectionRow] = {}
        for column in fieldnames:
            match = _WIDE_COLUMN_RE.match(column or "")
            if not match:
                continue
            year, party = match.groups()
            row = by_year.get(year)
            if row is None:
                row = by_year[year] = ElectionRow(fips, county_name, abbr, state_name, year)
            row.votes[party] = _to_int(record.get(column))
        rows.extend(by_year.values())

    return rows


def group_by_county(rows: Iterable[ElectionRow]) -> Dict[str, CountyRecord]:
    """Collect per-year rows into one record per county (rows without FIPS are skipped)."""
    counties: Dict[str, CountyRecord] = {}
    for row in rows:
        if not row.county_fips:
            continue
        fips = normalize_fips(row.county_fips)
        county = counties.get(fips)
        if county is None:
            county = counties[fips] = CountyRecord(
                fips=fips,
                county_name=row.county_name,
                state_abbr=row.state_abbr,
                state_name=row.state_name,
            )
        county.elections[str(row.year)] = dict(row.votes)
    return counties


# ============== Boundaries ==============

@dataclass
class Boundary:
    geometry: Dict[str, Any]
    centroid_lat: Optional[float]
    centroid_lng: Optional[float]


def _collect_points(coords: Any, out: List[Tuple[float, float]]) -> None:
    for coord in coords:
        if coord and isinstance(coord[0], (list, tuple)):
            _collect_points(coord, out)
        else:
            out.append((coord[0], coord[1]))


def load_boundaries(geojson: Mapping[str, Any]) -> Dict[str, Boundary]:
    """
    Map FIPS to geometry plus a centroid.

    The centroid is the plain mean of every vertex in the feature's first
    coordinate ring group, not an area-weighted centroid.
    """
    boundaries: Dict[str, Boundary] = {}
    for feature in geojson.get("features", []):
        properties = feature.get("properties") or {}
        fips = normalize_fips(_first(properties, ("GEOID", "FIPS", "fips_code")))
        geometry = feature.get("geometry")
        if not fips or not geometry:
            continue

        points: List[Tuple[float, float]] = []
        coordinates = geometry.get("coordinates") or []
        if coordinates:
            _collect_points(coordinates[0], points)

        if points:
            lng = sum(p[0] for p in points) / len(points)
            lat = sum(p[1] for p in points) / len(points)
            boundaries[fips] = Boundary(geometry, lat, lng)
        else:
            boundaries[fips] = Boundary(geometry, None, None)
    return boundaries


# ============== Demographics ==============

def parse_demographics_csv(text: str) -> List[Dict[str, Any]]:
    """Parse demographic rows into CountyDemographic column dicts."""
    rows: List[Dict[str, Any]] = []
    for record in csv.DictReader(io.StringIO(text)):
        fips = normalize_fips(_first(record, FIPS_COLUMNS))
        if not fips:
            continue
        row: Dict[str, Any] = {
            "county_fips": fips,
            "data_year": _to_optional_int(_first(record, ("year", "Year"))) or DEFAULT_DEMOGRAPHIC_YEAR,
        }
        for name in DEMOGRAPHIC_INT_FIELDS:
            row[name] = _to_optional_int(record.get(name))
        for name in DEMOGRAPHIC_FLOAT_FIELDS:
            row[name] = _to_optional_float(record.get(name))
        rows.append(row)
    return rows


# ============== Analysis helpers ==============

def validate_election_year(year: int, state: Optional[str] = None) -> bool:
    """True when county results exist for ``year`` (and ``state``, if given)."""
    if state == "MS" and year in (1904, 1908):
        return False
    if state == "TX" and 1892 <= year <= 1908:
        return False
    return year in VALID_ELECTION_YEARS


def election_columns(year: int) -> Dict[str, str]:
    """Wide-format column names for one year."""
    return {
        "democratic": f"{year}_D",
        "republican": f"{year}_R",
        "other": f"{year}_O",
        "total": f"{year}_T",
    }


def calculate_swing(from_data: Optional[Mapping[str, int]], to_data: Optional[Mapping[str, int]]) -> float:
    """Change in Democratic margin, in percentage points (positive = toward D)."""
    if not from_data or not to_data or not from_data.get("T") or not to_data.get("T"):
        return 0.0
    from_margin = (from_data.get("D", 0) - from_data.get("R", 0)) / from_data["T"]
    to_margin = (to_data.get("D", 0) - to_data.get("R", 0)) / to_data["T"]
    return (to_margin - from_margin) * 100


# ============== Importer ==============

@dataclass
class ImportStats:
    counties: int = 0
    errors: int = 0
    demographics: int = 0
    demographic_errors: int = 0
    years: int = 0


class ElectionImporter:
    """Upserts election, boundary and demographic data, one county per commit."""

    ELECTION_CSV = "county_election_results.csv"
    BOUNDARIES_JSON = "county_boundaries.geojson"
    DEMOGRAPHICS_CSV = "county_demographics.csv"

    def __init__(self, db: AsyncSession):
        self.db = db

    async def import_directory(self, data_dir: Path) -> ImportStats:
        data_dir = Path(data_dir)
        election_csv = data_dir / self.ELECTION_CSV
        if not election_csv.exists():
            raise FileNotFoundError(f"Election data file not found: {election_csv}")

        logger.info("Loading election data", path=str(election_csv))
        counties = group_by_county(parse_election_csv(election_csv.read_text(encoding="utf-8")))

        boundaries: Dict[str, Boundary] = {}
        boundaries_json = data_dir / self.BOUNDARIES_JSON
        if boundaries_json.exists():
            logger.info("Loading county boundaries", path=str(boundaries_json))
            boundaries = load_boundaries(json.loads(boundaries_json.read_text(encoding="utf-8")))

        stats = ImportStats()
        stats.counties, stats.errors = await self.import_counties(counties, boundaries)
        stats.years = len({year for county in counties.values() for year in county.elections})

        demographics_csv = data_dir / self.DEMOGRAPHICS_CSV
        if demographics_csv.exists():
            logger.info("Loading demographic data", path=str(demographics_csv))
            rows = parse_demographics_csv(demographics_csv.read_text(encoding="utf-8"))
            stats.demographics, stats.demographic_errors = await self.import_demographics(rows)

        logger.info(
            "Election import complete",
            counties=stats.counties,
            errors=stats.errors,
            demographics=stats.demographics,
            years=stats.years,
        )
        return stats

    async def import_counties(
        self,
        counties: Mapping[str, CountyRecord],
        boundaries: Optional[Mapping[str, Boundary]] = None,
    ) -> Tuple[int, int]:
        boundaries = boundaries or {}
        imported = 0
        errors = 0

        for fips, record in counties.items():
            try:
                await self._upsert_county(record, boundaries.get(fips))
                await self._upsert_result(record)
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                errors += 1
                logger.error("Error importing county", fips=fips, error=str(e))
                continue

            imported += 1
            if imported % 100 == 0:
                logger.info("Import progress", counties=imported)

        return imported, errors

    async def _upsert_county(self, record: CountyRecord, boundary: Optional[Boundary]) -> None:
        result = await self.db.execute(select(County).where(County.fips_code == record.fips))
        county = result.scalar_one_or_none()
        if county is None:
            county = County(
                fips_code=record.fips,
                county_name=record.county_name,
                state_name=record.state_name,
                state_abbr=record.state_abbr,
            )
            self.db.add(county)

        if boundary is not None:
            county.geometry = boundary.geometry
            county.centroid_lat = boundary.centroid_lat
            county.centroid_lng = boundary.centroid_lng

    async def _upsert_result(self, record: CountyRecord) -> None:
        result = await self.db.execute(
            select(CountyElectionResult).where(CountyElectionResult.county_fips == record.fips)
        )
        election = result.scalar_one_or_none()
        if election is None:
            self.db.add(CountyElectionResult(
                county_fips=record.fips,
                county_name=record.county_name,
                state_abbr=record.state_abbr,
                state_name=record.state_name,
                election_data=record.elections,
            ))
        else:
            election.election_data = record.elections

    async def import_demographics(self, rows: Iterable[Dict[str, Any]]) -> Tuple[int, int]:
        """Insert demographic rows; existing (county, year) rows are left untouched."""
        count = 0
        errors = 0
        for row in rows:
            try:
                result = await self.db.execute(
                    select(CountyDemographic.id)
                    .where(CountyDemographic.county_fips == row["county_fips"])
                    .where(CountyDemographic.data_year == row["data_year"])
                )
                if result.scalar_one_or_none() is None:
                    self.db.add(CountyDemographic(**row))
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                errors += 1
                logger.error("Error importing demographics", fips=row["county_fips"], error=str(e))
                continue
            count += 1

        logger.info("Imported demographic records", count=count)
        return count, errors
