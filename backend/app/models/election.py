"""County-level election and demographic models (import targets)."""
from typing import Optional

from sqlalchemy import Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class County(Base, UUIDMixin, TimestampMixin):
    """US county keyed by 5-digit FIPS code."""

    __tablename__ = "counties"

    fips_code: Mapped[str] = mapped_column(String(5), unique=True, nullable=False)
    county_name: Mapped[str] = mapped_column(String(255), nullable=False)
    state_name: Mapped[Optional[str]] = mapped_column(String(100))
    state_abbr: Mapped[Optional[str]] = mapped_column(String(2))

    # GeoJSON geometry and a mean-of-vertices centroid
    geometry: Mapped[Optional[dict]] = mapped_column(JSONType)
    centroid_lat: Mapped[Optional[float]] = mapped_column(Float)
    centroid_lng: Mapped[Optional[float]] = mapped_column(Float)


class CountyElectionResult(Base, UUIDMixin, TimestampMixin):
    """All presidential results for one county."""

    __tablename__ = "county_election_results"

    county_fips: Mapped[str] = mapped_column(String(5), unique=True, nullable=False)
    county_name: Mapped[str] = mapped_column(String(255), nullable=False)
    state_abbr: Mapped[Optional[str]] = mapped_column(String(2))
    state_name: Mapped[Optional[str]] = mapped_column(String(100))

    # {"2020": {"D": 1725891, "R": 738227, "O": 45987, "T": 2510105}, ...}
    election_data: Mapped[dict] = mapped_column(JSONType, nullable=False)


class CountyDemographic(Base, UUIDMixin, TimestampMixin):
    """Census-style demographic snapshot for one county and year."""

    __tablename__ = "county_demographics"

    county_fips: Mapped[str] = mapped_column(String(5), nullable=False)
    data_year: Mapped[int] = mapped_column(Integer, nullable=False)

    population: Mapped[Optional[int]] = mapped_column(Integer)
    median_age: Mapped[Optional[float]] = mapped_column(Float)
    median_household_income: Mapped[Optional[int]] = mapped_column(Integer)
    poverty_rate: Mapped[Optional[float]] = mapped_column(Float)
    unemployment_rate: Mapped[Optional[float]] = mapped_column(Float)
    college_degree_rate: Mapped[Optional[float]] = mapped_column(Float)
    white_percentage: Mapped[Optional[float]] = mapped_column(Float)
    black_percentage: Mapped[Optional[float]] = mapped_column(Float)
    hispanic_percentage: Mapped[Optional[float]] = mapped_column(Float)
    asian_percentage: Mapped[Optional[float]] = mapped_column(Float)
    other_race_percentage: Mapped[Optional[float]] = mapped_column(Float)
    population_density: Mapped[Optional[float]] = mapped_column(Float)
    urban_percentage: Mapped[Optional[float]] = mapped_column(Float)
    english_only_percentage: Mapped[Optional[float]] = mapped_column(Float)
    spanish_home_percentage: Mapped[Optional[float]] = mapped_column(Float)
    other_language_percentage: Mapped[Optional[float]] = mapped_column(Float)
    voter_turnout_rate: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        Index("idx_demographics_county_year", "county_fips", "data_year", unique=True),
    )
