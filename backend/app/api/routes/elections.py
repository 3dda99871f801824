"""Election data endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.models.election import CountyElectionResult
from app.schemas.election import CountyResultResponse, CountySwing, SwingResponse
from app.services.election_import import (
    VALID_ELECTION_YEARS,
    calculate_swing,
    normalize_fips,
    validate_election_year,
)

router = APIRouter()


@router.get("/years", response_model=List[int])
async def list_years():
    return list(VALID_ELECTION_YEARS)


@router.get("/counties/{fips}", response_model=CountyResultResponse)
async def get_county_results(fips: str, db: AsyncSession = Depends(get_db)):
    """All presidential results for one county."""
    stmt = select(CountyElectionResult).where(CountyElectionResult.county_fips == normalize_fips(fips))
    result = await db.execute(stmt)
    county = result.scalar_one_or_none()

    if not county:
        raise HTTPException(status_code=404, detail="County not found")

    return county


@router.get("/swing", response_model=SwingResponse)
async def county_swing(
    from_year: int = Query(...),
    to_year: int = Query(...),
    state: Optional[str] = Query(None, min_length=2, max_length=2),
    db: AsyncSession = Depends(get_db),
):
    """Democratic-margin swing per county between two elections."""
    for year in (from_year, to_year):
        if not validate_election_year(year, state.upper() if state else None):
            raise HTTPException(status_code=400, detail=f"No county results for {year}")

    stmt = select(CountyElectionResult).order_by(CountyElectionResult.county_fips)
    if state:
        stmt = stmt.where(CountyElectionResult.state_abbr == state.upper())
    result = await db.execute(stmt)

    counties = []
    for county in result.scalars().all():
        data = county.election_data or {}
        counties.append(CountySwing(
            county_fips=county.county_fips,
            county_name=county.county_name,
            state_abbr=county.state_abbr,
            swing=calculate_swing(data.get(str(from_year)), data.get(str(to_year))),
        ))

    return SwingResponse(from_year=from_year, to_year=to_year, counties=counties)
