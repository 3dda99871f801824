"""Election data schemas."""
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class CountyResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    county_fips: str
    county_name: str
    state_abbr: Optional[str] = None
    state_name: Optional[str] = None
    election_data: Dict[str, Dict[str, int]]


class CountySwing(BaseModel):
    county_fips: str
    county_name: str
    state_abbr: Optional[str] = None
    swing: float  # percentage points, positive = toward D


class SwingResponse(BaseModel):
    from_year: int
    to_year: int
    counties: List[CountySwing]
