from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from firemap.core.region_config import RegionKind

RegionIdValue = Union[int, str]


class RegionItem(BaseModel):
    """Region reference returned by lookups and searches."""
    id: RegionIdValue
    name: str


class CountryByState(RegionItem):
    bdq_name: Optional[str] = None


class CitySearchItem(RegionItem):
    state: Optional[str] = Field(None, description="BDQ name of the parent state")


class RegionSearchResult(BaseModel):
    """Autocomplete entry: display label plus the selected value."""
    label: str
    value: RegionItem


class IntersectingRegion(RegionItem):
    kind: RegionKind
    bdq_name: Optional[str] = None


class ExtentResponse(BaseModel):
    kind: RegionKind
    ids: List[RegionIdValue]
    extent: Optional[List[float]] = Field(
        None, description="[min_x, min_y, max_x, max_y]; null when no region matched"
    )
    box: Optional[str] = Field(None, description="PostGIS BOX(...) representation")


class SatellitesResponse(BaseModel):
    satellites: List[str]


class FiresQueryResponse(BaseModel):
    """Filtered fires layer as literal SQL, for map servers and exports."""
    sql: str
