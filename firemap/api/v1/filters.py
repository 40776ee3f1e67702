"""
=============================================================================
FIREMAP API - FILTER PANEL ENDPOINTS
=============================================================================

Lookups behind the dashboard filter selects and the map.

Endpoints:
    GET /filters/countries - All countries, by name
    GET /filters/biomes - All biomes, by name
    GET /filters/states - States of the given countries
    GET /filters/countries-by-states - Countries owning the given states
    GET /filters/protected-areas/search - Protected areas by partial name
    GET /filters/cities/search - Cities by partial name
    GET /filters/extent - Bounding box of a set of regions
    GET /filters/intersection - Region under a map point
    GET /filters/satellites - Satellites with fires under the active filters
    GET /filters/fires-query - Literal SQL of the filtered fires layer

Id lists are comma separated; blank values are treated as absent.
=============================================================================
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from firemap.api import deps
from firemap.core.region_config import RegionKind
from firemap.schemas.filter import (
    CitySearchItem,
    CountryByState,
    ExtentResponse,
    FiresQueryResponse,
    IntersectingRegion,
    RegionItem,
    RegionSearchResult,
    SatellitesResponse,
)
from firemap.services.filter_service import FilterService, as_id_list
from firemap.services.query_builder import FilterOptions

router = APIRouter()


def _optional_ids(value: Optional[str]) -> Optional[List[str]]:
    if value is None or value.strip() == "":
        return None
    return as_id_list(value)


@router.get(
    "/countries",
    response_model=List[RegionItem],
    summary="List countries",
)
def list_countries(
    service: FilterService = Depends(deps.get_filter_service),
) -> List[RegionItem]:
    return service.list_countries()


@router.get(
    "/biomes",
    response_model=List[RegionItem],
    summary="List biomes",
)
def list_biomes(
    service: FilterService = Depends(deps.get_filter_service),
) -> List[RegionItem]:
    return service.list_biomes()


@router.get(
    "/states",
    response_model=List[RegionItem],
    summary="List states of the given countries",
    description="Ordered by country id, then state name. No countries yields an empty list.",
)
def list_states(
    countries: str = Query("", description="Country ids, comma separated"),
    service: FilterService = Depends(deps.get_filter_service),
) -> List[RegionItem]:
    return service.list_states_by_countries(countries)


@router.get(
    "/countries-by-states",
    response_model=List[CountryByState],
    summary="Countries owning the given states",
)
def list_countries_by_states(
    states: str = Query("", description="State ids, comma separated"),
    service: FilterService = Depends(deps.get_filter_service),
) -> List[CountryByState]:
    return service.list_countries_by_states(states)


@router.get(
    "/protected-areas/search",
    response_model=List[RegionSearchResult],
    summary="Search protected areas by name",
    description="Accent and case insensitive. Values shorter than min_length return no results.",
)
def search_protected_areas(
    value: str = Query("", max_length=200, description="Partial name"),
    min_length: Optional[int] = Query(None, ge=0, description="Minimum search length"),
    service: FilterService = Depends(deps.get_filter_service),
) -> List[RegionSearchResult]:
    items = service.search_regions_by_name(value, min_length=min_length)
    return [RegionSearchResult(label=item.name, value=item) for item in items]


@router.get(
    "/cities/search",
    response_model=List[RegionSearchResult],
    summary="Search cities by name",
    description="Optionally restricted to the given countries and states.",
)
def search_cities(
    value: str = Query("", max_length=200, description="Partial name"),
    countries: Optional[str] = Query(None, description="Country ids, comma separated"),
    states: Optional[str] = Query(None, description="State ids, comma separated"),
    min_length: Optional[int] = Query(None, ge=0, description="Minimum search length"),
    service: FilterService = Depends(deps.get_filter_service),
) -> List[RegionSearchResult]:
    items: List[CitySearchItem] = service.search_cities(
        value,
        countries=_optional_ids(countries),
        states=_optional_ids(states),
        min_length=min_length,
    )
    return [
        RegionSearchResult(
            label=f"{item.name} - {item.state}" if item.state else item.name,
            value=item,
        )
        for item in items
    ]


@router.get(
    "/extent",
    response_model=ExtentResponse,
    summary="Bounding box of a set of regions",
    description="Cached extents are served without touching the database when possible.",
)
def get_extent(
    kind: RegionKind = Query(..., description="Region kind"),
    ids: str = Query("", description="Region ids, comma separated"),
    service: FilterService = Depends(deps.get_filter_service),
) -> ExtentResponse:
    id_list = as_id_list(ids)
    extent = service.resolve_extent_for(kind, id_list)
    return ExtentResponse(
        kind=kind,
        ids=id_list,
        extent=extent.as_list() if extent else None,
        box=extent.as_box() if extent else None,
    )


@router.get(
    "/intersection",
    response_model=List[IntersectingRegion],
    summary="Region under a map point",
    description="Countries at coarse map resolutions, states otherwise.",
)
def get_intersecting_region(
    longitude: float = Query(..., ge=-180, le=180),
    latitude: float = Query(..., ge=-90, le=90),
    resolution: float = Query(..., gt=0, description="Current map resolution"),
    service: FilterService = Depends(deps.get_filter_service),
) -> List[IntersectingRegion]:
    return service.resolve_intersecting_region(longitude, latitude, resolution)


@router.get(
    "/satellites",
    response_model=SatellitesResponse,
    summary="Satellites with fires in a time window",
)
def list_satellites(
    date_from: datetime = Query(..., description="Window start"),
    date_to: datetime = Query(..., description="Window end"),
    options: FilterOptions = Depends(deps.get_filter_options),
    service: FilterService = Depends(deps.get_filter_service),
) -> SatellitesResponse:
    return SatellitesResponse(
        satellites=service.list_distinct_satellites(date_from, date_to, options)
    )


@router.get(
    "/fires-query",
    response_model=FiresQueryResponse,
    summary="Literal SQL of the filtered fires layer",
    description=(
        "Self-contained SQL (no bind parameters) selecting the fires in the window "
        "under the active filters, for map servers and exports."
    ),
)
def get_fires_query(
    date_from: datetime = Query(..., description="Window start"),
    date_to: datetime = Query(..., description="Window end"),
    table_alias: Optional[str] = Query(
        None, pattern=r"^[A-Za-z_][A-Za-z0-9_]*$", description="Qualifier for the fires columns"
    ),
    options: FilterOptions = Depends(deps.get_filter_options),
    service: FilterService = Depends(deps.get_filter_service),
) -> FiresQueryResponse:
    options = replace(options, table_alias=table_alias or None)
    return FiresQueryResponse(sql=service.build_fires_sql(date_from, date_to, options))
