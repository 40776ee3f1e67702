"""
=============================================================================
FIREMAP API - CHART ENDPOINTS
=============================================================================

Fire counts for the dashboard charts, under the same filters as the map.

Endpoints:
    GET /graphics/fires-count - Fires grouped by a column
    GET /graphics/fires-total-count - Total fires in the window
    GET /graphics/fires-count-by-week - Fires per week
=============================================================================
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from firemap.api import deps
from firemap.schemas.graphics import GroupedCountResponse, TotalCountResponse, WeeklyCount
from firemap.services.graphics_service import GraphicsService
from firemap.services.query_builder import FilterOptions, FilterRules

router = APIRouter()


@router.get(
    "/fires-count",
    response_model=GroupedCountResponse,
    summary="Fires grouped by a column",
    description=(
        "Counts fires per `key`, largest groups first. `y` is a display template "
        "such as `{satellite} ({biome})`; the fields it references are returned "
        "alongside each group."
    ),
)
def fires_count(
    date_from: datetime = Query(..., description="Window start"),
    date_to: datetime = Query(..., description="Window end"),
    key: str = Query(..., description="Column to group by"),
    y: Optional[str] = Query(None, description="Display template, e.g. {satellite}"),
    options: FilterOptions = Depends(deps.get_filter_options),
    rules: FilterRules = Depends(deps.get_filter_rules),
    service: GraphicsService = Depends(deps.get_graphics_service),
) -> GroupedCountResponse:
    return service.count_grouped(date_from, date_to, key, options, rules, display_fields=y)


@router.get(
    "/fires-total-count",
    response_model=TotalCountResponse,
    summary="Total fires in the window",
)
def fires_total_count(
    date_from: datetime = Query(..., description="Window start"),
    date_to: datetime = Query(..., description="Window end"),
    options: FilterOptions = Depends(deps.get_filter_options),
    rules: FilterRules = Depends(deps.get_filter_rules),
    service: GraphicsService = Depends(deps.get_graphics_service),
) -> TotalCountResponse:
    return service.count_total(date_from, date_to, options, rules)


@router.get(
    "/fires-count-by-week",
    response_model=List[WeeklyCount],
    summary="Fires per week",
)
def fires_count_by_week(
    date_from: datetime = Query(..., description="Window start"),
    date_to: datetime = Query(..., description="Window end"),
    options: FilterOptions = Depends(deps.get_filter_options),
    rules: FilterRules = Depends(deps.get_filter_rules),
    service: GraphicsService = Depends(deps.get_graphics_service),
) -> List[WeeklyCount]:
    return service.count_by_week(date_from, date_to, options, rules)
