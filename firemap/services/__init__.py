"""
FireMap Services Module.

Query composition and the facades behind the dashboard API.

Services:
    - FilterComposer: optional fire filters as SQL predicates
    - ExtentResolver: bounding boxes of region sets
    - FilterService: region lookups, searches, extents and satellites
    - GraphicsService: grouped, total and weekly fire counts
"""

from .extent_service import (
    EXTENT_POLICIES,
    Extent,
    ExtentPolicy,
    ExtentResolver,
    UnsupportedRegionKindError,
)
from .filter_service import FilterService
from .graphics_service import GraphicsService, InvalidGroupFieldError
from .query_builder import (
    FilterComposer,
    FilterOptions,
    FilterRules,
    QueryBuildState,
    compose_filters,
)

__all__ = [
    # Composer
    "FilterComposer",
    "FilterOptions",
    "FilterRules",
    "QueryBuildState",
    "compose_filters",
    # Extents
    "EXTENT_POLICIES",
    "Extent",
    "ExtentPolicy",
    "ExtentResolver",
    "UnsupportedRegionKindError",
    # Facades
    "FilterService",
    "GraphicsService",
    "InvalidGroupFieldError",
]
