from functools import lru_cache
from typing import Optional, Tuple

from fastapi import Depends, HTTPException, Query, status

from firemap.core.config import settings
from firemap.core.region_config import (
    FilterConfig,
    SchemaConfig,
    load_filter_config,
    load_schema_config,
)
from firemap.db.executor import QueryExecutor, SqlAlchemyExecutor
from firemap.db.session import get_engine
from firemap.services.filter_service import FilterService
from firemap.services.graphics_service import GraphicsService
from firemap.services.query_builder import FilterOptions, FilterRules


@lru_cache(maxsize=1)
def get_schema_config() -> SchemaConfig:
    """Table bindings, loaded once per process."""
    return load_schema_config(settings.TABLES_CONFIG_PATH)


@lru_cache(maxsize=1)
def get_filter_config() -> FilterConfig:
    """Extent cache and spatial filter window, loaded once per process."""
    return load_filter_config(settings.FILTER_CONFIG_PATH)


@lru_cache(maxsize=1)
def get_executor() -> QueryExecutor:
    return SqlAlchemyExecutor(engine_factory=get_engine)


def get_filter_service(
    executor: QueryExecutor = Depends(get_executor),
    schema: SchemaConfig = Depends(get_schema_config),
    filter_config: FilterConfig = Depends(get_filter_config),
) -> FilterService:
    return FilterService(
        executor, schema, filter_config, search_min_length=settings.SEARCH_MIN_LENGTH
    )


def get_graphics_service(
    executor: QueryExecutor = Depends(get_executor),
    schema: SchemaConfig = Depends(get_schema_config),
) -> GraphicsService:
    return GraphicsService(executor, schema)


def _present(value: Optional[str]) -> Optional[str]:
    if value is None or value.strip() == "":
        return None
    return value


def parse_extent(value: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    """``"minX,minY,maxX,maxY"`` into a 4-tuple of floats."""
    if _present(value) is None:
        return None
    try:
        parts = tuple(float(part) for part in value.split(","))
    except ValueError:
        parts = ()
    if len(parts) != 4:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="extent must be 'minX,minY,maxX,maxY'",
        )
    return parts


def get_filter_options(
    satellites: Optional[str] = Query(None, description="Satellite codes, comma separated"),
    biomes: Optional[str] = Query(None, description="Biome ids, comma separated"),
    countries: Optional[str] = Query(None, description="Country ids, comma separated"),
    states: Optional[str] = Query(None, description="State ids, comma separated"),
    cities: Optional[str] = Query(None, description="City ids, comma separated"),
    extent: Optional[str] = Query(None, description="minX,minY,maxX,maxY"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum number of rows"),
) -> FilterOptions:
    """Dashboard filters from the query string; blank values mean absent."""
    return FilterOptions(
        satellites=_present(satellites),
        biomes=_present(biomes),
        countries=_present(countries),
        states=_present(states),
        cities=_present(cities),
        extent=parse_extent(extent),
        limit=limit,
    )


def get_filter_rules(
    ignore_country_filter: bool = Query(False),
    ignore_state_filter: bool = Query(False),
    ignore_city_filter: bool = Query(False),
) -> FilterRules:
    return FilterRules(
        ignore_country_filter=ignore_country_filter,
        ignore_state_filter=ignore_state_filter,
        ignore_city_filter=ignore_city_filter,
    )
