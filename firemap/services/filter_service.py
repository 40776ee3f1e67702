"""
=============================================================================
FIREMAP - FILTER SERVICE
=============================================================================

Lookup and search queries behind the dashboard filter panel.

Features:
    - Country, biome and state lists for the filter selects
    - Accent/case-insensitive search of protected areas and cities
    - Region extents for zooming the map (delegates to ExtentResolver)
    - Region under a clicked map point, at country or state granularity
    - Satellites present in a time window under the active filters
    - Literal SQL of the filtered fires layer for external tools

Every query goes through a fresh QueryBuildState and a single executor round
trip. Empty id lists and short search strings short-circuit to an empty
answer before any query is built.
=============================================================================
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, List, Optional, Sequence, Union

from firemap.core.region_config import FilterConfig, RegionKind, SchemaConfig
from firemap.db.executor import QueryExecutor
from firemap.schemas.filter import (
    CitySearchItem,
    CountryByState,
    IntersectingRegion,
    RegionItem,
)
from firemap.services.extent_service import Extent, ExtentResolver
from firemap.services.query_builder import (
    FilterComposer,
    FilterOptions,
    FilterValue,
    InPredicate,
    QueryBuildState,
    quote_literal,
    render_predicates,
    split_tokens,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_MIN_LENGTH = 2

DateTimeValue = Union[datetime, str]


def normalize_search_value(value: str) -> str:
    """Upper-case, drop punctuation glued to a space and collapse blanks."""
    value = re.sub(r"[^\w\s] ", "", value.upper())
    return re.sub(r"\s+", " ", value).strip()


def as_id_list(ids: Union[Any, Sequence[Any], None]) -> List[Any]:
    """Accept a single id, a comma-separated string or a sequence of ids."""
    if ids is None:
        return []
    if isinstance(ids, (str, int)):
        return split_tokens(str(ids))
    return split_tokens(ids)


class FilterService:
    """Region lookups, searches and extents for the filter panel."""

    def __init__(
        self,
        executor: QueryExecutor,
        schema: SchemaConfig,
        filter_config: FilterConfig,
        search_min_length: int = DEFAULT_SEARCH_MIN_LENGTH,
    ):
        self.executor = executor
        self.schema = schema
        self.filter_config = filter_config
        self.search_min_length = search_min_length
        self.composer = FilterComposer(schema.fires)
        self.extents = ExtentResolver(executor, schema, filter_config.extents)

    def _run(self, state: QueryBuildState) -> List[dict]:
        return self.executor.execute(state.query, state.params)

    def _searchable(self, value: Optional[str], min_length: Optional[int]) -> Optional[str]:
        if not value:
            return None
        normalized = normalize_search_value(value)
        required = min_length if min_length is not None else self.search_min_length
        if len(normalized) < required:
            logger.debug("Search value shorter than %d characters, skipping", required)
            return None
        return normalized

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _list_names(self, kind: RegionKind) -> List[RegionItem]:
        table = self.schema.table(kind)
        rows = self._run(
            QueryBuildState(
                f"SELECT {table.id_field} AS id, {table.name_field} AS name"
                f" FROM {table.qualified_name} ORDER BY {table.name_field} ASC"
            )
        )
        return [RegionItem(**row) for row in rows]

    def list_countries(self) -> List[RegionItem]:
        return self._list_names(RegionKind.COUNTRIES)

    def list_biomes(self) -> List[RegionItem]:
        return self._list_names(RegionKind.BIOMES)

    def list_states_by_countries(self, countries: FilterValue) -> List[RegionItem]:
        country_ids = as_id_list(countries)
        if not country_ids:
            return []

        states = self.schema.states
        state = render_predicates(
            QueryBuildState(
                f"SELECT {states.id_field} AS id, {states.name_field} AS name"
                f" FROM {states.qualified_name} WHERE TRUE"
            ),
            [InPredicate(states.country_id_field, tuple(country_ids))],
        )
        state.append(
            f" ORDER BY {states.country_id_field} ASC, {states.name_field} ASC"
        )
        return [RegionItem(**row) for row in self._run(state)]

    def list_countries_by_states(self, state_ids: FilterValue) -> List[CountryByState]:
        ids = as_id_list(state_ids)
        if not ids:
            return []

        countries = self.schema.countries
        states = self.schema.states
        state = render_predicates(
            QueryBuildState(
                f"SELECT DISTINCT a.{countries.id_field} AS id,"
                f" a.{countries.name_field} AS name,"
                f" a.{countries.bdq_name_field} AS bdq_name"
                f" FROM {countries.qualified_name} a"
                f" INNER JOIN {states.qualified_name} b"
                f" ON (a.{countries.id_field} = b.{states.country_id_field})"
                f" WHERE TRUE"
            ),
            [InPredicate(f"b.{states.id_field}", tuple(ids))],
        )
        return [CountryByState(**row) for row in self._run(state)]

    # ------------------------------------------------------------------
    # Searches
    # ------------------------------------------------------------------

    def search_regions_by_name(
        self, value: Optional[str], min_length: Optional[int] = None
    ) -> List[RegionItem]:
        """Protected areas whose name contains ``value``."""
        term = self._searchable(value, min_length)
        if term is None:
            return []

        areas = self.schema.protected_areas
        state = QueryBuildState(
            f"SELECT {areas.id_field} AS id, upper({areas.name_field}) AS name"
            f" FROM {areas.qualified_name}"
            f" WHERE unaccent(upper({areas.name_field})) LIKE unaccent(upper("
        )
        state.append(state.bind(f"%{term}%") + "))")
        return [RegionItem(**row) for row in self._run(state)]

    def search_cities(
        self,
        value: Optional[str],
        countries: Optional[FilterValue] = None,
        states: Optional[FilterValue] = None,
        min_length: Optional[int] = None,
    ) -> List[CitySearchItem]:
        """Cities whose name contains ``value``, optionally within countries/states."""
        term = self._searchable(value, min_length)
        if term is None:
            return []

        cities_t = self.schema.cities
        states_t = self.schema.states
        countries_t = self.schema.countries

        state = QueryBuildState(
            f"SELECT a.{cities_t.id_field} AS id, upper(a.{cities_t.name_field}) AS name,"
            f" b.{states_t.bdq_name_field} AS state"
            f" FROM {cities_t.qualified_name} a"
            f" INNER JOIN {states_t.qualified_name} b"
            f" ON (a.{cities_t.state_id_field} = b.{states_t.id_field})"
            f" INNER JOIN {countries_t.qualified_name} c"
            f" ON (b.{states_t.country_id_field} = c.{countries_t.id_field})"
            f" WHERE unaccent(upper(a.{cities_t.name_field})) LIKE unaccent(upper("
        )
        state.append(state.bind(f"%{term}%") + "))")

        predicates = []
        if countries is not None:
            predicates.append(
                InPredicate(f"c.{countries_t.id_field}", tuple(split_tokens(countries)))
            )
        if states is not None:
            predicates.append(
                InPredicate(f"b.{states_t.id_field}", tuple(split_tokens(states)))
            )
        state = render_predicates(state, predicates)

        return [CitySearchItem(**row) for row in self._run(state)]

    # ------------------------------------------------------------------
    # Spatial
    # ------------------------------------------------------------------

    def resolve_extent_for(
        self, kind: RegionKind, ids: Union[Any, Sequence[Any]]
    ) -> Optional[Extent]:
        """Bounding box of one or more regions; ``None`` for no ids."""
        id_list = as_id_list(ids)
        if not id_list:
            return None
        return self.extents.resolve(kind, id_list)

    def resolve_intersecting_region(
        self, longitude: float, latitude: float, resolution: float
    ) -> List[IntersectingRegion]:
        """Regions under a map click; coarse resolutions pick countries."""
        kind = RegionKind.STATES
        if self.filter_config.spatial_filter.countries.contains(resolution):
            kind = RegionKind.COUNTRIES

        table = self.schema.table(kind)
        bdq_name = table.bdq_name_field or "NULL"
        state = QueryBuildState(
            f"SELECT {table.id_field} AS id, {table.name_field} AS name,"
            f" {quote_literal(kind.value)} AS kind, {bdq_name} AS bdq_name"
            f" FROM {table.qualified_name} WHERE ST_Intersects({table.geometry_field}, "
        )
        state.append(
            f"ST_SetSRID(ST_MakePoint({state.bind(longitude)}, {state.bind(latitude)}), 4326))"
        )
        return [IntersectingRegion(**row) for row in self._run(state)]

    # ------------------------------------------------------------------
    # Fires
    # ------------------------------------------------------------------

    def list_distinct_satellites(
        self, date_from: DateTimeValue, date_to: DateTimeValue, options: FilterOptions
    ) -> List[str]:
        fires = self.schema.fires
        state = QueryBuildState(
            f"SELECT DISTINCT {fires.satellite_field} AS satellite"
            f" FROM {fires.qualified_name}"
            f" WHERE ({fires.date_time_field} BETWEEN "
        )
        state.append(f"{state.bind(date_from)} AND {state.bind(date_to)})")
        state = self.composer.compose(state, options)
        state.append(f" ORDER BY {fires.satellite_field} ASC")
        return [row["satellite"] for row in self._run(state)]

    def build_fires_sql(
        self, date_from: DateTimeValue, date_to: DateTimeValue, options: FilterOptions
    ) -> str:
        """Self-contained SQL for the filtered fires layer (no bind params)."""
        fires = self.schema.fires
        prefix = f"{options.table_alias}." if options.table_alias else ""
        alias = f" {options.table_alias}" if options.table_alias else ""
        window = (
            f"({prefix}{fires.date_time_field} BETWEEN"
            f" {quote_literal(str(date_from))} AND {quote_literal(str(date_to))})"
        )
        return (
            f"SELECT {prefix}* FROM {fires.qualified_name}{alias} WHERE {window}"
            + self.composer.render_literal(options)
        )
