"""
=============================================================================
FIREMAP - FILTER PREDICATE COMPOSER
=============================================================================

Appends the optional dashboard filters to a base query.

Filters are first turned into an intermediate list of predicates (column +
values). A single render step then writes them either with bind placeholders
(``:pN``, values appended to the parameter list) or with escaped SQL
literals, for fragments that are assembled outside the placeholder numbering
of the executed query. Literals composed into a query that will run through
SQLAlchemy ``text()`` also get a backslash before each colon so they are
not read as bind names; the standalone literal fragment keeps them raw.

Dimension order is fixed: satellites, biomes, countries, states, cities,
extent. The composer never validates values; a bad id surfaces when the
database executes the query.
=============================================================================
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable, List, Optional, Sequence, Tuple, Union

from firemap.core.region_config import FiresTable
from firemap.db.executor import bind_name

DEFAULT_SRID = 4326

FilterValue = Union[str, Sequence[Any]]


@dataclass(frozen=True)
class FilterOptions:
    """Optional filter dimensions plus the flags that shape their SQL."""
    satellites: Optional[FilterValue] = None
    biomes: Optional[FilterValue] = None
    countries: Optional[FilterValue] = None
    states: Optional[FilterValue] = None
    cities: Optional[FilterValue] = None
    extent: Optional[Tuple[Any, Any, Any, Any]] = None
    table_alias: Optional[str] = None
    pg_format_query: bool = False
    limit: Optional[int] = None
    display_fields: Optional[str] = None


@dataclass(frozen=True)
class FilterRules:
    """Dimensions the caller already constrains upstream."""
    ignore_country_filter: bool = False
    ignore_state_filter: bool = False
    ignore_city_filter: bool = False


@dataclass
class QueryBuildState:
    """Query text, its ordered parameters and the next placeholder index."""
    query: str
    params: List[Any] = field(default_factory=list)
    next_param: Optional[int] = None

    def __post_init__(self):
        if self.next_param is None:
            self.next_param = len(self.params) + 1

    def bind(self, value: Any) -> str:
        placeholder = ":" + bind_name(self.next_param)
        self.params.append(value)
        self.next_param += 1
        return placeholder

    def append(self, sql: str) -> "QueryBuildState":
        self.query += sql
        return self

    def copy(self) -> "QueryBuildState":
        return replace(self, params=list(self.params))


# =============================================================================
# LITERAL ESCAPING
# =============================================================================

def quote_literal(value: Any) -> str:
    """Return ``value`` as a PostgreSQL literal.

    Numbers are written bare, ``None`` becomes NULL and everything else is a
    string literal with single quotes doubled. Strings holding a backslash
    use the ``E''`` form with the backslash doubled, which is safe whatever
    ``standard_conforming_strings`` is set to.
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float, Decimal)):
        return str(value)

    escaped = str(value).replace("'", "''")
    if "\\" in escaped:
        return "E'" + escaped.replace("\\", "\\\\") + "'"
    return "'" + escaped + "'"


def escape_text_colons(sql: str) -> str:
    """Escape ``:`` so SQLAlchemy ``text()`` keeps it as a literal character."""
    return sql.replace(":", "\\:")


def _text_literal(value: Any) -> str:
    return escape_text_colons(quote_literal(value))


def split_tokens(value: FilterValue) -> List[Any]:
    """Split a comma-separated string (or a sequence) into filter tokens."""
    if isinstance(value, str):
        return [token.strip() for token in value.split(",") if token.strip()]
    return [token for token in value if token is not None]


def qualify(column: str, table_alias: Optional[str]) -> str:
    return f"{table_alias}.{column}" if table_alias else column


# =============================================================================
# PREDICATES
# =============================================================================

Renderer = Callable[[Any], str]


@dataclass(frozen=True)
class InPredicate:
    """``column IN (values)``; an empty value list matches nothing."""
    column: str
    values: Tuple[Any, ...]

    def render(self, render_value: Renderer) -> str:
        if not self.values:
            return f"({self.column} IN (NULL))"
        rendered = ", ".join(render_value(value) for value in self.values)
        return f"({self.column} IN ({rendered}))"


@dataclass(frozen=True)
class EnvelopePredicate:
    """Geometry column intersects the box ``min_x, min_y, max_x, max_y``."""
    column: str
    bounds: Tuple[Any, Any, Any, Any]
    srid: int = DEFAULT_SRID

    def render(self, render_value: Renderer) -> str:
        corners = ", ".join(render_value(value) for value in self.bounds)
        return f"ST_Intersects({self.column}, ST_MakeEnvelope({corners}, {self.srid}))"


Predicate = Union[InPredicate, EnvelopePredicate]


def render_predicates(
    state: QueryBuildState,
    predicates: Sequence[Predicate],
    literal: bool = False,
    for_text: bool = False,
) -> QueryBuildState:
    """Append ``AND <predicate>`` for each predicate to a copy of ``state``.

    ``for_text`` only matters in literal mode: values are escaped for a query
    executed through ``text()``.
    """
    result = state.copy()
    if not literal:
        render_value: Renderer = result.bind
    elif for_text:
        render_value = _text_literal
    else:
        render_value = quote_literal
    for predicate in predicates:
        result.append(" AND " + predicate.render(render_value))
    return result


# =============================================================================
# COMPOSER
# =============================================================================

class FilterComposer:
    """Builds the optional fire filters against the configured fires table."""

    def __init__(self, fires: FiresTable):
        self.fires = fires

    def predicates(
        self, options: FilterOptions, rules: Optional[FilterRules] = None
    ) -> List[Predicate]:
        rules = rules or FilterRules()
        alias = options.table_alias
        fires = self.fires

        dimensions = (
            (options.satellites, fires.satellite_field, False),
            (options.biomes, fires.biome_id_field, False),
            (options.countries, fires.country_field, rules.ignore_country_filter),
            (options.states, fires.state_field, rules.ignore_state_filter),
            (options.cities, fires.city_field, rules.ignore_city_filter),
        )

        predicates: List[Predicate] = []
        for value, column, ignored in dimensions:
            if value is None or ignored:
                continue
            predicates.append(
                InPredicate(qualify(column, alias), tuple(split_tokens(value)))
            )

        if options.extent is not None:
            min_x, min_y, max_x, max_y = options.extent
            predicates.append(
                EnvelopePredicate(
                    qualify(fires.geometry_field, alias), (min_x, min_y, max_x, max_y)
                )
            )

        return predicates

    def compose(
        self,
        state: QueryBuildState,
        options: FilterOptions,
        rules: Optional[FilterRules] = None,
    ) -> QueryBuildState:
        """Return a new state with the filters of ``options`` appended."""
        return render_predicates(
            state,
            self.predicates(options, rules),
            literal=options.pg_format_query,
            for_text=True,
        )

    def render_literal(
        self, options: FilterOptions, rules: Optional[FilterRules] = None
    ) -> str:
        """The filters alone as literal SQL, ready to splice into any query."""
        return render_predicates(
            QueryBuildState(""), self.predicates(options, rules), literal=True
        ).query


def compose_filters(
    query: str,
    params: Sequence[Any],
    next_param: int,
    options: FilterOptions,
    rules: Optional[FilterRules],
    fires: FiresTable,
) -> Tuple[str, List[Any], int]:
    """Tuple-in, tuple-out form of :meth:`FilterComposer.compose`."""
    state = FilterComposer(fires).compose(
        QueryBuildState(query, list(params), next_param), options, rules
    )
    return state.query, state.params, state.next_param
