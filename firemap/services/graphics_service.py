from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple, Union

from firemap.core.errors import InvalidInputError
from firemap.core.region_config import SchemaConfig
from firemap.db.executor import QueryExecutor
from firemap.schemas.graphics import (
    GroupedCount,
    GroupedCountResponse,
    TotalCountResponse,
    WeeklyCount,
)
from firemap.services.query_builder import (
    FilterComposer,
    FilterOptions,
    FilterRules,
    QueryBuildState,
)

logger = logging.getLogger(__name__)

DateTimeValue = Union[datetime, str]

_DISPLAY_FIELD_PATTERN = re.compile(r"[^{}]+(?=})")
_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Names taken by the response shape of a grouped count
RESERVED_FIELDS = frozenset({"key", "count"})


class InvalidGroupFieldError(InvalidInputError):
    """Group key or display field is not a plain column name."""


def extract_display_fields(template: Optional[str], key: str) -> List[str]:
    """Column names referenced as ``{field}`` in ``template``, minus ``key``.

    >>> extract_display_fields("{satellite} ({biome})", "satellite")
    ['biome']
    """
    if not template:
        return []
    fields: List[str] = []
    for name in _DISPLAY_FIELD_PATTERN.findall(template):
        if name != key and name not in fields:
            fields.append(name)
    return fields


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER_PATTERN.match(name):
        raise InvalidGroupFieldError(f"Invalid group field: {name!r}")
    if name.lower() in RESERVED_FIELDS:
        raise InvalidGroupFieldError(f"Reserved group field: {name!r}")
    return name


class GraphicsService:
    """Fire counts for the dashboard charts."""

    def __init__(self, executor: QueryExecutor, schema: SchemaConfig):
        self.executor = executor
        self.schema = schema
        self.composer = FilterComposer(schema.fires)

    def _window(self, select: str, date_from: DateTimeValue, date_to: DateTimeValue) -> QueryBuildState:
        fires = self.schema.fires
        state = QueryBuildState(
            f"SELECT {select} FROM {fires.qualified_name}"
            f" WHERE ({fires.date_time_field} BETWEEN "
        )
        return state.append(f"{state.bind(date_from)} AND {state.bind(date_to)})")

    def _limit(self, state: QueryBuildState, limit: Optional[int]) -> QueryBuildState:
        if limit is not None:
            state.append(f" LIMIT {state.bind(limit)}")
        return state

    def build_count_grouped(
        self,
        date_from: DateTimeValue,
        date_to: DateTimeValue,
        key: str,
        options: FilterOptions,
        rules: Optional[FilterRules] = None,
        display_fields: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> Tuple[QueryBuildState, List[str]]:
        key = _check_identifier(key)
        extra = [
            _check_identifier(name)
            for name in extract_display_fields(display_fields or options.display_fields, key)
        ]
        columns = ", ".join([key, *extra])

        select = ", ".join([key, "count(*) AS count", *extra])

        state = self._window(select, date_from, date_to)
        state = self.composer.compose(state, options, rules)
        state.append(f" GROUP BY {columns} ORDER BY count DESC, {key} ASC")
        state = self._limit(state, limit if limit is not None else options.limit)
        return state, extra

    def count_grouped(
        self,
        date_from: DateTimeValue,
        date_to: DateTimeValue,
        key: str,
        options: FilterOptions,
        rules: Optional[FilterRules] = None,
        display_fields: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> GroupedCountResponse:
        """Fires counted per ``key`` (plus the template's extra fields)."""
        state, extra = self.build_count_grouped(
            date_from, date_to, key, options, rules, display_fields, limit
        )
        rows = self.executor.execute(state.query, state.params)

        groups = []
        for row in rows:
            values = dict(row)
            groups.append(
                GroupedCount(key=values.pop(key), count=values.pop("count"), **values)
            )
        logger.debug("Grouped count by %s returned %d groups", key, len(groups))
        return GroupedCountResponse(key=key, fields=extra, groups=groups)

    def count_total(
        self,
        date_from: DateTimeValue,
        date_to: DateTimeValue,
        options: FilterOptions,
        rules: Optional[FilterRules] = None,
    ) -> TotalCountResponse:
        state = self._window("count(*) AS count", date_from, date_to)
        state = self.composer.compose(state, options, rules)
        state = self._limit(state, options.limit)
        rows = self.executor.execute(state.query, state.params)
        return TotalCountResponse(count=int(rows[0]["count"]) if rows else 0)

    def count_by_week(
        self,
        date_from: DateTimeValue,
        date_to: DateTimeValue,
        options: FilterOptions,
        rules: Optional[FilterRules] = None,
    ) -> List[WeeklyCount]:
        """Fires per ISO week, labelled by the week's first and last day."""
        column = self.schema.fires.date_time_field
        select = (
            f"TO_CHAR(date_trunc('week', {column})::date, 'YYYY/MM/DD') AS start,"
            f" TO_CHAR((date_trunc('week', {column}) + interval '6 days')::date,"
            f" 'YYYY/MM/DD') AS \"end\", count(*) AS count"
        )
        state = self._window(select, date_from, date_to)
        state = self.composer.compose(state, options, rules)
        state.append(" GROUP BY 1, 2 ORDER BY 1, 2")
        state = self._limit(state, options.limit)
        rows = self.executor.execute(state.query, state.params)
        return [WeeklyCount(**row) for row in rows]
