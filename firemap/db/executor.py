"""
Execution collaborator: runs one finished query and returns its rows.

Queries use named positional binds (``:p1``, ``:p2``, ...) so that a plain
ordered parameter list maps onto SQLAlchemy's ``text()`` constructs.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from firemap.core.errors import ConnectionAcquisitionError, QueryExecutionError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


def bind_name(index: int) -> str:
    return f"p{index}"


def positional_bindings(params: Sequence[Any]) -> Dict[str, Any]:
    """Map an ordered parameter list onto ``p1..pN`` bind names."""
    return {bind_name(index): value for index, value in enumerate(params, start=1)}


class QueryExecutor(Protocol):
    def execute(self, query: str, params: Sequence[Any] = ()) -> List[Row]:
        ...


class SqlAlchemyExecutor:
    """Executes each query on its own pooled connection.

    The connection is returned to the pool before any error propagates.
    """

    def __init__(
        self,
        engine: Optional[Engine] = None,
        engine_factory: Optional[Callable[[], Engine]] = None,
    ):
        if engine is None and engine_factory is None:
            raise ValueError("engine or engine_factory is required")
        self._engine = engine
        self._engine_factory = engine_factory

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = self._engine_factory()
        return self._engine

    def execute(self, query: str, params: Sequence[Any] = ()) -> List[Row]:
        try:
            connection = self.engine.connect()
        except SQLAlchemyError as exc:
            logger.error("Could not acquire a database connection: %s", exc)
            raise ConnectionAcquisitionError(str(exc)) from exc

        with connection:
            try:
                result = connection.execute(text(query), positional_bindings(params))
                rows = [dict(row) for row in result.mappings().all()]
            except SQLAlchemyError as exc:
                logger.warning("Query failed (%d params): %s", len(params), exc)
                raise QueryExecutionError(str(exc)) from exc

        logger.debug("Query returned %d rows", len(rows))
        return rows
