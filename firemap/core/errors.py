"""
=============================================================================
FIREMAP - ERROR HANDLING MODULE
=============================================================================
Domain exception base class and global exception handlers.

- Database failures surface as ConnectionAcquisitionError (503) or
  QueryExecutionError (500)
- Caller mistakes raised as InvalidInputError by the facades become 400
- Anything else is logged with its traceback and returned as a generic 500

Usage:
    # In main.py
    from firemap.core.errors import register_exception_handlers
    register_exception_handlers(app)
=============================================================================
"""

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from firemap.core.config import settings

logger = logging.getLogger(__name__)


class FireMapError(Exception):
    """Base class for errors raised by the FireMap core."""


class ConnectionAcquisitionError(FireMapError):
    """No pooled connection could be obtained; no query was attempted."""


class QueryExecutionError(FireMapError):
    """The database rejected or failed the query."""


class InvalidInputError(FireMapError, ValueError):
    """The caller asked for something the facades cannot build a query for."""


def _error_body(request: Request, exc: Exception, detail: str) -> dict:
    body = {"detail": detail}
    if settings.DEBUG:
        body["error_type"] = type(exc).__name__
        body["message"] = str(exc)
        body["path"] = request.url.path
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        body["request_id"] = request_id
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(ConnectionAcquisitionError)
    async def connection_error_handler(request: Request, exc: ConnectionAcquisitionError):
        logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content=_error_body(request, exc, "Database unavailable"),
        )

    @app.exception_handler(QueryExecutionError)
    async def query_error_handler(request: Request, exc: QueryExecutionError):
        logger.error("Query failed on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500,
            content=_error_body(request, exc, "Query failed"),
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        logger.info("Rejected input on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=400,
            content=_error_body(request, exc, str(exc)),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unhandled exceptions.

        Logs the full traceback server-side and returns a generic message,
        with more details in debug mode.
        """
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}:\n"
            f"{traceback.format_exc()}"
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request, exc, "An unexpected error occurred. Please try again later."
            ),
        )
