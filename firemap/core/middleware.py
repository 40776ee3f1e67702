import logging
import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from firemap.core.config import settings

logger = logging.getLogger("firemap.latency")

# Max latency per endpoint prefix, in seconds
SLO_THRESHOLDS = {
    f"{settings.API_V1_PREFIX}/filters/extent": 0.300,
    f"{settings.API_V1_PREFIX}/filters/": 0.500,
    f"{settings.API_V1_PREFIX}/graphics/": 1.500,
    "/health": 0.200,
}


class LatencyMonitorMiddleware(BaseHTTPMiddleware):
    """
    Times every request, exposes the duration as X-Process-Time and logs a
    warning when the matching SLO budget is exceeded.
    """

    def __init__(self, app, thresholds=None):
        super().__init__(app)
        # Longest prefix first so the most specific budget wins
        self.thresholds = sorted(
            (thresholds or SLO_THRESHOLDS).items(), key=lambda item: len(item[0]), reverse=True
        )

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        self._check_slo(request.url.path, process_time)

        return response

    def budget_for(self, path: str):
        for slo_path, limit in self.thresholds:
            if path == slo_path or (slo_path.endswith("/") and path.startswith(slo_path)):
                return limit
        return None

    def _check_slo(self, path: str, duration: float):
        budget = self.budget_for(path)
        if budget is not None and duration > budget:
            logger.warning(
                f"SLO_BREACH | Endpoint: {path} | Duration: {duration:.4f}s | Budget: {budget:.3f}s"
            )


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Adds an X-Request-ID header for tracing.

    A client-provided X-Request-ID is preserved, otherwise a UUID is
    generated. The id is stored on request.state and bound into the
    structlog context for the duration of the request.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            logger.info(
                f"REQUEST | id={request_id} | method={request.method} | path={request.url.path}"
            )
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers["X-Request-ID"] = request_id
        return response
