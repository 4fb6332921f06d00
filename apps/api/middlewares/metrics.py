"""Metrics middleware for API."""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from core.metrics import api_request_duration


def _endpoint_label(request: Request) -> str:
    """Route template (``/matches/{match_id}``) rather than the raw path, to bound label cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect API request metrics."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Process request and collect metrics."""
        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time

        # Record metrics
        api_request_duration.labels(
            method=request.method, endpoint=_endpoint_label(request), status=response.status_code
        ).observe(duration)

        return response
