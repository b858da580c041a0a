"""ASGI middleware that records Prometheus metrics for every HTTP request."""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from roadmap.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

# Health checks and scrapes are not labelled per path
_SKIP_PATHS = frozenset({"/api/health", "/metrics"})

_HEX = frozenset("0123456789abcdef")


def _is_uuid(segment: str) -> bool:
    compact = segment.replace("-", "").lower()
    return len(compact) == 32 and set(compact) <= _HEX


def _normalise_path(path: str) -> str:
    """Replace UUID segments with ``{id}``.

    /api/v1/milestones/550e8400-e29b-41d4-a716-446655440000  ->  /api/v1/milestones/{id}
    """
    segments = ["{id}" if _is_uuid(s) else s for s in path.rstrip("/").split("/")]
    return "/".join(segments) or "/"


def _endpoint_label(request: Request) -> str:
    """Route template when the router matched one, else the normalised raw path."""
    route = request.scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    if template:
        return _normalise_path(request.scope.get("root_path", "") + template)
    return _normalise_path(request.url.path)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Counts requests per route and status and times them."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        method = request.method
        status = "500"
        http_requests_in_progress.labels(method=method).inc()
        started = time.perf_counter()
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            # The route is only known once routing has run
            endpoint = _endpoint_label(request)
            http_requests_total.labels(method=method, endpoint=endpoint, status=status).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(
                time.perf_counter() - started
            )
            http_requests_in_progress.labels(method=method).dec()
