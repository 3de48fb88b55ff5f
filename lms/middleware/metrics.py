"""Prometheus instrumentation for every HTTP request.

Requests are labelled by route template (/v1/sessions/{session_id}/complete),
not by raw path: every session, enrollment and certificate id would
otherwise become its own time series.
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lms.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION


def endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path if path else "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes would otherwise count themselves.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        finally:
            endpoint = endpoint_label(request)
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method, endpoint=endpoint, status_code=status_code
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                time.monotonic() - start
            )
