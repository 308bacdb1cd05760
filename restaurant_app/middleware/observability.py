from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from restaurant_app.core.metrics import metrics
from restaurant_app.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id, times it and feeds the request metrics.

    Metrics are keyed by the matched route template (``/api/orders/{order_id}``)
    so per-order URLs collapse into one series.
    """

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            endpoint = _route_template(request)
            order_id = request.scope.get("path_params", {}).get("order_id")
            metrics.observe(endpoint=endpoint, method=request.method, status_code=status_code, duration_ms=duration_ms)
            logger.log(
                logging.WARNING if status_code >= 500 else logging.INFO,
                "%s %s -> %s",
                request.method,
                endpoint,
                status_code,
                extra={
                    "request_id": request_id,
                    "order_id": str(order_id) if order_id is not None else None,
                    "endpoint": endpoint,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
            clear_request_context()


def _route_template(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path
