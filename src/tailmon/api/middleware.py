import time
from os import urandom

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from tailmon.observability.metrics import HTTP_REQUEST_DURATION, HTTP_REQUESTS_TOTAL

# Partials are fetched on every refresh
_SKIP_LOG_PREFIXES = ("/health", "/metrics", "/dashboard/static", "/dashboard/partials")

_STATIC_PREFIX = "/dashboard/static"


def _path_label(request: Request) -> str:
    """Route template for metric labels; raw paths would make one series per URL."""
    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    if request.url.path.startswith(_STATIC_PREFIX):
        return _STATIC_PREFIX
    return "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = urandom(4).hex()
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        method = request.method
        path = request.url.path
        label = _path_label(request)
        status_code = str(response.status_code)

        HTTP_REQUEST_DURATION.labels(method=method, path=label, status_code=status_code).observe(duration)
        HTTP_REQUESTS_TOTAL.labels(method=method, path=label, status_code=status_code).inc()

        if not any(path.startswith(p) for p in _SKIP_LOG_PREFIXES):
            logger = structlog.get_logger()
            logger.info(
                "http_request",
                method=method,
                path=path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 1),
            )

        response.headers["x-request-id"] = request_id
        return response
