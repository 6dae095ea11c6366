"""
Smart Scribbler Backend — Access Log Middleware
=================================================

What:  One log line per API request: method, path, status, duration.
How:   Level follows the status (5xx ERROR, 4xx WARNING, else INFO).
       Structured fields ride along in `extra` for log shippers.

Not logged: request bodies. They carry note images, document text and
OAuth tokens.

Skipped paths:
    /health and static client assets: polled or fetched on every page load.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from scribbler.middleware.request_id import request_id_var

logger = logging.getLogger("scribbler.access")

_LOGGED_PREFIXES = ("/api/", "/auth/")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log for API and OAuth routes."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if not path.startswith(_LOGGED_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s]",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
