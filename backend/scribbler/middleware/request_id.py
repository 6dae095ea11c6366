"""
Smart Scribbler Backend — Request ID Middleware
=================================================

What:  Tags every request with a short correlation ID.
How:   Reuses an incoming X-Request-ID header (the browser client sends
       none, but a proxy might) or generates one; stores it in a ContextVar
       and in request.state, and echoes it in the response header.
Who:   Read by the access log, the exception handlers, and error bodies
       so a user can quote the ID from an error banner.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns request IDs and returns them in X-Request-ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Cap client-supplied IDs so a header can't flood the logs
        rid = (request.headers.get(REQUEST_ID_HEADER) or new_request_id())[:64]
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
