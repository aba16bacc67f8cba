"""
Bradspel Backend — Request ID Middleware
=========================================

What:  Assigns a short correlation id to each request and echoes it in the
       X-Request-ID response header.
How:   Reuses the client's X-Request-ID when sent, otherwise generates one.
       The id lives in a ContextVar so loggers and exception handlers can
       read it without access to the request object.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    # 8 hex chars are enough to correlate log lines for one request
    return uuid.uuid4().hex[:8]


def get_request_id(request: Request) -> str:
    """
    Id of the given request, also where the ContextVar is no longer set.

    Starlette runs the catch-all Exception handler in its outermost layer,
    after this middleware has returned. request.state lives in the ASGI
    scope, so the id assigned here is still readable there.
    """
    return (
        request_id_var.get("")
        or getattr(request.state, "request_id", "")
        or request.headers.get("X-Request-ID")
        or new_request_id()
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
