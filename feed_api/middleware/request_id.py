"""
Feed API — Request ID Middleware
==================================

What:  Gives every request a short correlation ID and returns it in X-Request-ID.
Why:   Error responses, access logs and background image-deletion failures
       all carry the same ID, so one request can be followed through the logs.
How:   Reuses a client-supplied X-Request-ID or generates one, stores it in a
       ContextVar (coroutine-local) and on request.state.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Background tasks run in the request's context, so they still see this value
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns the request ID before any other handling and echoes it back."""

    header_name = "X-Request-ID"

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(self.header_name) or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[self.header_name] = rid
        return response
