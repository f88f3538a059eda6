"""Request context middleware using structlog contextvars.

Takes the request id from the X-Request-ID header (or generates one) and
binds it, together with the method and path, to structlog's contextvars so
that every log line emitted while the request is handled, in routers,
repositories or exception handlers, carries the same request_id without
explicit parameter passing.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request-scoped log context and time each request.

    Priority for the request id:
    1. X-Request-ID header (explicit, e.g. from a proxy)
    2. A freshly generated uuid4 hex
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        tokens = structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=duration_ms,
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            # the 500 body is built outside this middleware, after the context is reset
            logger.exception("Unhandled exception", request_id=request_id)
            raise
        finally:
            structlog.contextvars.reset_contextvars(**tokens)
