# bizpilot/transport/middleware.py
import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from bizpilot.infra.logging_config import get_logger, LogContext

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Client-supplied ids are echoed back and logged, so keep them short and plain
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Probes are hit every few seconds and would drown the request log
QUIET_PATHS = frozenset({"/health", "/ready"})


def _request_id_from(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and _REQUEST_ID_RE.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id (the caller's, if usable) for log correlation"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.request_id = _request_id_from(request)
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request: method, path, status, duration"""

    def __init__(self, app: ASGIApp, enabled: bool = True):
        super().__init__(app)
        self.enabled = enabled

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.enabled or request.url.path in QUIET_PATHS:
            return await call_next(request)

        log_ctx = LogContext(logger, request_id=getattr(request.state, "request_id", None))
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            log_ctx.error(
                f"{request.method} {request.url.path} failed: {exc.__class__.__name__} "
                f"after {(time.perf_counter() - started) * 1000:.1f}ms",
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        log_ctx.info(
            f"{request.method} {request.url.path} status={response.status_code} {duration_ms:.1f}ms",
            extra={"status_code": response.status_code, "duration_ms": round(duration_ms, 1)},
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last line of defence: any exception that escaped the routes becomes a 500"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")
            logger.error(
                f"Unhandled {exc.__class__.__name__} on {request.method} {request.url.path}",
                extra={"request_id": request_id},
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "request_id": request_id},
            )
