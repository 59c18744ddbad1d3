# bizpilot/transport/http_app.py
"""
HTTP application for the AI assistant.

Layers:
1. Public: AI dispatch endpoints (CORS-enabled for the dashboard)
2. Public: health/readiness probes
3. Protected: metrics (METRICS_TOKEN or internal network)

Every failure leaves as ``{"error": "..."}`` with the matching status.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request, Depends
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from bizpilot.config import settings
from bizpilot.core.dispatch import (
    DispatchError,
    DispatchRequest,
    PromptDispatcher,
    get_dispatcher,
)
from bizpilot.infra.logging_config import setup_logging, get_logger, LogContext
from bizpilot.infra.metrics import get_metrics_collector
from bizpilot.transport.middleware import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
)
from bizpilot.transport.schemas import DispatchOut, ErrorOut, StructuredDispatchOut
from bizpilot.transport.security import (
    require_metrics_auth,
    SecurityHeaders,
    sanitize_error_message,
)

# Initialize logging first
setup_logging(
    level=settings.log_level,
    use_json=settings.is_production
)

logger = get_logger(__name__)

# Headers the dashboard's client library sends on function calls
CORS_ALLOW_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-request-id"]

# Documented failure shapes of the AI endpoints
ERROR_RESPONSES = {code: {"model": ErrorOut} for code in (400, 402, 429, 500, 502)}


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_prompt_dispatcher(request: Request) -> PromptDispatcher:
    """Get the shared dispatcher from app state (created on first use)."""
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        dispatcher = get_dispatcher()
        request.app.state.dispatcher = dispatcher
    return dispatcher


async def parse_dispatch_request(request: Request) -> DispatchRequest:
    """Read the JSON body into a DispatchRequest (400 on anything malformed)."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")

    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")

    try:
        return DispatchRequest.model_validate(payload)
    except PydanticValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise HTTPException(status_code=400, detail=f"Invalid request fields: {fields}")


# ============================================================================
# MIDDLEWARE FOR SECURITY HEADERS
# ============================================================================

class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        return SecurityHeaders.add_security_headers(await call_next(request))


# ============================================================================
# LIFESPAN
# ============================================================================

@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Application lifecycle: startup and shutdown"""

    logger.info(f"Starting application: env={settings.app_env}")

    problems = settings.validate_for_production()
    if problems:
        logger.critical(f"Invalid production settings: {problems}")
        raise RuntimeError(f"Invalid production config: {problems}")

    fastapi_app.state.dispatcher = get_dispatcher()
    logger.info(
        f"AI gateway: model={settings.ai_model}, timeout={settings.ai_timeout_seconds}s, "
        f"configured={settings.ai_gateway_configured}"
    )

    logger.info("Application startup complete")

    yield

    logger.info("Application shutdown complete")


# ============================================================================
# CREATE APP
# ============================================================================

app = FastAPI(
    title="BizPilot AI Assistant",
    description="Prompt dispatch service for the BizPilot business dashboard",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
    openapi_url=None if settings.is_production else "/openapi.json",
)

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(RequestLoggingMiddleware, enabled=settings.enable_request_logging)
app.add_middleware(RequestIDMiddleware)

# CORS: the dashboard calls the assistant straight from the browser.
# Added last so it is outermost and error responses carry the CORS headers too.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=CORS_ALLOW_HEADERS,
    expose_headers=["X-Request-ID"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Every HTTP failure, dispatch errors included, leaves as {"error": detail}."""
    if exc.status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} -> {exc.status_code}: {exc.detail}",
            extra={"request_id": getattr(request.state, "request_id", None)},
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    """Bugs (e.g. a template failing on odd payload data) become a 500 with a safe message."""
    logger.error(
        f"Unexpected {exc.__class__.__name__} on {request.url.path}",
        extra={"request_id": getattr(request.state, "request_id", None)},
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": sanitize_error_message(exc, settings.is_production)},
    )


# ============================================================================
# AI ENDPOINTS
# ============================================================================

async def _run_dispatch(request: Request, dispatcher: PromptDispatcher) -> DispatchOut:
    ai_request = await parse_dispatch_request(request)
    log_ctx = LogContext(
        logger,
        request_id=getattr(request.state, "request_id", None),
        kind=ai_request.resolved_kind.value,
    )

    try:
        result = await dispatcher.dispatch(ai_request)
    except DispatchError as exc:
        log_ctx.warning(f"AI request failed: {type(exc).__name__} status={exc.status_code}")
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)

    log_ctx.info(f"AI request completed: {len(result.content)} chars")
    return DispatchOut(content=result.content, kind=result.kind)


@app.post("/ai-assistant", response_model=DispatchOut, responses=ERROR_RESPONSES)
async def ai_assistant(request: Request, dispatcher: PromptDispatcher = Depends(get_prompt_dispatcher)):
    """
    Dispatch one AI request.

    Body: ``{"kind": "...", "prompt": "...", "<payload>Data": {...}}``
    (``type`` is accepted for ``kind``).  Returns ``{"content", "kind"}``
    with the upstream reply text verbatim.
    """
    return await _run_dispatch(request, dispatcher)


@app.post("/functions/v1/ai-assistant", response_model=DispatchOut, include_in_schema=False)
async def ai_assistant_function_path(
    request: Request,
    dispatcher: PromptDispatcher = Depends(get_prompt_dispatcher),
):
    """Same as /ai-assistant, at the hosted-function path the dashboard client uses."""
    return await _run_dispatch(request, dispatcher)


@app.post("/ai-assistant/structured", response_model=StructuredDispatchOut, responses=ERROR_RESPONSES)
async def ai_assistant_structured(
    request: Request,
    dispatcher: PromptDispatcher = Depends(get_prompt_dispatcher),
):
    """
    Dispatch a JSON-reply kind (lead_score, schedule, extract_lead,
    swot_analysis) and return the parsed reply as ``data``.

    A reply that does not parse is a 502, not a silent default.
    """
    ai_request = await parse_dispatch_request(request)

    try:
        result, data = await dispatcher.dispatch_structured(ai_request)
    except DispatchError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail)

    return StructuredDispatchOut(content=result.content, kind=result.kind, data=data.model_dump())


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/health")
def health():
    """Liveness probe. Returns minimal information."""
    return {"status": "healthy"}


@app.get("/ready")
def readiness():
    """Readiness probe: not ready until the AI gateway credential is set."""
    if not settings.ai_gateway_configured:
        return JSONResponse(status_code=503, content={"status": "unhealthy"})
    return {"status": "healthy"}


# ============================================================================
# MONITORING ENDPOINTS (Internal network or METRICS_TOKEN)
# ============================================================================

@app.get("/metrics", dependencies=[Depends(require_metrics_auth)])
def metrics():
    """In-process dispatch counters and latency histograms."""
    if not settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Not found")
    return get_metrics_collector().get_metrics()


# ============================================================================
# CATCH-ALL (Return 404 for unknown routes)
# ============================================================================

@app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
async def catch_all(path: str):
    """Unknown routes get a bare 404."""
    logger.info(f"No route for /{path[:100]}")
    raise HTTPException(status_code=404, detail="Not found")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bizpilot.transport.http_app:app",
        host="0.0.0.0",
        port=8099,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
        access_log=not settings.is_production,
        server_header=False,
        date_header=False,
    )
