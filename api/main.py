"""
FlowHub Engine - Main FastAPI Application.

REST control surface for the flow execution engine: start flows,
watch active executions, pause, resume and cancel them.
"""
from contextlib import asynccontextmanager
import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import get_flow_engine
from api.routes import executions, health
from core.infrastructure.logging import configure_logging
from core.settings import get_app_settings
from orchestration import FlowEngineError


configure_logging(get_app_settings().engine.log_level)
logger = logging.getLogger(__name__)


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start up, then cancel whatever is still running on shutdown."""
    engine = get_flow_engine()
    logger.info("🚀 FlowHub Engine API starting up (docs at /docs)")

    yield

    active = engine.list_active()
    for execution in active:
        await engine.cancel(execution.id)
    logger.info(f"👋 FlowHub Engine API shutting down ({len(active)} executions cancelled)")


app = FastAPI(
    title="FlowHub Engine - Flow Execution API",
    description="""
    Runs declarative integration flows made of adapter calls, data
    transformations, conditions, loops and delays.

    Executions run in the background; poll the active executions
    endpoints to follow them and pause, resume or cancel them in flight.
    """,
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# =============================================================================
# MIDDLEWARE & ERROR HANDLERS
# =============================================================================

@app.middleware("http")
async def time_requests(request: Request, call_next):
    """Log each request and report its handling time in a header."""
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started

    response.headers["X-Process-Time"] = f"{elapsed:.4f}"
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed:.3f}s)"
    )
    return response


@app.exception_handler(FlowEngineError)
async def flow_engine_error_handler(request: Request, exc: FlowEngineError):
    """Engine errors that escape a route carry their own error code."""
    logger.warning(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=422,
        content={"error": exc.code, "detail": exc.message, "path": request.url.path},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc), "path": request.url.path},
    )


app.include_router(health.router, tags=["Health"])
app.include_router(executions.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    """API root endpoint."""
    return {
        "service": "flowhub-engine",
        "version": app.version,
        "docs": "/docs",
        "executions": "/api/v1/flows/executions",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
