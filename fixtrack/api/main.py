"""
Fix Tracker - FastAPI Application

Main entry point for the REST API server.
"""

from contextlib import asynccontextmanager
import asyncio
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from loguru import logger
import time

from ..core.config import settings
from ..core.logging import setup_logging
from ..core.session import get_session_coordinator, reset_session_coordinator
from ..location import MockLocationProvider
from .routes import session, history, export, websocket


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs startup and shutdown logic.
    """
    # Startup
    setup_logging()
    logger.info("Starting Fix Tracker API...")

    coordinator = get_session_coordinator()
    websocket.manager.attach(coordinator, asyncio.get_running_loop())

    if settings.location.simulate and isinstance(coordinator.provider, MockLocationProvider):
        coordinator.provider.start(interval_s=coordinator.interval_ms / 1000)

    permission = coordinator.recheck_permission()
    logger.info(f"Location permission: {permission.value}")
    readiness = await asyncio.to_thread(coordinator.refresh)
    logger.info(f"Location readiness: {readiness.value}")

    yield

    # Shutdown
    logger.info("Shutting down Fix Tracker API...")
    websocket.manager.detach()

    if isinstance(coordinator.provider, MockLocationProvider):
        coordinator.provider.stop()

    reset_session_coordinator()
    logger.info("Session coordinator shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Fix Tracker API",
    description="""
    API for location fix acquisition, history logging, and CSV export.

    ## Features

    * **Session** - Permission and provider readiness, live fix state
    * **History** - Append-only log of every persisted fix
    * **Export** - CSV export of the history log
    """,
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time header to all responses"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# Exception handlers
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed messages"""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": errors
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "message": str(exc) if settings.debug else "An unexpected error occurred"
        }
    )


# Include routers
app.include_router(
    session.router,
    prefix="/api/session",
    tags=["Session"]
)

app.include_router(
    history.router,
    prefix="/api/history",
    tags=["History"]
)

app.include_router(
    export.router,
    prefix="/api/export",
    tags=["Export"]
)

app.include_router(
    websocket.router,
    prefix="/ws",
    tags=["WebSocket"]
)


# Root endpoints
@app.get("/", tags=["Root"])
async def root():
    """API root endpoint"""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health", tags=["Root"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "websocket_clients": websocket.manager.get_connection_count()
    }


def run() -> None:
    """Run the API server with uvicorn"""
    import uvicorn
    uvicorn.run(
        "fixtrack.api.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload,
    )


if __name__ == "__main__":
    run()
