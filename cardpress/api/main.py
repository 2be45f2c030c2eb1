"""
FastAPI Application
==================

Main FastAPI application exposing card preview and PDF export for card deck
projects on the local file system.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from cardpress.api.dependencies import close_services
from cardpress.api.routes.export import router as export_router
from cardpress.api.routes.health import router as health_router
from cardpress.api.routes.preview import router as preview_router
from cardpress.config.logging import get_logger
from cardpress.config.settings import get_settings
from cardpress.core.errors import CardPressError, HardFailure
from cardpress.models.schemas import ErrorResponse

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting FastAPI application", environment=settings.environment)
    try:
        yield
    finally:
        logger.info("Shutting down FastAPI application")
        try:
            await close_services()
            logger.info("Services closed")
        except Exception as e:
            logger.error("Error closing services", error=str(e))


# Create FastAPI app
settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    description="Render card deck templates and export them to print-ready PDF",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_hosts,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)

app.include_router(health_router)
app.include_router(preview_router)
app.include_router(export_router)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
    """Add request ID to all requests."""
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)  # type: ignore
    response.headers["X-Request-ID"] = request_id  # type: ignore

    return response  # type: ignore


# Exception handlers
@app.exception_handler(HTTPException)
async def custom_http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom HTTP exception handler with structured error response."""
    error_response = ErrorResponse(
        error=exc.detail,
        error_code=str(exc.status_code),
        details=None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=exc.status_code, content=error_response.model_dump(mode="json"))


@app.exception_handler(CardPressError)
async def cardpress_exception_handler(request: Request, exc: CardPressError) -> JSONResponse:
    """Report hard failures as unprocessable requests and anything else as a server error."""
    status_code = 422 if isinstance(exc, HardFailure) else 500

    error_response = ErrorResponse(
        error=str(exc),
        error_code=exc.error_code,
        details={"type": type(exc).__name__} if settings.debug else None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Operation failed",
        error_code=exc.error_code,
        error_message=str(exc),
        request_id=error_response.request_id,
    )

    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """General exception handler for unexpected errors."""
    error_response = ErrorResponse(
        error="Internal server error",
        error_code="INTERNAL_ERROR",
        details={"exception": str(exc)} if settings.debug else None,
        request_id=getattr(request.state, "request_id", None),
    )

    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=error_response.request_id,
        exc_info=True,
    )

    return JSONResponse(status_code=500, content=error_response.model_dump(mode="json"))


# Root endpoint
@app.get("/", tags=["General"])
async def root() -> Dict[str, Any]:
    """
    Root endpoint with basic API information.
    """
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs_url": "/docs" if settings.debug else None,
        "health_check": "/api/v1/health",
        "endpoints": {
            "preview": "POST /api/v1/preview",
            "export": "POST /api/v1/export",
            "export_status": "GET /api/v1/export/status",
        },
    }


# Development server runner
def run_development_server() -> None:
    """Run development server with auto-reload."""
    uvicorn.run(
        "cardpress.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


def create_app() -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.

    Returns:
        FastAPI application instance
    """
    return app


if __name__ == "__main__":
    run_development_server()
