"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.database import init_db, close_db
from app.core.logging import configure_logging, get_logger, set_request_context, clear_request_context
from app.core.exceptions import AppError, ErrorCode, ValidationError
from app.middleware.security_headers import SecurityHeadersMiddleware
from app.api import connections, external, health, import_configurations, temp_data

# Configure structured logging
configure_logging(
    log_level=settings.log_level,
    json_format=settings.log_format == "json",
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info(
        "Starting supplier import backend...",
        extra={"version": settings.version, "environment": settings.environment},
    )

    try:
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        if settings.is_production:
            # In production, database is required - fail fast
            raise RuntimeError(f"Database initialization failed in production: {e}")
        logger.warning(
            "Database init failed but continuing in development mode. "
            "Connection endpoints will not work."
        )

    yield

    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database connections: {e}")

    logger.info("Shutting down supplier import backend...")


app = FastAPI(
    title="Supplier Import API",
    description="Backend for importing supplier product data into Shopify stores",
    version=settings.version,
    lifespan=lifespan,
)


# ============ Exception Handlers ============


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors with the standard failure envelope."""
    if exc.http_status >= 500:
        logger.error(f"{exc.code.value}: {exc.message}", extra={"path": request.url.path})
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(include_details=not settings.is_production),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404, 405...) in the same envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(code=ErrorCode.INVALID_REQUEST, message="Invalid request")
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: never leak a traceback to the admin UI."""
    logger.error(f"Unhandled error on {request.url.path}: {type(exc).__name__}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# ============ Middleware ============


app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============ Request Context Middleware ============


@app.middleware("http")
async def request_context_middleware(request: Request, call_next: Callable):
    """Add request context for logging."""
    request_id = set_request_context()
    request.state.request_id = request_id

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        clear_request_context()


# ============ Include Routers ============

app.include_router(health.router)
app.include_router(external.router)
app.include_router(connections.router)
app.include_router(import_configurations.router)
app.include_router(temp_data.router)


# ============ Root Endpoint ============


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Supplier Import API",
        "version": settings.version,
        "status": "running",
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )
