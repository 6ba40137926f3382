"""
Main FastAPI application for the Translation License Gateway.
"""

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
import asyncio
import logging
import logging.config
import time

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Import configuration
from app.config import settings

# Import routers
from app.routers import translate, licenses, payments

# Import middleware and utilities
from app.exceptions import AuthenticationError, ServiceError
from app.middleware.logging import LoggingMiddleware
from app.middleware.rate_limiting import limiter
from app.services.container import ServiceContainer
from app.utils.health import HealthChecker

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    settings.ensure_directories()
    logging.config.dictConfig(settings.log_config)


# Application lifespan events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service container on startup and release it on shutdown."""
    configure_logging()
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    container = ServiceContainer(settings)
    await container.startup()
    app.state.services = container

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await container.shutdown()
    app.state.services = None


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="License-gated translation API with Firebase identity and Toss Payments activation",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)

# slowapi rate limiter (endpoint-specific, not global middleware)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Middleware executes in reverse order of addition:
# timeout_middleware (outermost) -> LoggingMiddleware -> CORSMiddleware -> endpoint
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_credentials,
    allow_methods=settings.cors_methods,
    allow_headers=settings.allowed_cors_headers,
    expose_headers=["X-Request-ID", "X-Process-Time"]
)

# Include routers
app.include_router(translate.router)
app.include_router(licenses.router)
app.include_router(payments.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with service information."""
    return {
        "message": "Translation API Service is running.",
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "endpoints": {
            "translate": "/translate",
            "license": "/api/license",
            "orders": "/api/orders",
            "confirm_payment": "/confirm-payment",
            "health": "/health"
        }
    }


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint for monitoring and load balancers."""
    container = getattr(request.app.state, "services", None)
    if container is None:
        return JSONResponse(
            content={"status": "unhealthy", "error": "Services not initialized", "timestamp": time.time()},
            status_code=503
        )

    result = await HealthChecker(container).check_health()
    status_code = 503 if result["status"] == "unhealthy" else 200
    return JSONResponse(content=result, status_code=status_code)


def _error_response(request: Request, status_code: int, message: str, error_type: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type
            },
            "timestamp": time.time(),
            "path": str(request.url)
        },
        headers=headers
    )


# Custom exception handlers
@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Handle typed service errors with the status each one carries."""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type}: {exc.message}", exc_info=exc.original_error is not None)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return _error_response(request, exc.status_code, exc.message, exc.error_type, headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    safe_errors = [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": 422,
                "message": "Request validation failed",
                "type": "validation_error",
                "details": safe_errors
            },
            "timestamp": time.time(),
            "path": str(request.url)
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent error response format."""
    return _error_response(request, exc.status_code, exc.detail, "http_error", getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions with error logging."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    error_detail = str(exc) if settings.debug else "Internal server error"
    return _error_response(request, 500, error_detail, "internal_error")


# Added last so it is the outermost layer
@app.middleware("http")
async def timeout_middleware(request: Request, call_next):
    """Bound every request with REQUEST_TIMEOUT_SECONDS."""
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.request_timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning(f"Request timeout: {request.method} {request.url.path} (>{settings.request_timeout_seconds}s)")
        response = _error_response(request, 408, "Request timeout", "timeout_error")

        # Timeout responses bypass CORSMiddleware
        origin = request.headers.get("origin")
        if origin and (origin in settings.cors_origins or "*" in settings.cors_origins):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Expose-Headers"] = "X-Request-ID, X-Process-Time"
        return response


# Development server runner
if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True
    )
