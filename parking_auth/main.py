"""
Parking Auth Service - FastAPI Application
User and admin authentication for the parking management platform
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Any, Dict, List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from parking_auth.config import settings
from parking_auth.exceptions import AuthServiceError
from parking_auth.routes import admin, auth, health, profile
from parking_auth.utils.database import AuthDatabase
from parking_auth.utils.logger import configure_logging
from parking_auth.utils.responses import error_response

configure_logging(settings.log_level, settings.log_json)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events"""
    logger.info("Starting Parking Auth Service")

    db = AuthDatabase()
    await db.initialize()
    app.state.db = db
    logger.info("Database connection initialized")

    yield

    # Cleanup
    await app.state.db.close()
    logger.info("Parking Auth Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="User and admin authentication for the parking management platform",
    version=settings.app_version,
    debug=settings.debug,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    logger.info(
        "Request received",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else "unknown"
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code
    )

    return response


def _validation_message(errors: List[Dict[str, Any]]) -> str:
    """Pick the client-facing message for a rejected request body"""
    for error in errors:
        if error.get('type') == 'missing' or error.get('input', True) is None:
            return "All fields are required"

    if not errors:
        return "Invalid request"

    first = errors[0]
    cause = first.get('ctx', {}).get('error')
    return str(cause) if cause else first.get('msg', "Invalid request")


@app.exception_handler(AuthServiceError)
async def auth_service_exception_handler(request: Request, exc: AuthServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed or incomplete bodies are a 400 like any other validation failure"""
    message = _validation_message(exc.errors())
    logger.info("Request validation failed", path=request.url.path, reason=message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(message)
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Custom HTTP exception handler"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        method=request.method,
        path=request.url.path,
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("An unexpected error occurred")
    )


# Register routes
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router, prefix=settings.api_prefix, tags=["Authentication"])
app.include_router(admin.router, prefix=settings.api_prefix, tags=["Admin Authentication"])
app.include_router(profile.router, prefix=settings.api_prefix, tags=["Profile"])


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "parking-auth-service",
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "parking_auth.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
