"""
FastAPI application entry point.
"""

from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .cache import KeyValueStore
from .config import setup_application_logging, get_identity_settings
from .database import check_database_connection, get_db, init_database
from .dependencies import get_dispatcher, get_key_value_store
from .middleware.logging import logging_middleware
from .models.responses import HealthResponse
from .routes import auth, invitations

# Configure structured logging
logger = setup_application_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""

    # Startup
    logger.info("Starting identity service")

    # Refuse to start with unusable signing keys
    get_identity_settings().ensure_signing_keys()

    try:
        if check_database_connection():
            logger.info("Database connection verified")
            init_database()
            logger.info("Database initialization completed")
        else:
            logger.error("Database connection failed")
            # Don't exit - allow service to start for health checks

        if get_key_value_store().is_available():
            logger.info("Redis connection verified")
        else:
            logger.warning(
                "Redis unavailable, account lockout will not be enforced",
                degraded=True,
            )

    except Exception as e:
        logger.error("Failed to initialize dependencies during startup", error=str(e))
        # Continue startup even if some dependencies fail

    logger.info("Identity service startup completed")

    yield

    # Shutdown
    logger.info("Shutting down identity service")

    get_dispatcher().shutdown(wait=True)

    logger.info("Identity service shutdown completed")


# Create FastAPI application
app = FastAPI(
    title="Caregiver Identity Service",
    description="Credentials, account lockout, API keys and caregiver invitations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_identity_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Add request logging middleware
app.middleware("http")(logging_middleware)


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions with consistent response format."""

    content = {
        "success": False,
        "error_code": exc.status_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": str(request.url.path),
    }
    if isinstance(exc.detail, dict):
        content.update(exc.detail)
    else:
        content["message"] = exc.detail

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions with logging."""

    logger.error(
        "Unhandled exception",
        path=str(request.url.path),
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Internal server error",
            "error_code": 500,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": str(request.url.path),
        },
    )


@app.get("/health", response_model=HealthResponse)
def health_check(
    db: Session = Depends(get_db),
    store: KeyValueStore = Depends(get_key_value_store),
):
    """Report database and Redis health."""

    components = {
        "database": "healthy" if check_database_connection(db.get_bind()) else "unhealthy",
        "redis": "healthy" if store.is_available() else "degraded",
    }

    if components["database"] != "healthy":
        overall = "unhealthy"
    elif components["redis"] != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        components=components,
        timestamp=datetime.now(timezone.utc),
    )


# Register route modules
app.include_router(auth.router)
app.include_router(invitations.router)
