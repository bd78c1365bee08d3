"""
MindSpace Forum Backend Application.

FastAPI application serving the peer-support discussion forum.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from mindspace.api.v1 import router as api_v1_router
from mindspace.core.config import settings
from mindspace.core.database import close_db, init_db, ping_db
from mindspace.core.errors import register_exception_handlers
from mindspace.core.log import configure_logging
from mindspace.core.middleware import register_middleware
from mindspace.core.rate_limiter import close_rate_limiter

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")

    # Initialize database
    try:
        await init_db()
        logger.info("Database initialized")
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {e}")
        if settings.is_production:
            raise
        logger.warning("Continuing without a database outside production")

    logger.info(f"{settings.app_name} started successfully")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")

    await close_rate_limiter()
    await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    MindSpace Peer-Support Forum

    ## Features

    - **Posts**: Share what is on your mind, optionally anonymously
    - **Comments**: Reply to posts
    - **Likes**: Show support for posts and comments
    - **Categories**: Browse by topic or search by keyword
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

register_exception_handlers(app)
register_middleware(app)

# CORS middleware (outermost, so rejections still carry CORS headers)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_v1_router, prefix=settings.api_prefix)


@app.get(f"{settings.api_prefix}/health", tags=["System"])
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    database_ok = await ping_db()
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "database": "Connected" if database_ok else "Disconnected",
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_prefix,
    }
