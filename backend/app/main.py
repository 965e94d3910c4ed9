"""Catalog Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.router import api_v1_router
from app.config import settings
from app.core.exceptions import (
    CatalogException,
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    StoreError,
)
from app.db.session import engine
from app.models import Base
from app.schemas import ErrorDetail, ErrorResponse
from app.services.cache_service import get_cache_service

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_STATUS_BY_EXCEPTION = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InvalidOperationError: status.HTTP_400_BAD_REQUEST,
    StoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("Starting Catalog API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Auto-create tables on startup (safe for fresh deployments)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables verified/created")
    except Exception as e:
        logger.error(f"Database init failed: {e}", exc_info=True)

    cache = get_cache_service()
    if await cache.health_check():
        logger.info("Redis cache connected successfully")
    else:
        logger.warning("Redis cache connection failed (will operate without caching)")

    yield

    # Shutdown
    logger.info("Shutting down Catalog API server...")
    await cache.close()
    await engine.dispose()


app = FastAPI(
    title="Catalog API",
    description="Product category tree API",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CatalogException)
async def catalog_exception_handler(request: Request, exc: CatalogException) -> JSONResponse:
    """Render domain errors as the standard error envelope."""
    status_code = _STATUS_BY_EXCEPTION.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        detail = getattr(exc, "detail", exc.message)
        logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({detail})")

    body = ErrorResponse(
        error=ErrorDetail(
            code=exc.code,
            message=exc.message,
            field=getattr(exc, "field", None),
        )
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Catalog API",
        "version": "0.1.0",
        "description": "Product category tree",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
