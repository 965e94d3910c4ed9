"""FastAPI dependency injection providers."""

import secrets
from typing import AsyncGenerator, Optional

import structlog
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.session import async_session_factory
from app.services.category_service import CategoryService

logger = structlog.get_logger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for request-scoped usage.

    The session is automatically committed on success or rolled back on error.
    Always closed after the request completes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    """Category service bound to the request's session."""
    return CategoryService(db)


async def require_admin(
    x_admin_key: Optional[str] = Header(None, alias="X-Admin-Key"),
) -> None:
    """Guard for privileged category endpoints.

    Compares the ``X-Admin-Key`` header with ``ADMIN_API_KEY`` in constant
    time. An unset ``ADMIN_API_KEY`` disables the endpoints entirely.

    Raises:
        HTTPException: 403 when the key is not configured, missing or wrong.
    """
    configured_key = settings.ADMIN_API_KEY

    if not configured_key:
        logger.warning("admin_api_key_not_configured")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )

    if not x_admin_key or not secrets.compare_digest(x_admin_key.encode(), configured_key.encode()):
        logger.warning("admin_api_key_rejected")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin key",
        )
