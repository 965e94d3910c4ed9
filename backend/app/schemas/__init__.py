"""Pydantic schemas for the catalog API.

All request/response models are defined here for easy import.
"""

from app.schemas.common import ApiResponse, ErrorDetail, ErrorResponse
from app.schemas.category import (
    CategoryBrief,
    CategoryCreate,
    CategoryDeleteResponse,
    CategoryDetailResponse,
    CategoryFlatResponse,
    CategoryResponse,
    CategoryTreeResponse,
    CategoryUpdate,
    CategoryWithParentResponse,
)
from app.schemas.health import HealthCheckResponse

__all__ = [
    # Common
    "ApiResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Category
    "CategoryBrief",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryWithParentResponse",
    "CategoryTreeResponse",
    "CategoryDetailResponse",
    "CategoryFlatResponse",
    "CategoryDeleteResponse",
    # Health
    "HealthCheckResponse",
]
