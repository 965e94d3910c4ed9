"""Category Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CategoryCreate(BaseModel):
    """Request body for creating a category."""

    name: str = Field(..., min_length=2, max_length=100)
    name_local: Optional[str] = Field(None, max_length=100)
    slug: str = Field(
        ...,
        min_length=2,
        max_length=150,
        pattern=SLUG_PATTERN,
        description='Lowercase alphanumeric with hyphens only (e.g., "mens-clothing")',
    )
    parent_id: Optional[UUID] = None
    sort_order: int = Field(0, ge=0)
    is_active: bool = True
    image: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)


class CategoryUpdate(BaseModel):
    """Partial update for a category.

    Every field is tri-state: left out (untouched), explicit ``null``
    (cleared) or a value. ``parent_id: null`` moves the category to the root.
    """

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    name_local: Optional[str] = Field(None, max_length=100)
    slug: Optional[str] = Field(None, min_length=2, max_length=150, pattern=SLUG_PATTERN)
    parent_id: Optional[UUID] = None
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    image: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = Field(None, max_length=1000)
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = Field(None, max_length=500)

    @field_validator("name", "slug", "sort_order", "is_active")
    @classmethod
    def reject_explicit_null(cls, value: Any) -> Any:
        """These columns are NOT NULL; they can be omitted but not cleared."""
        if value is None:
            raise ValueError("field cannot be null")
        return value

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class CategoryBrief(BaseModel):
    """Brief category information for parent/child references."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    name_local: Optional[str] = None
    slug: str


class CategoryResponse(BaseModel):
    """Category response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    name_local: Optional[str] = None
    slug: str
    parent_id: Optional[UUID] = None
    sort_order: int
    is_active: bool
    image: Optional[str] = None
    description: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    product_count: int = 0  # Computed field
    created_at: datetime
    updated_at: datetime


class CategoryWithParentResponse(CategoryResponse):
    """Category returned from create/update, with its parent summary."""

    parent: Optional[CategoryBrief] = None


class CategoryTreeResponse(CategoryResponse):
    """Category response with nested children for tree structure."""

    children: list["CategoryTreeResponse"] = []


class CategoryDetailResponse(CategoryWithParentResponse):
    """Category detail page: parent summary plus active direct children."""

    children: list[CategoryBrief] = []


class CategoryFlatResponse(BaseModel):
    """One row of the flattened tree, for dropdowns and selects."""

    id: UUID
    name: str
    name_local: Optional[str] = None
    slug: str
    parent_id: Optional[UUID] = None
    depth: int
    full_path: str


class CategoryDeleteResponse(BaseModel):
    """Result of deleting a category."""

    message: str
    reassigned_children: int


CategoryTreeResponse.model_rebuild()
