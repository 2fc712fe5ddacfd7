"""Pydantic schemas for API request/response validation."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import PostStatus

SLUG_PATTERN = r"^[a-z0-9-]+$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# =============================================================================
# BASE SCHEMAS
# =============================================================================

class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )


class TimestampSchema(BaseSchema):
    """Schema mixin for timestamp fields."""

    created_at: datetime
    updated_at: datetime


# =============================================================================
# CATEGORY SCHEMAS
# =============================================================================

class CategoryBase(BaseSchema):
    """Base schema for category data."""

    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    description: Optional[str] = Field(None, max_length=500, description="Category description")
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN, description="Hex color code")
    icon: Optional[str] = Field(None, max_length=50, description="Icon identifier")
    sort_order: int = Field(default=0, ge=0, description="Display order among siblings")
    is_active: bool = Field(default=True, description="Visible in default listings")


class CategoryCreate(CategoryBase):
    """Schema for creating a new category."""

    slug: Optional[str] = Field(
        None, min_length=1, max_length=100, pattern=SLUG_PATTERN,
        description="URL-friendly slug, derived from the name when omitted",
    )
    parent_id: Optional[int] = Field(None, description="Parent category ID")


class CategoryUpdate(BaseSchema):
    """Schema for updating an existing category.

    Only fields present in the request are applied, so an explicit
    ``"parent_id": null`` turns the category into a root.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[int] = None
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CategoryResponse(CategoryBase, TimestampSchema):
    """Schema for category response."""

    id: int
    slug: str
    parent_id: Optional[int] = None
    level: int = 0
    post_count: int = 0


class CategoryTreeResponse(CategoryResponse):
    """Category response with children for tree view."""

    children: list["CategoryTreeResponse"] = []


# =============================================================================
# TAG SCHEMAS
# =============================================================================

class TagBase(BaseSchema):
    """Base schema for tag data."""

    name: str = Field(..., min_length=1, max_length=50, pattern=r"^[A-Za-z0-9\s-]+$", description="Tag name")
    description: Optional[str] = Field(None, max_length=200, description="Tag description")
    color: str = Field(default="#6B7280", pattern=COLOR_PATTERN, description="Hex color code")


class TagCreate(TagBase):
    """Schema for creating a new tag."""

    slug: Optional[str] = Field(
        None, min_length=1, max_length=50, pattern=SLUG_PATTERN,
        description="URL-friendly slug, derived from the name when omitted",
    )


class TagUpdate(BaseSchema):
    """Schema for updating an existing tag."""

    name: Optional[str] = Field(None, min_length=1, max_length=50, pattern=r"^[A-Za-z0-9\s-]+$")
    slug: Optional[str] = Field(None, min_length=1, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=200)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)


class TagResponse(TagBase):
    """Schema for tag response."""

    id: int
    slug: str
    created_at: datetime


class TagWithCount(TagResponse):
    """Tag response with post count."""

    post_count: int = 0


# =============================================================================
# POST SCHEMAS
# =============================================================================

class PostBase(BaseSchema):
    """Base schema for post data."""

    title: str = Field(..., min_length=1, max_length=200, description="Post title")
    content: str = Field(..., min_length=1, max_length=50000, description="Post body")
    status: PostStatus = Field(default=PostStatus.DRAFT, description="Publication status")
    author_id: Optional[int] = Field(None, description="Author reference")


class PostCreate(PostBase):
    """Schema for creating a new post."""

    slug: Optional[str] = Field(
        None, min_length=1, max_length=100,
        description="Desired slug, derived from the title when omitted",
    )
    category_ids: list[int] = Field(default_factory=list, max_length=5, description="Category IDs to assign")
    tag_ids: list[int] = Field(default_factory=list, description="Tag IDs to assign")


class PostUpdate(BaseSchema):
    """Schema for updating an existing post."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1, max_length=50000)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    status: Optional[PostStatus] = None
    author_id: Optional[int] = None
    category_ids: Optional[list[int]] = Field(None, max_length=5)
    tag_ids: Optional[list[int]] = None


class PostResponse(PostBase, TimestampSchema):
    """Schema for post response with resolved relations."""

    id: uuid.UUID
    slug: Optional[str] = None
    published_at: Optional[datetime] = None
    version: int
    categories: list[CategoryResponse] = []
    tags: list[TagResponse] = []


class PostListResponse(BaseSchema):
    """Paginated list of posts."""

    items: list[PostResponse]
    total: int
    page: int
    page_size: int
    pages: int


class PostSummary(BaseSchema):
    """Counts of non-deleted posts by status."""

    total_posts: int = 0
    drafts: int = 0
    published: int = 0
    pending: int = 0
    archived: int = 0


# =============================================================================
# COMMON SCHEMAS
# =============================================================================

class PostFilter(BaseSchema):
    """Optional filters for post listing; absent fields do not filter."""

    search_text: Optional[str] = Field(None, max_length=200, description="Search in title and content")
    status: Optional[PostStatus] = Field(None, description="Filter by status")
    category_id: Optional[int] = Field(None, description="Posts in this category")
    tag_ids: Optional[list[int]] = Field(None, description="Posts with any of these tags")
    published_after: Optional[datetime] = Field(None, description="Published at or after")
    published_before: Optional[datetime] = Field(None, description="Published at or before")
    author_id: Optional[int] = Field(None, description="Filter by author")

    @field_validator("search_text")
    @classmethod
    def blank_search_is_absent(cls, v: Optional[str]) -> Optional[str]:
        """Treat a whitespace-only search as no search."""
        if v is not None and not v.strip():
            return None
        return v


# Rebuild models for forward references
CategoryTreeResponse.model_rebuild()
