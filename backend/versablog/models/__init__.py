"""SQLAlchemy models for the VersaBlog content backend.

This package contains all database models and Pydantic schemas
for the VersaBlog application.

Models:
    - Category: Hierarchical post categories
    - Tag: Flat post labels
    - Post: Versioned, soft-deletable posts

Association Tables:
    - PostCategory: Links posts to categories
    - PostTag: Links posts to tags

Usage:
    from versablog.models import Category, Post, Tag, PostStatus
    from versablog.models.schemas import PostCreate, PostResponse, etc.
"""

# Base and utilities
from .base import Base, TimestampMixin, metadata, utcnow

# Enums
from .enums import PostStatus

# Models
from .category import Category, PostCategory
from .tag import Tag, PostTag
from .post import Post, search_document

# Pydantic schemas
from .schemas import (
    # Category schemas
    CategoryBase,
    CategoryCreate,
    CategoryUpdate,
    CategoryResponse,
    CategoryTreeResponse,
    # Tag schemas
    TagBase,
    TagCreate,
    TagUpdate,
    TagResponse,
    TagWithCount,
    # Post schemas
    PostBase,
    PostCreate,
    PostUpdate,
    PostResponse,
    PostListResponse,
    PostSummary,
    # Common schemas
    PostFilter,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "metadata",
    "utcnow",
    # Enums
    "PostStatus",
    # Models
    "Category",
    "PostCategory",
    "Tag",
    "PostTag",
    "Post",
    "search_document",
    # Category schemas
    "CategoryBase",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryTreeResponse",
    # Tag schemas
    "TagBase",
    "TagCreate",
    "TagUpdate",
    "TagResponse",
    "TagWithCount",
    # Post schemas
    "PostBase",
    "PostCreate",
    "PostUpdate",
    "PostResponse",
    "PostListResponse",
    "PostSummary",
    # Common schemas
    "PostFilter",
]
