"""Post API Routes

FastAPI routes for posts, their categories and listing filters.
"""

import math
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from versablog.api.dependencies import get_loaders, get_post_service
from versablog.api.resolvers import serialize_post, serialize_posts
from versablog.config import settings
from versablog.core.loaders import Loaders
from versablog.models import (
    PostCreate,
    PostFilter,
    PostListResponse,
    PostResponse,
    PostStatus,
    PostSummary,
    PostUpdate,
)
from versablog.services import PostService

router = APIRouter()


def get_post_filter(
    search_text: Optional[str] = Query(None, max_length=200, description="Search in title and content"),
    status: Optional[PostStatus] = Query(None, description="Filter by status"),
    category_id: Optional[int] = Query(None, description="Posts in this category"),
    tag_ids: Optional[List[int]] = Query(None, description="Posts with any of these tags"),
    published_after: Optional[datetime] = Query(None, description="Published at or after"),
    published_before: Optional[datetime] = Query(None, description="Published at or before"),
    author_id: Optional[int] = Query(None, description="Filter by author"),
) -> PostFilter:
    """Collect the listing filters from query parameters."""
    return PostFilter(
        search_text=search_text,
        status=status,
        category_id=category_id,
        tag_ids=tag_ids,
        published_after=published_after,
        published_before=published_before,
        author_id=author_id,
    )


@router.get("", response_model=PostListResponse)
async def list_posts(
    filters: PostFilter = Depends(get_post_filter),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    service: PostService = Depends(get_post_service),
    loaders: Loaders = Depends(get_loaders),
) -> PostListResponse:
    """List non-deleted posts matching every given filter, newest first."""
    posts, total = await service.list_posts(filters, page=page, page_size=page_size)
    return PostListResponse(
        items=await serialize_posts(posts, loaders),
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total else 0,
    )


@router.get("/summary", response_model=PostSummary)
async def get_post_summary(
    service: PostService = Depends(get_post_service),
) -> PostSummary:
    """Count non-deleted posts by status."""
    return await service.summary()


@router.get("/recent", response_model=List[PostResponse])
async def get_recent_posts(
    limit: int = Query(5, ge=1, le=50, description="Number of posts"),
    service: PostService = Depends(get_post_service),
    loaders: Loaders = Depends(get_loaders),
) -> List[PostResponse]:
    """Get the latest published posts."""
    return await serialize_posts(await service.recent(limit), loaders)


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    service: PostService = Depends(get_post_service),
    loaders: Loaders = Depends(get_loaders),
) -> PostResponse:
    """Create a post; a colliding slug gets a numeric suffix."""
    return await serialize_post(await service.create(data), loaders)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: uuid.UUID,
    service: PostService = Depends(get_post_service),
    loaders: Loaders = Depends(get_loaders),
) -> PostResponse:
    return await serialize_post(await service.get(post_id), loaders)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: uuid.UUID,
    data: PostUpdate,
    service: PostService = Depends(get_post_service),
    loaders: Loaders = Depends(get_loaders),
) -> PostResponse:
    """Update a post and bump its version."""
    return await serialize_post(await service.update(post_id, data), loaders)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: uuid.UUID,
    service: PostService = Depends(get_post_service),
) -> None:
    """Soft-delete a post."""
    await service.soft_delete(post_id)


@router.put("/{post_id}/categories/{category_id}", response_model=PostResponse)
async def add_post_category(
    post_id: uuid.UUID,
    category_id: int,
    service: PostService = Depends(get_post_service),
    loaders: Loaders = Depends(get_loaders),
) -> PostResponse:
    """Assign a category to a post."""
    return await serialize_post(await service.add_category(post_id, category_id), loaders)
