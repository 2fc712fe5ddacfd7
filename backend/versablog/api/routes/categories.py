"""Category API Routes

FastAPI routes for the category tree.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from versablog.api.dependencies import get_category_service, get_loaders
from versablog.api.resolvers import (
    build_category_tree,
    serialize_categories,
    serialize_category,
)
from versablog.core.loaders import Loaders
from versablog.models import (
    CategoryCreate,
    CategoryResponse,
    CategoryTreeResponse,
    CategoryUpdate,
)
from versablog.services import CategoryService

router = APIRouter()


@router.get("", response_model=List[CategoryResponse])
async def list_categories(
    include_inactive: bool = Query(False, description="Include inactive categories"),
    parent_id: Optional[int] = Query(None, description="Only children of this category"),
    roots_only: bool = Query(False, description="Only top-level categories"),
    service: CategoryService = Depends(get_category_service),
    loaders: Loaders = Depends(get_loaders),
) -> List[CategoryResponse]:
    """List categories ordered by sort order, then name."""
    categories = await service.list_categories(
        include_inactive=include_inactive,
        parent_id=parent_id,
        roots_only=roots_only,
    )
    return await serialize_categories(categories, loaders)


@router.get("/tree", response_model=List[CategoryTreeResponse])
async def get_category_tree(
    service: CategoryService = Depends(get_category_service),
    loaders: Loaders = Depends(get_loaders),
) -> List[CategoryTreeResponse]:
    """Get the active categories as a forest."""
    roots = await service.list_categories(roots_only=True)
    return await build_category_tree(roots, loaders)


@router.get("/slug/{slug}", response_model=CategoryResponse)
async def get_category_by_slug(
    slug: str,
    service: CategoryService = Depends(get_category_service),
    loaders: Loaders = Depends(get_loaders),
) -> CategoryResponse:
    """Get a category by its slug."""
    return await serialize_category(await service.get_by_slug(slug), loaders)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
    loaders: Loaders = Depends(get_loaders),
) -> CategoryResponse:
    """Create a category, optionally under a parent."""
    category = await service.create(data)
    return await serialize_category(category, loaders)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
    loaders: Loaders = Depends(get_loaders),
) -> CategoryResponse:
    """Get a single category."""
    return await serialize_category(await service.get(category_id), loaders)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
    loaders: Loaders = Depends(get_loaders),
) -> CategoryResponse:
    """Update a category; send ``parent_id: null`` to make it a root."""
    category = await service.update(category_id, data)
    return await serialize_category(category, loaders)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    service: CategoryService = Depends(get_category_service),
) -> None:
    """Delete a category that no post or subcategory references."""
    await service.delete(category_id)
