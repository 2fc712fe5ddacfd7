"""FastAPI dependencies shared by the API routes."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from versablog.core.loaders import Loaders
from versablog.database import get_session
from versablog.services import CategoryService, PostService, TagService

__all__ = [
    "get_session",
    "get_loaders",
    "get_category_service",
    "get_tag_service",
    "get_post_service",
]


async def get_loaders(session: AsyncSession = Depends(get_session)) -> Loaders:
    """Fresh loaders for every request, so no cached row outlives it."""
    return Loaders(session)


async def get_category_service(session: AsyncSession = Depends(get_session)) -> CategoryService:
    return CategoryService(session)


async def get_tag_service(session: AsyncSession = Depends(get_session)) -> TagService:
    return TagService(session)


async def get_post_service(session: AsyncSession = Depends(get_session)) -> PostService:
    return PostService(session)
