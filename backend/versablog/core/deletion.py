"""Guarded category deletion."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from versablog.middleware.error_handler import (
    DependencyException,
    DependencyReason,
    NotFoundException,
)
from versablog.models import Category, Post, PostCategory

logger = logging.getLogger(__name__)


async def count_category_posts(session: AsyncSession, category_id: int) -> int:
    """Non-deleted posts that reference the category, in any status."""
    result = await session.execute(
        select(func.count())
        .select_from(PostCategory)
        .join(Post, Post.id == PostCategory.post_id)
        .where(PostCategory.category_id == category_id, Post.is_deleted.is_(False))
    )
    return result.scalar_one()


async def count_subcategories(session: AsyncSession, category_id: int) -> int:
    """Categories, active or not, whose parent is the category."""
    result = await session.execute(
        select(func.count()).select_from(Category).where(Category.parent_id == category_id)
    )
    return result.scalar_one()


async def guard_deletion(session: AsyncSession, category_id: int) -> None:
    """Delete a category only when nothing references it.

    The caller owns the transaction: the counts and the delete run on
    the same session so they commit or roll back together.

    Raises:
        NotFoundException: If the category does not exist.
        DependencyException: ``has_posts`` or ``has_subcategories`` with
            the exact blocking count.
    """
    category = await session.get(Category, category_id)
    if category is None:
        raise NotFoundException(
            message="Category not found",
            resource_type="category",
            resource_id=category_id,
        )

    post_count = await count_category_posts(session, category_id)
    if post_count > 0:
        logger.warning(f"Blocked deletion of category {category_id}: {post_count} posts")
        raise DependencyException(
            DependencyReason.HAS_POSTS, post_count, resource_id=category_id
        )

    child_count = await count_subcategories(session, category_id)
    if child_count > 0:
        logger.warning(
            f"Blocked deletion of category {category_id}: {child_count} subcategories"
        )
        raise DependencyException(
            DependencyReason.HAS_SUBCATEGORIES, child_count, resource_id=category_id
        )

    await session.delete(category)
    await session.flush()
    logger.info(f"Deleted category {category_id} ('{category.slug}')")
