"""Category operations: create, update, guarded delete and listing."""

import logging
from typing import Optional

from sqlalchemy import select

from versablog.config import settings
from versablog.core.deletion import guard_deletion
from versablog.core.hierarchy import validate_parent
from versablog.core.slugs import derive_identifier
from versablog.middleware.error_handler import ConflictException, NotFoundException
from versablog.models import Category, CategoryCreate, CategoryUpdate
from versablog.services.base import BaseService

logger = logging.getLogger(__name__)


class CategoryService(BaseService):
    """Keeps the category tree acyclic and names and slugs unique.

    Category slugs never get a numeric suffix: a colliding name or slug
    is a conflict the editor has to resolve.
    """

    resource_type = "category"

    async def get(self, category_id: int) -> Category:
        category = await self.session.get(Category, category_id)
        if category is None:
            raise NotFoundException(
                message="Category not found",
                resource_type="category",
                resource_id=category_id,
            )
        return category

    async def get_by_slug(self, slug: str) -> Category:
        result = await self.session.execute(select(Category).where(Category.slug == slug))
        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundException(
                message="Category not found",
                resource_type="category",
                resource_id=slug,
            )
        return category

    async def list_categories(
        self,
        include_inactive: bool = False,
        parent_id: Optional[int] = None,
        roots_only: bool = False,
    ) -> list[Category]:
        """Categories ordered by sort order, then name."""
        query = select(Category)
        if not include_inactive:
            query = query.where(Category.is_active.is_(True))
        if roots_only:
            query = query.where(Category.parent_id.is_(None))
        elif parent_id is not None:
            query = query.where(Category.parent_id == parent_id)
        result = await self.session.execute(
            query.order_by(Category.sort_order, Category.name)
        )
        return list(result.scalars())

    async def _fetch_node(self, category_id: int) -> Optional[Category]:
        return await self.session.get(Category, category_id)

    async def _subtree_height(self, category_id: int) -> int:
        """Levels below a category, counted one query per level.

        Counting stops past ``category_max_depth`` since any deeper
        subtree cannot be moved anywhere.
        """
        height = 0
        level = [category_id]
        seen = {category_id}
        while level and height <= settings.category_max_depth:
            result = await self.session.execute(
                select(Category.id).where(Category.parent_id.in_(level))
            )
            level = [child_id for child_id in result.scalars() if child_id not in seen]
            if level:
                height += 1
                seen.update(level)
        return height

    async def _check_parent(self, target_id: Optional[int], parent_id: Optional[int]) -> None:
        await self.lock_category_tree()
        subtree_height = 0
        if target_id is not None and parent_id is not None:
            subtree_height = await self._subtree_height(target_id)
        await validate_parent(
            target_id,
            parent_id,
            self._fetch_node,
            max_depth=settings.category_max_depth,
            subtree_height=subtree_height,
        )

    async def _ensure_unique(
        self,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> None:
        if name is not None:
            query = select(Category.id).where(
                Category.name == name, Category.is_active.is_(True)
            )
            if exclude_id is not None:
                query = query.where(Category.id != exclude_id)
            if (await self.session.execute(query)).first() is not None:
                raise ConflictException(
                    message=f"Category name '{name}' already exists",
                    conflicting_field="name",
                    value=name,
                )
        if slug is not None:
            query = select(Category.id).where(Category.slug == slug)
            if exclude_id is not None:
                query = query.where(Category.id != exclude_id)
            if (await self.session.execute(query)).first() is not None:
                raise ConflictException(
                    message=f"Category slug '{slug}' already exists",
                    conflicting_field="slug",
                    value=slug,
                )

    async def create(self, data: CategoryCreate) -> Category:
        slug = data.slug or derive_identifier(data.name)

        async with self.transaction():
            await self._ensure_unique(
                name=data.name if data.is_active else None,
                slug=slug,
            )
            if data.parent_id is not None:
                await self._check_parent(None, data.parent_id)

            category = Category(
                name=data.name,
                slug=slug,
                description=data.description,
                parent_id=data.parent_id,
                sort_order=data.sort_order,
                is_active=data.is_active,
                color=data.color,
                icon=data.icon,
            )
            self.session.add(category)

        await self.session.refresh(category)
        logger.info(f"Created category {category.id} ('{category.slug}')")
        return category

    async def update(self, category_id: int, data: CategoryUpdate) -> Category:
        changes = data.model_dump(exclude_unset=True)

        async with self.transaction():
            category = await self.get(category_id)

            becomes_active = changes.get("is_active", category.is_active)
            name = changes.get("name") or category.name
            if becomes_active and (name != category.name or not category.is_active):
                await self._ensure_unique(name=name, exclude_id=category.id)

            slug = changes.get("slug")
            if slug is not None and slug != category.slug:
                await self._ensure_unique(slug=slug, exclude_id=category.id)

            if "parent_id" in changes and changes["parent_id"] != category.parent_id:
                await self._check_parent(category.id, changes["parent_id"])

            for field, value in changes.items():
                if field in ("name", "slug", "sort_order", "is_active") and value is None:
                    continue
                setattr(category, field, value)

        await self.session.refresh(category)
        logger.info(f"Updated category {category.id} ('{category.slug}')")
        return category

    async def delete(self, category_id: int) -> None:
        async with self.transaction():
            await self.lock_category_tree()
            await guard_deletion(self.session, category_id)
