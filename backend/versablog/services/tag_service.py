"""Tag operations."""

import logging
import re
from typing import Optional

from sqlalchemy import and_, func, select

from versablog.core.slugs import derive_identifier
from versablog.middleware.error_handler import ConflictException, NotFoundException
from versablog.models import Post, PostTag, Tag, TagCreate, TagUpdate
from versablog.services.base import BaseService

logger = logging.getLogger(__name__)


def normalize_tag_name(name: str) -> str:
    """Lower-case a tag name and collapse its whitespace."""
    return re.sub(r"\s+", " ", name.strip()).lower()


class TagService(BaseService):
    """Tags are flat; their names are stored lower-case and never suffixed."""

    resource_type = "tag"

    async def get(self, tag_id: int) -> Tag:
        tag = await self.session.get(Tag, tag_id)
        if tag is None:
            raise NotFoundException(
                message="Tag not found",
                resource_type="tag",
                resource_id=tag_id,
            )
        return tag

    async def list_tags(self) -> list[Tag]:
        result = await self.session.execute(select(Tag).order_by(Tag.name))
        return list(result.scalars())

    async def list_with_counts(self) -> list[tuple[Tag, int]]:
        """Tags with the number of non-deleted posts carrying them."""
        result = await self.session.execute(
            select(Tag, func.count(Post.id))
            .outerjoin(PostTag, PostTag.tag_id == Tag.id)
            .outerjoin(Post, and_(Post.id == PostTag.post_id, Post.is_deleted.is_(False)))
            .group_by(Tag.id)
            .order_by(Tag.name)
        )
        return [(tag, count) for tag, count in result.all()]

    async def _ensure_unique(
        self,
        name: Optional[str] = None,
        slug: Optional[str] = None,
        exclude_id: Optional[int] = None,
    ) -> None:
        for field, column, value in (("name", Tag.name, name), ("slug", Tag.slug, slug)):
            if value is None:
                continue
            query = select(Tag.id).where(column == value)
            if exclude_id is not None:
                query = query.where(Tag.id != exclude_id)
            if (await self.session.execute(query)).first() is not None:
                raise ConflictException(
                    message=f"Tag {field} '{value}' already exists",
                    conflicting_field=field,
                    value=value,
                )

    async def create(self, data: TagCreate) -> Tag:
        name = normalize_tag_name(data.name)
        slug = data.slug or derive_identifier(name, max_length=50)

        async with self.transaction():
            await self._ensure_unique(name=name, slug=slug)
            tag = Tag(name=name, slug=slug, description=data.description, color=data.color)
            self.session.add(tag)

        await self.session.refresh(tag)
        logger.info(f"Created tag {tag.id} ('{tag.slug}')")
        return tag

    async def update(self, tag_id: int, data: TagUpdate) -> Tag:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes:
            changes["name"] = normalize_tag_name(changes["name"])

        async with self.transaction():
            tag = await self.get(tag_id)
            await self._ensure_unique(
                name=changes["name"] if changes.get("name", tag.name) != tag.name else None,
                slug=changes["slug"] if changes.get("slug", tag.slug) != tag.slug else None,
                exclude_id=tag.id,
            )
            for field, value in changes.items():
                setattr(tag, field, value)

        await self.session.refresh(tag)
        logger.info(f"Updated tag {tag.id} ('{tag.slug}')")
        return tag

    async def delete(self, tag_id: int) -> None:
        """Delete a tag; its post assignments go with it."""
        async with self.transaction():
            tag = await self.get(tag_id)
            await self.session.delete(tag)
        logger.info(f"Deleted tag {tag_id}")
