"""Post operations: versioned writes, soft delete, filtered listing."""

import logging
import uuid
from datetime import datetime
from typing import Optional, Union

from sqlalchemy import delete, func, select

from versablog.config import settings
from versablog.core.filters import compile_filter, search_rank
from versablog.core.slugs import derive_identifier, resolve_unique_slug
from versablog.middleware.error_handler import ConflictException, NotFoundException
from versablog.models import (
    Category,
    Post,
    PostCategory,
    PostCreate,
    PostFilter,
    PostStatus,
    PostSummary,
    PostTag,
    PostUpdate,
    Tag,
    utcnow,
)
from versablog.services.base import BaseService

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = Post.__table__.c.slug.type.length

# Columns that cannot be cleared by an explicit null
REQUIRED_FIELDS = ("title", "content", "status")


def _is_slug_conflict(exc: ConflictException) -> bool:
    return bool(exc.details) and exc.details.get("conflicting_field") == "slug"


def published_at_for(status: PostStatus, current: Optional[Post] = None) -> Optional[datetime]:
    """Publication timestamp implied by ``status``.

    A post that stays published keeps its original timestamp; entering
    the published state stamps the current time; any other state clears it.
    """
    if status is not PostStatus.PUBLISHED:
        return None
    if current is not None and current.status is PostStatus.PUBLISHED and current.published_at:
        return current.published_at
    return utcnow()


class PostService(BaseService):
    """Creates, edits and lists posts.

    Post slugs are unique among non-deleted posts. A colliding slug gets
    the first free numeric suffix, and a write that still loses the race
    to a concurrent one is retried with a freshly resolved slug.
    """

    resource_type = "post"

    async def get(self, post_id: uuid.UUID) -> Post:
        result = await self.session.execute(
            select(Post).where(Post.id == post_id, Post.is_deleted.is_(False))
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundException(
                message="Post not found",
                resource_type="post",
                resource_id=post_id,
            )
        return post

    async def get_by_slug(self, slug: str) -> Post:
        result = await self.session.execute(
            select(Post).where(Post.slug == slug, Post.is_deleted.is_(False))
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundException(
                message="Post not found",
                resource_type="post",
                resource_id=slug,
            )
        return post

    async def _slug_exists(self, slug: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
        query = select(Post.id).where(Post.slug == slug, Post.is_deleted.is_(False))
        if exclude_id is not None:
            query = query.where(Post.id != exclude_id)
        return (await self.session.execute(query.limit(1))).first() is not None

    async def _resolve_slug(
        self,
        title: str,
        requested: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> str:
        candidate = derive_identifier(
            requested if requested else title, max_length=SLUG_MAX_LENGTH
        )
        return await resolve_unique_slug(
            candidate, self._slug_exists, exclude_id, max_length=SLUG_MAX_LENGTH
        )

    async def _check_categories(self, category_ids: list[int]) -> list[int]:
        unique_ids = list(dict.fromkeys(category_ids))
        if not unique_ids:
            return []
        result = await self.session.execute(
            select(Category.id).where(
                Category.id.in_(unique_ids), Category.is_active.is_(True)
            )
        )
        found = set(result.scalars())
        missing = [category_id for category_id in unique_ids if category_id not in found]
        if missing:
            raise NotFoundException(
                message="One or more categories not found or inactive",
                resource_type="category",
                resource_id=", ".join(str(category_id) for category_id in missing),
            )
        return unique_ids

    async def _check_tags(self, tag_ids: list[int]) -> list[int]:
        unique_ids = list(dict.fromkeys(tag_ids))
        if not unique_ids:
            return []
        result = await self.session.execute(select(Tag.id).where(Tag.id.in_(unique_ids)))
        found = set(result.scalars())
        missing = [tag_id for tag_id in unique_ids if tag_id not in found]
        if missing:
            raise NotFoundException(
                message="One or more tags not found",
                resource_type="tag",
                resource_id=", ".join(str(tag_id) for tag_id in missing),
            )
        return unique_ids

    async def _replace_categories(self, post_id: uuid.UUID, category_ids: list[int]) -> None:
        await self.session.execute(delete(PostCategory).where(PostCategory.post_id == post_id))
        self.session.add_all(
            PostCategory(post_id=post_id, category_id=category_id)
            for category_id in category_ids
        )

    async def _replace_tags(self, post_id: uuid.UUID, tag_ids: list[int]) -> None:
        await self.session.execute(delete(PostTag).where(PostTag.post_id == post_id))
        self.session.add_all(PostTag(post_id=post_id, tag_id=tag_id) for tag_id in tag_ids)

    async def _with_slug_retry(self, write, description: str):
        """Run ``write`` in a transaction, retrying on slug unique violations."""
        attempts = settings.slug_max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                async with self.transaction():
                    return await write()
            except ConflictException as exc:
                if not _is_slug_conflict(exc) or attempt == attempts:
                    raise
                logger.warning(
                    f"Slug collision while {description}, retrying ({attempt}/{attempts - 1})"
                )

    async def create(self, data: PostCreate) -> Post:
        async def write() -> Post:
            category_ids = await self._check_categories(data.category_ids)
            tag_ids = await self._check_tags(data.tag_ids)
            post = Post(
                id=uuid.uuid4(),
                title=data.title,
                content=data.content,
                slug=await self._resolve_slug(data.title, data.slug),
                status=data.status,
                published_at=published_at_for(data.status),
                author_id=data.author_id,
                version=1,
            )
            self.session.add(post)
            await self.session.flush()
            await self._replace_categories(post.id, category_ids)
            await self._replace_tags(post.id, tag_ids)
            return post

        post = await self._with_slug_retry(write, "creating a post")
        await self.session.refresh(post)
        logger.info(f"Created post {post.id} ('{post.slug}')")
        return post

    async def update(self, post_id: uuid.UUID, data: PostUpdate) -> Post:
        changes = data.model_dump(exclude_unset=True)
        category_ids = changes.pop("category_ids", None)
        tag_ids = changes.pop("tag_ids", None)
        requested_slug = changes.pop("slug", None)
        for field in REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]

        async def write() -> Post:
            post = await self.get(post_id)
            if category_ids is not None:
                await self._replace_categories(post.id, await self._check_categories(category_ids))
            if tag_ids is not None:
                await self._replace_tags(post.id, await self._check_tags(tag_ids))

            title = changes.get("title", post.title)
            if requested_slug is not None or title != post.title:
                post.slug = await self._resolve_slug(title, requested_slug, exclude_id=post.id)

            if "status" in changes:
                post.published_at = published_at_for(changes["status"], post)
            for field, value in changes.items():
                setattr(post, field, value)
            post.version += 1
            return post

        post = await self._with_slug_retry(write, f"updating post {post_id}")
        await self.session.refresh(post)
        logger.info(f"Updated post {post.id} to version {post.version}")
        return post

    async def soft_delete(self, post_id: uuid.UUID) -> None:
        """Hide a post from every default read and free its slug."""
        async with self.transaction():
            post = await self.get(post_id)
            post.is_deleted = True
            post.deleted_at = utcnow()
        logger.info(f"Soft-deleted post {post_id}")

    async def add_category(self, post_id: uuid.UUID, category_id: int) -> Post:
        """Assign one more category to a post; assigning it twice is a no-op."""
        async with self.transaction():
            post = await self.get(post_id)
            await self._check_categories([category_id])
            existing = await self.session.get(PostCategory, (post.id, category_id))
            if existing is None:
                self.session.add(PostCategory(post_id=post.id, category_id=category_id))
                post.version += 1

        await self.session.refresh(post)
        return post

    async def list_posts(
        self,
        filters: Union[PostFilter, dict, None] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> tuple[list[Post], int]:
        """One page of matching posts plus the total match count.

        Full-text searches are ordered by relevance first; otherwise the
        newest posts come first.
        """
        page_size = min(page_size or settings.default_page_size, settings.max_page_size)
        search_options = dict(
            full_text=self.dialect_name == "postgresql",
            min_full_text_length=settings.search_full_text_min_length,
        )
        predicate = compile_filter(filters, **search_options)
        rank = search_rank(filters, **search_options)

        ordering = [Post.created_at.desc(), Post.id]
        if rank is not None:
            ordering.insert(0, rank.desc())

        total = (
            await self.session.execute(select(func.count()).select_from(Post).where(predicate))
        ).scalar_one()
        result = await self.session.execute(
            select(Post)
            .where(predicate)
            .order_by(*ordering)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars()), total

    async def summary(self) -> PostSummary:
        result = await self.session.execute(
            select(Post.status, func.count())
            .where(Post.is_deleted.is_(False))
            .group_by(Post.status)
        )
        counts = {status: count for status, count in result.all()}
        return PostSummary(
            total_posts=sum(counts.values()),
            drafts=counts.get(PostStatus.DRAFT, 0),
            published=counts.get(PostStatus.PUBLISHED, 0),
            pending=counts.get(PostStatus.PENDING, 0),
            archived=counts.get(PostStatus.ARCHIVED, 0),
        )

    async def recent(self, limit: int = 5) -> list[Post]:
        """Latest published posts."""
        result = await self.session.execute(
            select(Post)
            .where(Post.is_deleted.is_(False), Post.status == PostStatus.PUBLISHED)
            .order_by(Post.published_at.desc(), Post.id)
            .limit(limit)
        )
        return list(result.scalars())
