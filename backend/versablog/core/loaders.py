"""Request-scoped batching loaders for relational fields.

Resolving the categories of 20 posts one post at a time costs 20 queries.
A ``DataLoader`` instead collects every ``load`` issued during one tick of
the event loop and fetches them with a single ``batch_load_fn`` call, then
hands each caller the value for its own key.

Loaders cache per key for their whole lifetime and are meant to live for
exactly one request: build a fresh ``Loaders`` per request and pass it
down explicitly.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from versablog.config import settings
from versablog.core.hierarchy import ancestor_ids
from versablog.middleware.error_handler import BatchFetchException
from versablog.models import Category, Post, PostCategory, PostStatus, PostTag, Tag

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

BatchLoadFn = Callable[[list[K]], Awaitable[Sequence[V]]]


class DataLoader(Generic[K, V]):
    """Coalesces individual loads into batched fetches.

    ``batch_load_fn`` receives the deduplicated keys of one batch in
    first-requested order and must return one value per key, in the same
    order. Missing rows should come back as ``None`` or an empty list.
    """

    def __init__(self, batch_load_fn: BatchLoadFn, name: str):
        self.name = name
        self.dispatch_count = 0
        self._batch_load_fn = batch_load_fn
        self._cache: dict[K, asyncio.Future] = {}
        self._queue: list[K] = []
        self._tasks: set[asyncio.Task] = set()

    def load(self, key: K) -> "asyncio.Future[V]":
        """Request the value for ``key``; await the returned future."""
        future = self._cache.get(key)
        if future is not None:
            return future

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._cache[key] = future
        self._queue.append(key)
        if len(self._queue) == 1:
            loop.call_soon(self._dispatch)
        return future

    async def load_many(self, keys: Sequence[K]) -> list[V]:
        """Load several keys, preserving their order."""
        return list(await asyncio.gather(*(self.load(key) for key in keys)))

    def prime(self, key: K, value: V) -> None:
        """Seed the cache with an already fetched value."""
        if key in self._cache:
            return
        future = asyncio.get_running_loop().create_future()
        future.set_result(value)
        self._cache[key] = future

    def _dispatch(self) -> None:
        keys, self._queue = self._queue, []
        if not keys:
            return
        task = asyncio.get_running_loop().create_task(self._run_batch(keys))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_batch(self, keys: list[K]) -> None:
        self.dispatch_count += 1
        logger.debug(f"Loader '{self.name}' fetching batch of {len(keys)}")
        try:
            values = list(await self._batch_load_fn(keys))
            if len(values) != len(keys):
                raise ValueError(
                    f"batch function returned {len(values)} values for {len(keys)} keys"
                )
        except Exception as exc:
            logger.error(f"Loader '{self.name}' batch of {len(keys)} failed: {exc}")
            error = exc if isinstance(exc, BatchFetchException) else BatchFetchException(
                self.name, keys, exc
            )
            for key in keys:
                # Evicted so a later load retries instead of reusing the failure
                future = self._cache.pop(key, None)
                if future is not None and not future.done():
                    future.set_exception(error)
            return

        for key, value in zip(keys, values):
            future = self._cache[key]
            if not future.done():
                future.set_result(value)


class Loaders:
    """The set of loaders serving one request.

    All loaders share the request's session. An ``AsyncSession`` does not
    allow concurrent statements, so batch fetches take turns on a lock.
    """

    def __init__(self, session: AsyncSession, max_depth: Optional[int] = None):
        self.session = session
        self.max_depth = max_depth or settings.category_max_depth
        self._lock = asyncio.Lock()

        self.category: DataLoader[int, Optional[Category]] = DataLoader(
            self._categories_by_id, name="category"
        )
        self.category_children: DataLoader[int, list[Category]] = DataLoader(
            self._children_by_parent, name="category_children"
        )
        self.category_post_count: DataLoader[int, int] = DataLoader(
            self._post_counts, name="category_post_count"
        )
        self.post_categories: DataLoader[uuid.UUID, list[Category]] = DataLoader(
            self._categories_by_post, name="post_categories"
        )
        self.post_tags: DataLoader[uuid.UUID, list[Tag]] = DataLoader(
            self._tags_by_post, name="post_tags"
        )

    async def _execute(self, statement):
        async with self._lock:
            return await self.session.execute(statement)

    async def _categories_by_id(self, keys: list[int]) -> list[Optional[Category]]:
        result = await self._execute(select(Category).where(Category.id.in_(keys)))
        by_id = {category.id: category for category in result.scalars()}
        return [by_id.get(key) for key in keys]

    async def _children_by_parent(self, keys: list[int]) -> list[list[Category]]:
        result = await self._execute(
            select(Category)
            .where(Category.parent_id.in_(keys), Category.is_active.is_(True))
            .order_by(Category.sort_order, Category.name)
        )
        grouped: dict[int, list[Category]] = defaultdict(list)
        for category in result.scalars():
            grouped[category.parent_id].append(category)
            self.category.prime(category.id, category)
        return [grouped.get(key, []) for key in keys]

    async def _post_counts(self, keys: list[int]) -> list[int]:
        result = await self._execute(
            select(PostCategory.category_id, func.count(Post.id))
            .join(Post, Post.id == PostCategory.post_id)
            .where(
                PostCategory.category_id.in_(keys),
                Post.is_deleted.is_(False),
                Post.status == PostStatus.PUBLISHED,
            )
            .group_by(PostCategory.category_id)
        )
        counts = {category_id: count for category_id, count in result.all()}
        return [counts.get(key, 0) for key in keys]

    async def _categories_by_post(self, keys: list[uuid.UUID]) -> list[list[Category]]:
        result = await self._execute(
            select(PostCategory.post_id, Category)
            .join(Category, Category.id == PostCategory.category_id)
            .where(PostCategory.post_id.in_(keys), Category.is_active.is_(True))
            .order_by(Category.sort_order, Category.name)
        )
        grouped: dict[uuid.UUID, list[Category]] = defaultdict(list)
        for post_id, category in result.all():
            grouped[post_id].append(category)
            self.category.prime(category.id, category)
        return [grouped.get(key, []) for key in keys]

    async def _tags_by_post(self, keys: list[uuid.UUID]) -> list[list[Tag]]:
        result = await self._execute(
            select(PostTag.post_id, Tag)
            .join(Tag, Tag.id == PostTag.tag_id)
            .where(PostTag.post_id.in_(keys))
            .order_by(Tag.name)
        )
        grouped: dict[uuid.UUID, list[Tag]] = defaultdict(list)
        for post_id, tag in result.all():
            grouped[post_id].append(tag)
        return [grouped.get(key, []) for key in keys]

    async def category_parent(self, category: Category) -> Optional[Category]:
        if category.parent_id is None:
            return None
        return await self.category.load(category.parent_id)

    async def category_level(self, category: Category) -> int:
        """Depth of a category in the tree; roots are level 0."""
        return len(await ancestor_ids(category, self.category.load, self.max_depth))
