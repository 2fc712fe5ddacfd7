"""Tests for the batching loaders."""

import asyncio

import pytest

from versablog.core.loaders import DataLoader, Loaders
from versablog.middleware import BatchFetchException
from versablog.models import PostStatus


class RecordingBatch:
    """Batch function over a dict that records every call."""

    def __init__(self, rows: dict, fail: bool = False):
        self.rows = rows
        self.fail = fail
        self.calls = []

    async def __call__(self, keys):
        self.calls.append(list(keys))
        if self.fail:
            raise ConnectionError("database unavailable")
        return [self.rows.get(key) for key in keys]


@pytest.mark.unit
class TestDataLoader:
    async def test_concurrent_loads_share_one_batch(self):
        rows = {i: f"category-{i}" for i in range(1, 5)}
        batch = RecordingBatch(rows)
        loader = DataLoader(batch, name="category")
        keys = [1, 2, 3, 4, 5] * 10

        results = await asyncio.gather(*(loader.load(key) for key in keys))

        assert len(batch.calls) == 1
        assert sorted(batch.calls[0]) == [1, 2, 3, 4, 5]
        assert results == [rows.get(key) for key in keys]
        assert results[4] is None

    async def test_keys_keep_first_requested_order(self):
        batch = RecordingBatch({})
        loader = DataLoader(batch, name="category")

        await asyncio.gather(loader.load(3), loader.load(1), loader.load(3), loader.load(2))

        assert batch.calls == [[3, 1, 2]]

    async def test_cached_key_is_not_fetched_again(self):
        batch = RecordingBatch({1: "a"})
        loader = DataLoader(batch, name="category")

        assert await loader.load(1) == "a"
        assert await loader.load(1) == "a"
        assert batch.calls == [[1]]

    async def test_sequential_ticks_dispatch_separately(self):
        batch = RecordingBatch({1: "a", 2: "b"})
        loader = DataLoader(batch, name="category")

        await loader.load(1)
        await loader.load(2)

        assert batch.calls == [[1], [2]]
        assert loader.dispatch_count == 2

    async def test_load_many_preserves_order(self):
        loader = DataLoader(RecordingBatch({1: "a", 2: "b"}), name="category")
        assert await loader.load_many([2, 1, 2]) == ["b", "a", "b"]

    async def test_primed_value_skips_fetch(self):
        batch = RecordingBatch({})
        loader = DataLoader(batch, name="category")
        loader.prime(1, "primed")

        assert await loader.load(1) == "primed"
        assert batch.calls == []

    async def test_failure_reaches_every_caller(self):
        batch = RecordingBatch({}, fail=True)
        loader = DataLoader(batch, name="category")

        results = await asyncio.gather(
            loader.load(1), loader.load(2), loader.load(1), return_exceptions=True
        )

        assert len(results) == 3
        assert all(isinstance(result, BatchFetchException) for result in results)
        assert results[0].status_code == 503
        assert isinstance(results[0].cause, ConnectionError)
        assert results[0].details["loader"] == "category"

    async def test_failed_keys_are_retried(self):
        batch = RecordingBatch({1: "a"}, fail=True)
        loader = DataLoader(batch, name="category")

        with pytest.raises(BatchFetchException):
            await loader.load(1)

        batch.fail = False
        assert await loader.load(1) == "a"
        assert len(batch.calls) == 2

    async def test_wrong_result_length_is_a_batch_failure(self):
        async def short_batch(keys):
            return keys[:-1]

        loader = DataLoader(short_batch, name="broken")
        results = await asyncio.gather(loader.load(1), loader.load(2), return_exceptions=True)

        assert all(isinstance(result, BatchFetchException) for result in results)
        assert isinstance(results[0].cause, ValueError)


@pytest.mark.integration
class TestLoaders:
    async def test_category_loader_returns_none_for_missing(self, loaders, make_category):
        first = await make_category(name="First")
        second = await make_category(name="Second")

        results = await asyncio.gather(
            *(loaders.category.load(key) for key in [first.id, second.id, 999] * 10)
        )

        assert loaders.category.dispatch_count == 1
        assert [c.id if c else None for c in results[:3]] == [first.id, second.id, None]

    async def test_post_relations_in_one_batch_each(
        self, loaders, make_category, make_tag, make_post
    ):
        news = await make_category(name="News", sort_order=1)
        tech = await make_category(name="Tech", sort_order=0)
        inactive = await make_category(name="Old", is_active=False)
        python = await make_tag(name="python")
        asyncio_tag = await make_tag(name="asyncio")
        first = await make_post(categories=[news, tech, inactive], tags=[python, asyncio_tag])
        second = await make_post(categories=[news])

        categories = await asyncio.gather(
            loaders.post_categories.load(first.id),
            loaders.post_categories.load(second.id),
        )
        tags = await asyncio.gather(
            loaders.post_tags.load(first.id),
            loaders.post_tags.load(second.id),
        )

        assert loaders.post_categories.dispatch_count == 1
        assert [c.name for c in categories[0]] == ["Tech", "News"]
        assert [c.name for c in categories[1]] == ["News"]
        assert [t.name for t in tags[0]] == ["asyncio", "python"]
        assert tags[1] == []

    async def test_post_categories_prime_category_loader(self, loaders, make_category, make_post):
        news = await make_category(name="News")
        post = await make_post(categories=[news])

        await loaders.post_categories.load(post.id)
        await loaders.category.load(news.id)

        assert loaders.category.dispatch_count == 0

    async def test_post_count_only_counts_live_published_posts(
        self, loaders, make_category, make_post
    ):
        news = await make_category(name="News")
        empty = await make_category(name="Empty")
        await make_post(categories=[news], published=True)
        await make_post(categories=[news], published=True)
        await make_post(categories=[news], status=PostStatus.DRAFT)
        await make_post(categories=[news], published=True, is_deleted=True)

        counts = await asyncio.gather(
            loaders.category_post_count.load(news.id),
            loaders.category_post_count.load(empty.id),
        )

        assert counts == [2, 0]

    async def test_children_are_active_and_ordered(self, loaders, make_category):
        root = await make_category(name="Root")
        await make_category(name="Beta", parent_id=root.id, sort_order=1)
        await make_category(name="Alpha", parent_id=root.id, sort_order=1)
        await make_category(name="First", parent_id=root.id, sort_order=0)
        await make_category(name="Hidden", parent_id=root.id, is_active=False)

        children = await loaders.category_children.load(root.id)

        assert [c.name for c in children] == ["First", "Alpha", "Beta"]

    async def test_category_level(self, loaders, make_category):
        root = await make_category(name="Root")
        child = await make_category(name="Child", parent_id=root.id)
        grandchild = await make_category(name="Grandchild", parent_id=child.id)

        levels = await asyncio.gather(
            loaders.category_level(root),
            loaders.category_level(child),
            loaders.category_level(grandchild),
        )

        assert levels == [0, 1, 2]
        assert await loaders.category_parent(grandchild) is child

    async def test_separate_loaders_do_not_share_cache(self, db_session, make_category):
        category = await make_category(name="Fresh")

        first = Loaders(db_session)
        second = Loaders(db_session)
        await first.category.load(category.id)
        await second.category.load(category.id)

        assert first.category.dispatch_count == 1
        assert second.category.dispatch_count == 1
