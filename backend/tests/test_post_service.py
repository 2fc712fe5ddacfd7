"""Tests for post operations."""

import uuid
from datetime import timedelta

import pytest
from sqlalchemy import select

from versablog.config import settings
from versablog.middleware import ConflictException, NotFoundException
from versablog.models import (
    Post,
    PostCategory,
    PostCreate,
    PostStatus,
    PostTag,
    PostUpdate,
    utcnow,
)
from versablog.services.post_service import published_at_for

pytestmark = pytest.mark.integration


async def category_ids_of(session, post_id) -> set:
    result = await session.execute(
        select(PostCategory.category_id).where(PostCategory.post_id == post_id)
    )
    return set(result.scalars())


async def tag_ids_of(session, post_id) -> set:
    result = await session.execute(select(PostTag.tag_id).where(PostTag.post_id == post_id))
    return set(result.scalars())


@pytest.mark.unit
class TestPublishedAt:
    def test_non_published_statuses_clear_it(self):
        for status in (PostStatus.DRAFT, PostStatus.PENDING, PostStatus.ARCHIVED):
            assert published_at_for(status) is None

    def test_entering_published_stamps_now(self):
        draft = Post(status=PostStatus.DRAFT, published_at=None)
        assert published_at_for(PostStatus.PUBLISHED, draft) is not None

    def test_staying_published_keeps_timestamp(self):
        stamp = utcnow() - timedelta(days=3)
        live = Post(status=PostStatus.PUBLISHED, published_at=stamp)
        assert published_at_for(PostStatus.PUBLISHED, live) == stamp


class TestCreatePost:
    async def test_same_title_gets_numbered_slugs(self, post_service):
        slugs = []
        for _ in range(3):
            post = await post_service.create(PostCreate(title="Hello World", content="Body"))
            slugs.append(post.slug)

        assert slugs == ["hello-world", "hello-world-1", "hello-world-2"]

    async def test_defaults(self, post_service):
        post = await post_service.create(PostCreate(title="First Post", content="Body"))

        assert isinstance(post.id, uuid.UUID)
        assert post.status is PostStatus.DRAFT
        assert post.published_at is None
        assert post.version == 1
        assert post.is_deleted is False
        assert post.created_at is not None

    async def test_published_post_gets_timestamp(self, post_service):
        post = await post_service.create(
            PostCreate(title="Launch", content="Body", status=PostStatus.PUBLISHED)
        )
        assert post.published_at is not None

    async def test_given_slug_is_normalized_and_deduplicated(self, post_service):
        first = await post_service.create(PostCreate(title="A", content="Body", slug="My Slug"))
        second = await post_service.create(PostCreate(title="B", content="Body", slug="my-slug"))

        assert first.slug == "my-slug"
        assert second.slug == "my-slug-1"

    async def test_long_title_slugs_fit_the_column(self, post_service):
        first = await post_service.create(PostCreate(title="a" * 100, content="Body"))
        second = await post_service.create(PostCreate(title="a" * 100, content="Body"))

        assert first.slug == "a" * 100
        assert second.slug == "a" * 98 + "-1"

    async def test_long_worded_title_slugs_fit_the_column(self, post_service):
        title = " ".join(["word"] * 40)
        slugs = [
            (await post_service.create(PostCreate(title=title, content="Body"))).slug
            for _ in range(3)
        ]

        assert all(len(slug) <= 100 for slug in slugs)
        assert len(set(slugs)) == 3
        assert slugs[1].endswith("-1") and slugs[2].endswith("-2")

    async def test_assigns_categories_and_tags(
        self, post_service, db_session, make_category, make_tag
    ):
        news = await make_category(name="News")
        python = await make_tag(name="python")

        post = await post_service.create(
            PostCreate(title="Tagged", content="Body", category_ids=[news.id], tag_ids=[python.id])
        )

        assert await category_ids_of(db_session, post.id) == {news.id}
        assert await tag_ids_of(db_session, post.id) == {python.id}

    async def test_inactive_category_is_rejected(self, post_service, db_session, make_category):
        hidden = await make_category(name="Hidden", is_active=False)

        with pytest.raises(NotFoundException):
            await post_service.create(
                PostCreate(title="Nope", content="Body", category_ids=[hidden.id])
            )

        result = await db_session.execute(select(Post))
        assert result.scalars().all() == []

    async def test_unknown_tag_is_rejected(self, post_service):
        with pytest.raises(NotFoundException) as exc_info:
            await post_service.create(PostCreate(title="Nope", content="Body", tag_ids=[404]))
        assert exc_info.value.details["resource_type"] == "tag"

    async def test_deleted_post_frees_its_slug(self, post_service):
        first = await post_service.create(PostCreate(title="Reuse Me", content="Body"))
        await post_service.soft_delete(first.id)

        second = await post_service.create(PostCreate(title="Reuse Me", content="Body"))
        assert second.slug == "reuse-me"


class TestSlugRetry:
    async def test_lost_race_is_retried_with_next_suffix(self, post_service, monkeypatch):
        existing = await post_service.create(PostCreate(title="Race", content="Body"))
        assert existing.slug == "race"
        original = post_service._slug_exists
        calls = []

        async def stale_check(slug, exclude_id=None):
            # The first check misses the row a concurrent writer just committed
            calls.append(slug)
            if len(calls) == 1:
                return False
            return await original(slug, exclude_id)

        monkeypatch.setattr(post_service, "_slug_exists", stale_check)

        post = await post_service.create(PostCreate(title="Race", content="Body"))

        assert post.slug == "race-1"
        assert len(calls) == 3

    async def test_gives_up_after_max_retries(self, post_service, monkeypatch):
        await post_service.create(PostCreate(title="Race", content="Body"))

        async def always_free(slug, exclude_id=None):
            return False

        monkeypatch.setattr(post_service, "_slug_exists", always_free)

        with pytest.raises(ConflictException) as exc_info:
            await post_service.create(PostCreate(title="Race", content="Body"))
        assert exc_info.value.details["conflicting_field"] == "slug"
        assert settings.slug_max_retries >= 1


class TestUpdatePost:
    async def test_version_increments(self, post_service):
        post = await post_service.create(PostCreate(title="Versioned", content="v1"))

        post = await post_service.update(post.id, PostUpdate(content="v2"))
        assert post.version == 2
        post = await post_service.update(post.id, PostUpdate(content="v3"))
        assert post.version == 3
        assert post.content == "v3"

    async def test_title_change_rederives_slug(self, post_service):
        await post_service.create(PostCreate(title="New Name", content="Body"))
        post = await post_service.create(PostCreate(title="Old Name", content="Body"))

        updated = await post_service.update(post.id, PostUpdate(title="New Name"))
        assert updated.slug == "new-name-1"

    async def test_unchanged_title_keeps_own_slug(self, post_service):
        post = await post_service.create(PostCreate(title="Stable", content="Body"))

        updated = await post_service.update(post.id, PostUpdate(title="Stable", content="Edited"))
        assert updated.slug == "stable"

    async def test_publication_lifecycle(self, post_service):
        post = await post_service.create(PostCreate(title="Lifecycle", content="Body"))

        post = await post_service.update(post.id, PostUpdate(status=PostStatus.PUBLISHED))
        first_published = post.published_at
        assert first_published is not None

        post = await post_service.update(post.id, PostUpdate(content="Typo fix"))
        assert post.published_at == first_published

        post = await post_service.update(post.id, PostUpdate(status=PostStatus.PUBLISHED))
        assert post.published_at == first_published

        post = await post_service.update(post.id, PostUpdate(status=PostStatus.ARCHIVED))
        assert post.published_at is None

    async def test_explicit_null_clears_author(self, post_service):
        post = await post_service.create(PostCreate(title="Owned", content="Body", author_id=7))

        updated = await post_service.update(post.id, PostUpdate.model_validate({"author_id": None}))
        assert updated.author_id is None

    async def test_omitted_author_is_unchanged(self, post_service):
        post = await post_service.create(PostCreate(title="Owned", content="Body", author_id=7))

        updated = await post_service.update(post.id, PostUpdate(content="Edited"))
        assert updated.author_id == 7

    async def test_null_title_is_ignored(self, post_service):
        post = await post_service.create(PostCreate(title="Keep Title", content="Body"))

        updated = await post_service.update(
            post.id, PostUpdate.model_validate({"title": None, "content": "Edited"})
        )
        assert updated.title == "Keep Title"
        assert updated.slug == "keep-title"
        assert updated.content == "Edited"

    async def test_replaces_categories(self, post_service, db_session, make_category):
        news = await make_category(name="News")
        tech = await make_category(name="Tech")
        post = await post_service.create(
            PostCreate(title="Moving", content="Body", category_ids=[news.id])
        )

        await post_service.update(post.id, PostUpdate(category_ids=[tech.id]))

        assert await category_ids_of(db_session, post.id) == {tech.id}

    async def test_failed_update_leaves_post_unchanged(self, post_service):
        post = await post_service.create(PostCreate(title="Keep", content="Body"))
        post_id = post.id

        with pytest.raises(NotFoundException):
            await post_service.update(post_id, PostUpdate(content="Changed", tag_ids=[404]))

        reloaded = await post_service.get(post_id)
        assert reloaded.content == "Body"
        assert reloaded.version == 1

    async def test_deleted_post_cannot_be_updated(self, post_service):
        post = await post_service.create(PostCreate(title="Gone", content="Body"))
        await post_service.soft_delete(post.id)

        with pytest.raises(NotFoundException):
            await post_service.update(post.id, PostUpdate(content="Zombie"))


class TestPostQueries:
    async def test_soft_delete_hides_post(self, post_service):
        post = await post_service.create(PostCreate(title="Hidden", content="Body"))

        await post_service.soft_delete(post.id)

        with pytest.raises(NotFoundException):
            await post_service.get(post.id)
        with pytest.raises(NotFoundException):
            await post_service.get_by_slug("hidden")
        items, total = await post_service.list_posts()
        assert (items, total) == ([], 0)

    async def test_add_category(self, post_service, db_session, make_category):
        news = await make_category(name="News")
        post = await post_service.create(PostCreate(title="Categorize", content="Body"))

        post = await post_service.add_category(post.id, news.id)
        assert post.version == 2
        assert await category_ids_of(db_session, post.id) == {news.id}

        post = await post_service.add_category(post.id, news.id)
        assert post.version == 2

    async def test_add_missing_category(self, post_service):
        post = await post_service.create(PostCreate(title="Categorize", content="Body"))

        with pytest.raises(NotFoundException):
            await post_service.add_category(post.id, 404)

    async def test_list_paginates(self, post_service, make_post):
        for _ in range(5):
            await make_post()

        first_page, total = await post_service.list_posts(page=1, page_size=2)
        last_page, _ = await post_service.list_posts(page=3, page_size=2)

        assert total == 5
        assert len(first_page) == 2
        assert len(last_page) == 1

    async def test_list_applies_filters(self, post_service, make_post):
        await make_post(title="Live", published=True)
        await make_post(title="Draft")

        items, total = await post_service.list_posts({"status": "published"})
        assert total == 1
        assert [p.title for p in items] == ["Live"]

    async def test_ranked_search_orders_by_rank_first(self, post_service, make_post, monkeypatch):
        await make_post(title="Zeta python")
        await make_post(title="Alpha python")
        await make_post(title="Gardening")
        monkeypatch.setattr(
            "versablog.services.post_service.search_rank",
            lambda filters, **kwargs: Post.title,
        )

        items, total = await post_service.list_posts({"search_text": "python"})

        assert total == 2
        assert [p.title for p in items] == ["Zeta python", "Alpha python"]

    async def test_summary(self, post_service, make_post):
        await make_post(published=True)
        await make_post(published=True)
        await make_post()
        await make_post(status=PostStatus.PENDING)
        await make_post(published=True, is_deleted=True)

        summary = await post_service.summary()

        assert summary.total_posts == 4
        assert summary.published == 2
        assert summary.drafts == 1
        assert summary.pending == 1
        assert summary.archived == 0

    async def test_recent_returns_latest_published(self, post_service, make_post):
        now = utcnow()
        await make_post(title="Older", published=True, published_at=now - timedelta(days=2))
        await make_post(title="Newest", published=True, published_at=now)
        await make_post(title="Draft")

        recent = await post_service.recent(limit=1)
        assert [p.title for p in recent] == ["Newest"]
