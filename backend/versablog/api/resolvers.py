"""Turn ORM rows into API responses, resolving relations through loaders.

Relations are declared ``lazy="raise"`` on the models, so every related
row a response embeds comes from the request's ``Loaders``. Sibling
resolutions run under ``asyncio.gather`` so their loads share a batch.
"""

import asyncio
from typing import Sequence

from versablog.core.loaders import Loaders
from versablog.models import (
    Category,
    CategoryResponse,
    CategoryTreeResponse,
    Post,
    PostResponse,
    TagResponse,
)


async def serialize_category(category: Category, loaders: Loaders) -> CategoryResponse:
    level, post_count = await asyncio.gather(
        loaders.category_level(category),
        loaders.category_post_count.load(category.id),
    )
    return CategoryResponse.model_validate(category).model_copy(
        update={"level": level, "post_count": post_count}
    )


async def serialize_categories(
    categories: Sequence[Category], loaders: Loaders
) -> list[CategoryResponse]:
    return list(
        await asyncio.gather(*(serialize_category(c, loaders) for c in categories))
    )


async def _tree_node(category: Category, level: int, loaders: Loaders) -> CategoryTreeResponse:
    children, post_count = await asyncio.gather(
        loaders.category_children.load(category.id),
        loaders.category_post_count.load(category.id),
    )
    if level >= loaders.max_depth:
        children = []
    subtrees = await asyncio.gather(
        *(_tree_node(child, level + 1, loaders) for child in children)
    )
    return CategoryTreeResponse.model_validate(category).model_copy(
        update={"level": level, "post_count": post_count, "children": list(subtrees)}
    )


async def build_category_tree(
    roots: Sequence[Category], loaders: Loaders
) -> list[CategoryTreeResponse]:
    """Forest of active categories below ``roots``, one batch per tree level."""
    return list(await asyncio.gather(*(_tree_node(root, 0, loaders) for root in roots)))


async def serialize_post(post: Post, loaders: Loaders) -> PostResponse:
    categories, tags = await asyncio.gather(
        loaders.post_categories.load(post.id),
        loaders.post_tags.load(post.id),
    )
    return PostResponse(
        id=post.id,
        title=post.title,
        content=post.content,
        slug=post.slug,
        status=post.status,
        author_id=post.author_id,
        published_at=post.published_at,
        version=post.version,
        created_at=post.created_at,
        updated_at=post.updated_at,
        categories=await serialize_categories(categories, loaders),
        tags=[TagResponse.model_validate(tag) for tag in tags],
    )


async def serialize_posts(posts: Sequence[Post], loaders: Loaders) -> list[PostResponse]:
    return list(await asyncio.gather(*(serialize_post(post, loaders) for post in posts)))
