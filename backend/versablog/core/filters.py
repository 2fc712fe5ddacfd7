"""Compilation of post filters into a single SQL predicate."""

from typing import Optional, Union

from sqlalchemy import ColumnElement, and_, func, literal_column, or_, select

from versablog.models import Post, PostCategory, PostFilter, PostTag, search_document


def _ts_query(text: str):
    return func.plainto_tsquery(literal_column("'simple'"), text)


def _uses_full_text(text: str, full_text: bool, min_full_text_length: int) -> bool:
    return full_text and len(text) >= min_full_text_length


def _as_filter(filters: Union[PostFilter, dict, None]) -> PostFilter:
    if filters is None:
        return PostFilter()
    if isinstance(filters, dict):
        return PostFilter.model_validate(filters)
    return filters


def search_clause(
    search_text: str,
    full_text: bool = False,
    min_full_text_length: int = 3,
) -> ColumnElement[bool]:
    """Match posts whose title or content contains ``search_text``.

    Long enough texts use the PostgreSQL full-text index when
    ``full_text`` is set; everything else falls back to a
    case-insensitive substring match with wildcards escaped.
    """
    text = search_text.strip()
    if _uses_full_text(text, full_text, min_full_text_length):
        return search_document().op("@@")(_ts_query(text))
    return or_(
        Post.title.icontains(text, autoescape=True),
        Post.content.icontains(text, autoescape=True),
    )


def compile_filter(
    filters: Union[PostFilter, dict, None] = None,
    full_text: bool = False,
    min_full_text_length: int = 3,
) -> ColumnElement[bool]:
    """Build one conjunctive predicate over ``Post`` from optional filters.

    Soft-deleted posts are always excluded. Every other field adds a
    clause only when present; an empty tag list or blank search text
    counts as absent.

    Args:
        filters: A ``PostFilter``, an equivalent dict, or None.
        full_text: Whether the database supports the full-text path.
        min_full_text_length: Shortest search text sent to full-text search.

    Returns:
        A boolean clause usable in ``select(Post).where(...)``.
    """
    filters = _as_filter(filters)

    clauses: list[ColumnElement[bool]] = [Post.is_deleted.is_(False)]

    if filters.search_text:
        clauses.append(
            search_clause(filters.search_text, full_text, min_full_text_length)
        )

    if filters.status is not None:
        clauses.append(Post.status == filters.status)

    if filters.category_id is not None:
        clauses.append(
            select(PostCategory.post_id).where(
                PostCategory.post_id == Post.id,
                PostCategory.category_id == filters.category_id,
            ).exists()
        )

    if filters.tag_ids:
        clauses.append(
            select(PostTag.post_id).where(
                PostTag.post_id == Post.id,
                PostTag.tag_id.in_(filters.tag_ids),
            ).exists()
        )

    if filters.published_after is not None:
        clauses.append(Post.published_at >= filters.published_after)

    if filters.published_before is not None:
        clauses.append(Post.published_at <= filters.published_before)

    if filters.author_id is not None:
        clauses.append(Post.author_id == filters.author_id)

    return and_(*clauses)


def search_rank(
    filters: Union[PostFilter, dict, None] = None,
    full_text: bool = False,
    min_full_text_length: int = 3,
) -> Optional[ColumnElement[float]]:
    """Relevance of each post to the search text, or None without a full-text search."""
    filters = _as_filter(filters)
    text = (filters.search_text or "").strip()
    if not text or not _uses_full_text(text, full_text, min_full_text_length):
        return None
    return func.ts_rank(search_document(), _ts_query(text))
