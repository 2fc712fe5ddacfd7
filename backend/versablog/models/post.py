"""Post model for versioned, soft-deletable blog content."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Enum, Index, Integer, String, Text, Uuid,
    func, literal_column, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin
from .enums import PostStatus

if TYPE_CHECKING:
    from .category import Category
    from .tag import Tag


class Post(Base, TimestampMixin):
    """Blog posts organized by categories and tags.

    Posts are never physically removed by normal operations: deletion
    sets ``is_deleted`` and every default read excludes those rows. The
    slug is unique only among non-deleted posts so a deleted post frees
    its slug for reuse.

    Attributes:
        id: UUID primary key.
        title: Post title.
        content: Post body.
        slug: URL-friendly identifier, derived from the title when absent.
        status: Publication status.
        published_at: Set if and only if the post is published.
        author_id: Opaque reference to the author in the external user store.
        version: Starts at 1 and increments on every successful update.
        is_deleted: Soft-delete marker.
        deleted_at: When the post was soft-deleted.
        created_at: When this record was created.
        updated_at: When this record was last modified.
    """

    __tablename__ = "posts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="Unique identifier for the post"
    )
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Title of the post"
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Main post body"
    )
    slug: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="URL-friendly identifier, unique among non-deleted posts"
    )
    status: Mapped[PostStatus] = mapped_column(
        Enum(
            PostStatus,
            name="post_status",
            native_enum=False,
            length=20,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        nullable=False,
        default=PostStatus.DRAFT,
        doc="Publication status"
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(
        nullable=True,
        doc="When the post was published; null unless status is published"
    )
    author_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        doc="Author reference in the external user store"
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Incremented on every successful update"
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Soft-delete marker"
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        nullable=True,
        doc="When the post was soft-deleted"
    )

    categories: Mapped[list["Category"]] = relationship(
        "Category",
        secondary="post_categories",
        lazy="raise",
        viewonly=True,
    )
    tags: Mapped[list["Tag"]] = relationship(
        "Tag",
        secondary="post_tags",
        lazy="raise",
        viewonly=True,
    )

    # Constraints and indexes
    __table_args__ = (
        CheckConstraint(
            "(status = 'published' AND published_at IS NOT NULL) OR "
            "(status <> 'published' AND published_at IS NULL)",
            name="published_at_matches_status",
        ),
        Index(
            "uq_posts_slug_active",
            "slug",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
        Index("idx_posts_status", "status"),
        Index("idx_posts_published_at", "published_at"),
        Index("idx_posts_author", "author_id"),
        Index("idx_posts_is_deleted", "is_deleted"),
    )

    def __repr__(self) -> str:
        title_preview = self.title[:30] + "..." if self.title and len(self.title) > 30 else self.title
        return f"<Post(id={self.id}, status={self.status.value}, title='{title_preview}')>"


def search_document():
    """Full-text document expression over a post's title and content.

    The GIN index below and the search filter share this expression so
    PostgreSQL can answer the filter from the index.
    """
    table = Post.__table__
    return func.to_tsvector(
        literal_column("'simple'"),
        func.coalesce(table.c.title, "") + " " + func.coalesce(table.c.content, ""),
    )


Index(
    "idx_posts_search",
    search_document(),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")
