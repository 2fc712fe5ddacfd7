"""Tag model for flexible post labeling."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utcnow

if TYPE_CHECKING:
    from .post import Post


class Tag(Base):
    """Flat labels for posts, next to the hierarchical category tree.

    Attributes:
        id: Primary key identifier.
        name: Tag name, normalized to lower case (unique).
        slug: URL-friendly identifier (unique).
        description: Optional description.
        color: Hex color code for visual display.
        created_at: When the tag was created.
    """

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Tag name"
    )
    slug: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="URL-friendly identifier for the tag"
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Optional description of the tag"
    )
    color: Mapped[str] = mapped_column(
        String(7),
        default="#6B7280",
        doc="Hex color code for visual display in the UI"
    )
    created_at: Mapped[datetime] = mapped_column(
        default=func.now(),
        nullable=False,
        doc="When the tag was created"
    )

    posts: Mapped[list["Post"]] = relationship(
        "Post",
        secondary="post_tags",
        lazy="raise",
        viewonly=True,
    )

    # Indexes
    __table_args__ = (
        Index("uq_tags_name", "name", unique=True),
        Index("uq_tags_slug", "slug", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name='{self.name}', color='{self.color}')>"


class PostTag(Base):
    """Association table linking posts to tags.

    Attributes:
        post_id: Foreign key to post.
        tag_id: Foreign key to tag.
        assigned_at: When the tag was assigned.
    """

    __tablename__ = "post_tags"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
        doc="Reference to the post"
    )
    tag_id: Mapped[int] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        doc="Reference to the tag"
    )
    assigned_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        nullable=False,
        doc="When the tag was assigned to the post"
    )

    # Indexes
    __table_args__ = (
        Index("idx_post_tags_tag", "tag_id"),
    )

    def __repr__(self) -> str:
        return f"<PostTag(post_id={self.post_id}, tag_id={self.tag_id})>"
