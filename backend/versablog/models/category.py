"""Category model for hierarchical post organization."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from .post import Post


class Category(Base, TimestampMixin):
    """Hierarchical categories for organizing and filtering posts.

    Categories form a forest through the self-referential parent_id
    column. The parent link is a weak reference: deleting a parent is
    guarded rather than cascaded, and the database only nulls the link
    if a row disappears underneath it.

    Attributes:
        id: Primary key identifier.
        name: Human-readable category name (unique among active categories).
        slug: URL-friendly identifier (unique).
        description: Optional description of the category.
        parent_id: Reference to parent category for hierarchy.
        sort_order: Display order among siblings.
        is_active: Inactive categories are hidden from default listings.
        color: Hex color code for display.
        icon: Icon identifier for display.
        created_at: When the category was created.
        updated_at: When the category was last modified.
    """

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Human-readable category name"
    )
    slug: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="URL-friendly identifier for the category"
    )
    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Optional description of the category"
    )
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        doc="Reference to parent category for hierarchical structure"
    )
    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Display order within the same hierarchy level"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Whether the category appears in default listings"
    )
    color: Mapped[Optional[str]] = mapped_column(
        String(7),
        nullable=True,
        doc="Hex color code for visual display in the UI"
    )
    icon: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Icon identifier for visual display in the UI"
    )

    # Relations are resolved through the request loaders, never lazily
    parent: Mapped[Optional["Category"]] = relationship(
        "Category",
        remote_side="Category.id",
        lazy="raise",
        viewonly=True,
    )
    posts: Mapped[list["Post"]] = relationship(
        "Post",
        secondary="post_categories",
        lazy="raise",
        viewonly=True,
    )

    # Indexes
    __table_args__ = (
        Index("uq_categories_slug", "slug", unique=True),
        Index(
            "uq_categories_name_active",
            "name",
            unique=True,
            postgresql_where=text("is_active = true"),
            sqlite_where=text("is_active = 1"),
        ),
        Index("idx_categories_parent", "parent_id"),
        Index("idx_categories_active_sort", "is_active", "sort_order"),
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}', slug='{self.slug}')>"


class PostCategory(Base):
    """Association table linking posts to categories.

    Attributes:
        post_id: Foreign key to post.
        category_id: Foreign key to category.
        assigned_at: When the category was assigned.
    """

    __tablename__ = "post_categories"

    post_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("posts.id", ondelete="CASCADE"),
        primary_key=True,
        doc="Reference to the post"
    )
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="CASCADE"),
        primary_key=True,
        doc="Reference to the category"
    )
    assigned_at: Mapped[datetime] = mapped_column(
        default=utcnow,
        nullable=False,
        doc="When the category was assigned to the post"
    )

    # Indexes
    __table_args__ = (
        Index("idx_post_categories_category", "category_id"),
    )

    def __repr__(self) -> str:
        return f"<PostCategory(post_id={self.post_id}, category_id={self.category_id})>"
