"""Enum definitions for VersaBlog models."""

import enum


class PostStatus(str, enum.Enum):
    """Publication lifecycle of a post."""

    DRAFT = "draft"
    PUBLISHED = "published"
    PENDING = "pending"
    ARCHIVED = "archived"
