"""Service layer: transactional operations over one request's session."""

from versablog.services.base import BaseService
from versablog.services.category_service import CategoryService
from versablog.services.post_service import PostService
from versablog.services.tag_service import TagService

__all__ = [
    "BaseService",
    "CategoryService",
    "PostService",
    "TagService",
]
