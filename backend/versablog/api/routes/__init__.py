"""API route modules."""

from versablog.api.routes.categories import router as categories_router
from versablog.api.routes.posts import router as posts_router
from versablog.api.routes.tags import router as tags_router

__all__ = ["categories_router", "posts_router", "tags_router"]
