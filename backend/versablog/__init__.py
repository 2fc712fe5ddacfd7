"""VersaBlog Backend Application.

A content management backend that keeps a blog's category tree, tags
and posts consistent: acyclic bounded-depth categories, unique slugs,
guarded deletes and batched relation loading.

Modules:
    - core: Slugs, hierarchy validation, deletion guard, loaders, filters
    - services: Transactional category, tag and post operations
    - api: REST routes, dependencies and response resolvers
    - middleware: Error handling and request processing
    - models: SQLAlchemy models and Pydantic schemas
    - config: Application configuration management
    - main: FastAPI application entry point
"""

__version__ = "1.0.0"
__author__ = "VersaBlog Team"
