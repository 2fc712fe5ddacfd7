"""Content integrity core.

- slugs: identifier derivation and unique post slugs
- hierarchy: category parent validation
- deletion: guarded category deletion
- loaders: request-scoped batching loaders
- filters: post filter compilation
"""

from versablog.core.deletion import guard_deletion
from versablog.core.filters import compile_filter
from versablog.core.hierarchy import validate_parent
from versablog.core.loaders import DataLoader, Loaders
from versablog.core.slugs import derive_identifier, resolve_unique_slug

__all__ = [
    "guard_deletion",
    "compile_filter",
    "validate_parent",
    "DataLoader",
    "Loaders",
    "derive_identifier",
    "resolve_unique_slug",
]
