"""Slug derivation and de-duplication."""

import logging
import re
import unicodedata
from typing import Any, Awaitable, Callable, Optional

from versablog.middleware.error_handler import DerivationError

logger = logging.getLogger(__name__)

ExistsFn = Callable[[str, Optional[Any]], Awaitable[bool]]

_STRIP = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-{2,}")


def derive_identifier(text: str, field: str = "slug", max_length: int = 100) -> str:
    """Convert free text to a URL-safe identifier.

    Letters are folded to ASCII where a decomposition exists, then the
    text is lower-cased, everything but letters, digits, whitespace and
    hyphens is dropped, whitespace runs become one hyphen, hyphen runs
    collapse and hyphens are trimmed from both ends. Results longer than
    ``max_length`` are cut at the last hyphen that fits.

    Args:
        text: Title or name to derive from.
        field: Field name reported when derivation fails.
        max_length: Longest identifier returned.

    Returns:
        The normalized identifier.

    Raises:
        DerivationError: If nothing is left after normalization.
    """
    normalized = unicodedata.normalize("NFKD", text or "")
    normalized = normalized.encode("ascii", "ignore").decode("ascii")
    normalized = _STRIP.sub("", normalized.lower())
    normalized = _WHITESPACE.sub("-", normalized.strip())
    normalized = _HYPHENS.sub("-", normalized).strip("-")
    normalized = truncate_identifier(normalized, max_length)
    if not normalized:
        raise DerivationError(text, field=field)
    return normalized


def truncate_identifier(identifier: str, max_length: int) -> str:
    """Cut ``identifier`` to ``max_length``, preferring the last hyphen that fits."""
    if len(identifier) <= max_length:
        return identifier
    cut = identifier[:max_length]
    return (cut.rsplit("-", 1)[0] if "-" in cut else cut).strip("-")


async def resolve_unique_slug(
    candidate: str,
    exists: ExistsFn,
    exclude_id: Optional[Any] = None,
    max_length: int = 100,
) -> str:
    """Return ``candidate`` or the first free ``candidate-N``.

    The base is shortened before a suffix is appended so the suffixed
    slug still fits in ``max_length``.

    Args:
        candidate: Desired slug.
        exists: Async check ``exists(slug, exclude_id)`` against storage.
        exclude_id: Id of the entity being saved, so re-saving it keeps its slug.
        max_length: Longest slug returned.

    Returns:
        A slug for which ``exists`` returned False.
    """
    candidate = truncate_identifier(candidate, max_length)
    if not await exists(candidate, exclude_id):
        return candidate

    counter = 1
    while True:
        suffix = f"-{counter}"
        base = truncate_identifier(candidate, max_length - len(suffix)) or candidate[:1]
        suffixed = f"{base}{suffix}"
        if not await exists(suffixed, exclude_id):
            logger.debug(f"Slug '{candidate}' taken, using '{suffixed}'")
            return suffixed
        counter += 1
