"""Category tree integrity checks.

A parent assignment is valid when walking up from the proposed parent
reaches a root without meeting the category being saved, within a
bounded number of hops. The walk only needs a way to fetch one category
by id, so it runs the same against the database, a request loader or a
plain dict in tests.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from versablog.middleware.error_handler import HierarchyException, HierarchyViolation

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 10


class TreeNode(Protocol):
    id: Any
    parent_id: Optional[Any]


FetchNode = Callable[[Any], Awaitable[Optional[TreeNode]]]


async def validate_parent(
    target_id: Optional[Any],
    parent_id: Optional[Any],
    fetch: FetchNode,
    max_depth: int = DEFAULT_MAX_DEPTH,
    subtree_height: int = 0,
) -> None:
    """Check that ``parent_id`` may become the parent of ``target_id``.

    Args:
        target_id: Category being saved, or None for a new category.
        parent_id: Proposed parent, or None for a root.
        fetch: Async lookup of a category by id, returning None if missing.
        max_depth: Maximum hops from any category up to its root.
        subtree_height: Levels below the target that move with it.

    Raises:
        HierarchyException: With reason ``self_reference``, ``not_found``,
            ``cycle`` or ``depth_exceeded``.
    """
    if parent_id is None:
        return

    def reject(reason: HierarchyViolation) -> HierarchyException:
        logger.warning(
            f"Rejected parent {parent_id} for category {target_id}: {reason.value}"
        )
        return HierarchyException(reason, category_id=target_id, parent_id=parent_id)

    if target_id is not None and parent_id == target_id:
        raise reject(HierarchyViolation.SELF_REFERENCE)

    current = await fetch(parent_id)
    if current is None:
        raise reject(HierarchyViolation.NOT_FOUND)

    visited = set() if target_id is None else {target_id}
    # Hops from the deepest descendant of the target to its new parent
    hops = subtree_height + 1
    while True:
        if current.id in visited:
            raise reject(HierarchyViolation.CYCLE)
        visited.add(current.id)

        if hops > max_depth:
            raise reject(HierarchyViolation.DEPTH_EXCEEDED)

        if current.parent_id is None:
            return

        hops += 1
        if hops > max_depth:
            raise reject(HierarchyViolation.DEPTH_EXCEEDED)

        ancestor = await fetch(current.parent_id)
        if ancestor is None:
            # Dangling link left behind by a deleted ancestor
            logger.warning(
                f"Category {current.id} points at missing parent {current.parent_id}"
            )
            return
        current = ancestor


async def ancestor_ids(
    category: TreeNode,
    fetch: FetchNode,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[Any]:
    """Ids of a category's ancestors, nearest first.

    Stops at a root, a dangling link, a revisited node or after
    ``max_depth`` hops, so corrupt data never loops.
    """
    ancestors: list[Any] = []
    seen = {category.id}
    parent_id = category.parent_id
    while parent_id is not None and len(ancestors) < max_depth:
        if parent_id in seen:
            logger.warning(f"Cycle detected above category {category.id}")
            break
        parent = await fetch(parent_id)
        if parent is None:
            break
        ancestors.append(parent.id)
        seen.add(parent.id)
        parent_id = parent.parent_id
    return ancestors
