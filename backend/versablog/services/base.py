"""Shared transaction handling for the service layer."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from versablog.middleware.error_handler import integrity_error_to_conflict

logger = logging.getLogger(__name__)

# Key of the PostgreSQL advisory lock serializing category tree changes
CATEGORY_TREE_LOCK_KEY = 0x76626374


class BaseService:
    """Base class for services working on one request's session."""

    resource_type = "resource"

    def __init__(self, session: AsyncSession):
        self.session = session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Commit on success, roll back on any error.

        Unique-index violations surface as ``ConflictException``; the
        index is the final word on uniqueness, the checks done before
        writing only give a friendlier error in the common case.
        """
        try:
            yield
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise integrity_error_to_conflict(exc, self.resource_type) from exc
        except BaseException:
            await self.session.rollback()
            raise

    async def lock_category_tree(self) -> None:
        """Serialize tree mutations until the transaction ends (PostgreSQL only)."""
        if self.dialect_name != "postgresql":
            return
        await self.session.execute(
            text("SELECT pg_advisory_xact_lock(:key)"),
            {"key": CATEGORY_TREE_LOCK_KEY},
        )
