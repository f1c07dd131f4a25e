"""Shared plumbing for everything that talks to the database.

Learn: Every statement runs under a fixed timeout, and every storage-engine
exception is translated here, at the boundary:
- IntegrityError on a unique column → ConflictError
- any other IntegrityError (foreign key, check) → StoreError
- asyncio timeout → StoreError ("timed out")
- any other SQLAlchemyError → StoreError
So handlers only ever see the tasktrack.errors taxonomy, and a database
outage during authentication surfaces as a 500, not as a 401.
"""

import asyncio
import uuid
from typing import Any, Awaitable, Optional, TypeVar

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.errors import ConflictError, StoreError

logger = structlog.get_logger()

T = TypeVar("T")

UNIQUE_VIOLATION = "23505"  # Postgres sqlstate


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for a duplicate value on a unique column (as opposed to FK/CHECK)."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


def parse_id(value: Any) -> Optional[uuid.UUID]:
    """Coerce a path/token id to a UUID. Returns None when it is not one."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


class StoreBase:
    """Session wrapper with timeout and error translation."""

    def __init__(self, db: AsyncSession, timeout: float = 10.0):
        self.db = db
        self.timeout = timeout

    async def _guard(self, op: Awaitable[T], conflict_message: Optional[str] = None) -> T:
        try:
            return await asyncio.wait_for(op, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("tasktrack.store.timeout", timeout=self.timeout)
            raise StoreError("Database operation timed out") from e
        except IntegrityError as e:
            await self.db.rollback()
            if is_unique_violation(e):
                raise ConflictError(conflict_message) from e
            logger.error("tasktrack.store.integrity_error", error=str(e.orig))
            raise StoreError("Database constraint violated") from e
        except SQLAlchemyError as e:
            logger.error("tasktrack.store.error", error=str(e))
            raise StoreError() from e

    async def _execute(self, stmt, conflict_message: Optional[str] = None):
        return await self._guard(self.db.execute(stmt), conflict_message)

    async def _scalar(self, stmt):
        return await self._guard(self.db.scalar(stmt))

    async def _commit(self, conflict_message: Optional[str] = None) -> None:
        await self._guard(self.db.commit(), conflict_message)

    async def _rollback(self) -> None:
        await self._guard(self.db.rollback())
