"""Shared repository helpers for the ISMS persistence layer.

Repositories call add()/flush()/refresh() only - never commit().
The session dependency handles commit/rollback (Unit-of-Work).
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from isms.models.common import utc_now
from isms.workflow.errors import translate_integrity_error


def apply_changes(row: Any, changes: dict[str, Any]) -> None:
    """Copy ``changes`` onto an ORM row and bump its ``updated_at``."""
    for field, value in changes.items():
        setattr(row, field, value)
    if hasattr(row, "updated_at"):
        row.updated_at = utc_now()


@asynccontextmanager
async def constraint_guard(session: AsyncSession) -> AsyncIterator[None]:
    """Run writes in a SAVEPOINT and translate constraint violations.

    A violation rolls back only the savepoint, so the surrounding unit of
    work stays usable.
    """
    try:
        async with session.begin_nested():
            yield
    except IntegrityError as exc:
        raise translate_integrity_error(exc) from exc
