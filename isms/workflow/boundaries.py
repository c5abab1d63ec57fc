"""Boundary service - every mutation belongs to the Boundaries phase."""

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import BoundaryRow
from isms.models.common import PhaseKey, new_uuid7
from isms.repositories.base import constraint_guard
from isms.repositories.boundaries import BoundaryRepository
from isms.workflow.errors import DuplicateBoundaryNameError, NotFoundOrForbidden
from isms.workflow.phase_guard import PhaseGuard, unmarks_phase

logger = logging.getLogger(__name__)

_IMMUTABLE = frozenset({"id", "project_id", "user_id", "created_at"})


class BoundaryService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._guard = PhaseGuard(session)
        self._repo = BoundaryRepository(session)

    async def list_for_project(self, project_id: UUID) -> list[BoundaryRow]:
        return await self._repo.list_for_project(project_id)

    async def get(self, project_id: UUID, boundary_id: UUID) -> BoundaryRow:
        row = await self._repo.get_in_project(project_id, boundary_id)
        if row is None:
            raise NotFoundOrForbidden("Boundary not found")
        return row

    @unmarks_phase(PhaseKey.BOUNDARIES)
    async def create(self, project_id: UUID, *, user_id: UUID, name: str, type: str,
                     **fields: Any) -> BoundaryRow:
        if await self._repo.find_by_name(project_id, name) is not None:
            raise DuplicateBoundaryNameError()
        async with constraint_guard(self._session):
            row = await self._repo.create(
                boundary_id=new_uuid7(), project_id=project_id,
                user_id=user_id, name=name, type=type, **fields,
            )
        return row

    @unmarks_phase(PhaseKey.BOUNDARIES)
    async def update(self, project_id: UUID, boundary_id: UUID,
                     changes: Mapping[str, Any], *, user_id: UUID) -> BoundaryRow:
        row = await self._repo.get_in_project(project_id, boundary_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Boundary not found or you do not have permission to update it"
            )
        updates = {k: v for k, v in changes.items() if k not in _IMMUTABLE}
        new_name = updates.get("name")
        if new_name is not None and new_name != row.name:
            if await self._repo.find_by_name(project_id, new_name) is not None:
                raise DuplicateBoundaryNameError()
        async with constraint_guard(self._session):
            await self._repo.update(row, **updates)
        return row

    @unmarks_phase(PhaseKey.BOUNDARIES)
    async def delete(self, project_id: UUID, boundary_id: UUID, *, user_id: UUID) -> None:
        row = await self._repo.get_in_project(project_id, boundary_id)
        if row is None or row.user_id != user_id:
            raise NotFoundOrForbidden(
                "Boundary not found or you do not have permission to delete it"
            )
        await self._repo.delete(row)
        logger.info("Deleted boundary %s from project %s", boundary_id, project_id)
