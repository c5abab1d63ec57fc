"""Project service - ownership, derived status and phase completion."""

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isms.config.settings import PhaseCompletionPolicy
from isms.db.tables import ProjectRow
from isms.models.common import PhaseKey, ProjectStatus, new_uuid7
from isms.models.project import Project, ProjectStats, ProjectWithStatus
from isms.repositories.projects import ProjectRepository
from isms.workflow.errors import NotFoundOrForbidden
from isms.workflow.phase_guard import PhaseGuard
from isms.workflow.project_status import (
    completion_percentage,
    derive_status,
    phase_progress,
    project_stats,
)

logger = logging.getLogger(__name__)

_IMMUTABLE = frozenset({"id", "user_id", "created_at"}) | {p.column for p in PhaseKey}


class ProjectService:
    def __init__(self, session: AsyncSession,
                 policy: PhaseCompletionPolicy = PhaseCompletionPolicy.CORE) -> None:
        self._repo = ProjectRepository(session)
        self._guard = PhaseGuard(session)
        self._policy = policy

    def with_status(self, row: ProjectRow, today: date | None = None) -> ProjectWithStatus:
        project = Project.model_validate(row)
        return ProjectWithStatus(
            **project.model_dump(),
            derived_status=derive_status(row, self._policy, today),
            completion_percentage=completion_percentage(row, today),
            phases=phase_progress(row, self._policy),
        )

    async def require_owned(self, project_id: UUID, user_id: UUID) -> ProjectRow:
        row = await self._repo.get_owned(project_id, user_id)
        if row is None:
            raise NotFoundOrForbidden(
                "Project not found or you do not have permission to access it"
            )
        return row

    async def create(self, *, user_id: UUID, name: str, description: str | None = None,
                     start_date: date | None = None, end_date: date | None = None,
                     status: ProjectStatus = ProjectStatus.IN_PROGRESS) -> ProjectRow:
        row = await self._repo.create(
            project_id=new_uuid7(), user_id=user_id, name=name,
            description=description, start_date=start_date,
            end_date=end_date, status=status,
        )
        logger.info("Created project %s for user %s", row.id, user_id)
        return row

    async def list_for_user(self, user_id: UUID) -> list[ProjectRow]:
        return await self._repo.list_for_user(user_id)

    async def stats(self, user_id: UUID, today: date | None = None) -> ProjectStats:
        return project_stats(await self._repo.list_for_user(user_id), self._policy, today)

    async def update(self, project_id: UUID, changes: Mapping[str, Any], *,
                     user_id: UUID) -> ProjectRow:
        row = await self._repo.get_owned(project_id, user_id)
        if row is None:
            raise NotFoundOrForbidden(
                "Project not found or you do not have permission to update it"
            )
        updates = {k: v for k, v in changes.items() if k not in _IMMUTABLE}
        return await self._repo.update(row, **updates)

    async def delete(self, project_id: UUID, *, user_id: UUID) -> None:
        row = await self._repo.get_owned(project_id, user_id)
        if row is None:
            raise NotFoundOrForbidden(
                "Project not found or you do not have permission to delete it"
            )
        await self._repo.delete(row)
        logger.info("Deleted project %s", project_id)

    async def mark_phase_complete(self, project_id: UUID, phase: PhaseKey, *,
                                  user_id: UUID) -> ProjectRow:
        await self.require_owned(project_id, user_id)
        return await self._guard.mark_phase_complete(project_id, phase)

    async def unmark_phase_complete(self, project_id: UUID, phase: PhaseKey, *,
                                    user_id: UUID) -> ProjectRow:
        await self.require_owned(project_id, user_id)
        await self._guard.unmark_phase_complete(project_id, phase)
        return await self.require_owned(project_id, user_id)
