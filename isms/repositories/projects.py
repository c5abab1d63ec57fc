"""Project repository, including the per-phase completion timestamps."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import ProjectRow
from isms.models.common import PhaseKey, utc_now
from isms.repositories.base import apply_changes


class ProjectRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, project_id: UUID, user_id: UUID, name: str,
                     description: str | None = None,
                     start_date: date | None = None,
                     end_date: date | None = None,
                     status: str = "In Progress") -> ProjectRow:
        now = utc_now()
        row = ProjectRow(
            id=project_id, user_id=user_id, name=name,
            description=description, start_date=start_date,
            end_date=end_date, status=status,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def get(self, project_id: UUID) -> ProjectRow | None:
        return await self._session.get(ProjectRow, project_id)

    async def get_owned(self, project_id: UUID, user_id: UUID) -> ProjectRow | None:
        result = await self._session.execute(
            select(ProjectRow).where(
                ProjectRow.id == project_id,
                ProjectRow.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UUID) -> list[ProjectRow]:
        result = await self._session.execute(
            select(ProjectRow)
            .where(ProjectRow.user_id == user_id)
            .order_by(ProjectRow.created_at.desc())
        )
        return list(result.scalars().all())

    async def update(self, row: ProjectRow, **changes) -> ProjectRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: ProjectRow) -> None:
        await self._session.delete(row)
        await self._session.flush()

    # --- Phase completion ---

    async def get_phase_timestamps(self, project_id: UUID,
                                   phases: list[PhaseKey]) -> dict[PhaseKey, datetime | None]:
        """Fresh read of the given phase columns (bypasses the identity map)."""
        columns = [getattr(ProjectRow, phase.column) for phase in phases]
        result = await self._session.execute(
            select(*columns).where(ProjectRow.id == project_id)
        )
        values = result.one_or_none()
        if values is None:
            return {}
        return dict(zip(phases, values))

    async def set_phase_timestamp(self, project_id: UUID, phase: PhaseKey,
                                  value: datetime | None) -> ProjectRow | None:
        row = await self.get(project_id)
        if row is None:
            return None
        setattr(row, phase.column, value)
        row.updated_at = utc_now()
        await self._session.flush()
        await self._session.refresh(row)
        return row
