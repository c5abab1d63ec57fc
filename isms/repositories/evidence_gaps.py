"""Gap and evidence repositories."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import EvidenceRow, GapRow
from isms.models.common import utc_now
from isms.repositories.base import apply_changes


class GapRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, gap_id: UUID, project_id: UUID, control_id: UUID,
                     title: str, description: str, severity: str,
                     identified_by: UUID,
                     boundary_control_id: UUID | None = None,
                     status: str = "Identified") -> GapRow:
        now = utc_now()
        row = GapRow(
            id=gap_id, project_id=project_id, control_id=control_id,
            boundary_control_id=boundary_control_id,
            title=title, description=description, severity=severity,
            status=status, identified_by=identified_by,
            identified_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_in_project(self, project_id: UUID, gap_id: UUID) -> GapRow | None:
        result = await self._session.execute(
            select(GapRow).where(GapRow.id == gap_id, GapRow.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[GapRow]:
        result = await self._session.execute(
            select(GapRow)
            .where(GapRow.project_id == project_id)
            .order_by(GapRow.identified_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_boundary_control(self, boundary_control_id: UUID) -> list[GapRow]:
        result = await self._session.execute(
            select(GapRow)
            .where(GapRow.boundary_control_id == boundary_control_id)
            .order_by(GapRow.identified_at.desc())
        )
        return list(result.scalars().all())

    async def list_by_ids(self, gap_ids: list[UUID]) -> list[GapRow]:
        if not gap_ids:
            return []
        result = await self._session.execute(select(GapRow).where(GapRow.id.in_(gap_ids)))
        return list(result.scalars().all())

    async def update(self, row: GapRow, **changes) -> GapRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: GapRow) -> None:
        await self._session.delete(row)
        await self._session.flush()


class EvidenceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, evidence_id: UUID, project_id: UUID, control_id: UUID,
                     title: str, uploaded_by: UUID,
                     boundary_control_id: UUID | None = None,
                     description: str | None = None,
                     file_path: str | None = None,
                     file_name: str | None = None,
                     file_type: str | None = None) -> EvidenceRow:
        now = utc_now()
        row = EvidenceRow(
            id=evidence_id, project_id=project_id, control_id=control_id,
            boundary_control_id=boundary_control_id, title=title,
            description=description, file_path=file_path,
            file_name=file_name, file_type=file_type,
            uploaded_by=uploaded_by, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_in_project(self, project_id: UUID, evidence_id: UUID) -> EvidenceRow | None:
        result = await self._session.execute(
            select(EvidenceRow).where(
                EvidenceRow.id == evidence_id,
                EvidenceRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[EvidenceRow]:
        result = await self._session.execute(
            select(EvidenceRow)
            .where(EvidenceRow.project_id == project_id)
            .order_by(EvidenceRow.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_for_boundary_control(self, boundary_control_id: UUID) -> list[EvidenceRow]:
        result = await self._session.execute(
            select(EvidenceRow)
            .where(EvidenceRow.boundary_control_id == boundary_control_id)
            .order_by(EvidenceRow.created_at.desc())
        )
        return list(result.scalars().all())

    async def delete(self, row: EvidenceRow) -> None:
        await self._session.delete(row)
        await self._session.flush()
