"""Boundary repository: project-scoped ISMS scoping units."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import BoundaryRow
from isms.models.common import utc_now
from isms.repositories.base import apply_changes


class BoundaryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, boundary_id: UUID, project_id: UUID, user_id: UUID,
                     name: str, type: str, description: str | None = None,
                     included: bool = True, notes: str | None = None,
                     asset_value_qualitative: str | None = None,
                     asset_value_quantitative: float | None = None) -> BoundaryRow:
        now = utc_now()
        row = BoundaryRow(
            id=boundary_id, project_id=project_id, user_id=user_id,
            name=name, type=type, description=description,
            included=included, notes=notes,
            asset_value_qualitative=asset_value_qualitative,
            asset_value_quantitative=asset_value_quantitative,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, boundary_id: UUID) -> BoundaryRow | None:
        return await self._session.get(BoundaryRow, boundary_id)

    async def get_in_project(self, project_id: UUID, boundary_id: UUID) -> BoundaryRow | None:
        result = await self._session.execute(
            select(BoundaryRow).where(
                BoundaryRow.id == boundary_id,
                BoundaryRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_by_name(self, project_id: UUID, name: str) -> BoundaryRow | None:
        result = await self._session.execute(
            select(BoundaryRow).where(
                BoundaryRow.project_id == project_id,
                BoundaryRow.name == name,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_project(self, project_id: UUID) -> list[BoundaryRow]:
        result = await self._session.execute(
            select(BoundaryRow)
            .where(BoundaryRow.project_id == project_id)
            .order_by(BoundaryRow.name)
        )
        return list(result.scalars().all())

    async def update(self, row: BoundaryRow, **changes) -> BoundaryRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: BoundaryRow) -> None:
        await self._session.delete(row)
        await self._session.flush()
