"""Control catalog and boundary-control (SOA) repositories.

Join queries return ``BoundaryControlWithDetails`` DTOs validated here,
so the workflow layer never sees raw row tuples.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from isms.db.tables import BoundaryControlRow, BoundaryRow, ControlRow
from isms.models.common import utc_now
from isms.models.soa import (
    BoundaryControl,
    BoundaryControlWithDetails,
    BoundaryRef,
    Control,
)
from isms.repositories.base import apply_changes


class ControlRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, control_id: UUID, reference: str, description: str,
                     domain: str | None = None) -> ControlRow:
        row = ControlRow(
            id=control_id, reference=reference, description=description,
            domain=domain, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, control_id: UUID) -> ControlRow | None:
        return await self._session.get(ControlRow, control_id)

    async def get_by_reference(self, reference: str) -> ControlRow | None:
        result = await self._session.execute(
            select(ControlRow).where(ControlRow.reference == reference)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[ControlRow]:
        result = await self._session.execute(
            select(ControlRow).order_by(ControlRow.reference)
        )
        return list(result.scalars().all())

    async def list_by_ids(self, control_ids: list[UUID]) -> list[ControlRow]:
        if not control_ids:
            return []
        result = await self._session.execute(
            select(ControlRow).where(ControlRow.id.in_(control_ids))
        )
        return list(result.scalars().all())


def _with_details(bc: BoundaryControlRow, control: ControlRow,
                  boundary: BoundaryRow | None) -> BoundaryControlWithDetails:
    base = BoundaryControl.model_validate(bc)
    return BoundaryControlWithDetails(
        **base.model_dump(),
        control=Control.model_validate(control),
        boundary=BoundaryRef.model_validate(boundary) if boundary is not None else None,
    )


class BoundaryControlRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, boundary_control_id: UUID, boundary_id: UUID,
                     control_id: UUID, user_id: UUID, is_applicable: bool = True,
                     reason_inclusion: str | None = None,
                     reason_exclusion: str | None = None,
                     status: str | None = None) -> BoundaryControlRow:
        now = utc_now()
        row = BoundaryControlRow(
            id=boundary_control_id, boundary_id=boundary_id,
            control_id=control_id, user_id=user_id,
            is_applicable=is_applicable,
            reason_inclusion=reason_inclusion,
            reason_exclusion=reason_exclusion,
            status=status, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, boundary_control_id: UUID) -> BoundaryControlRow | None:
        return await self._session.get(BoundaryControlRow, boundary_control_id)

    async def get_in_project(self, project_id: UUID,
                             boundary_control_id: UUID) -> BoundaryControlRow | None:
        result = await self._session.execute(
            select(BoundaryControlRow)
            .join(BoundaryRow, BoundaryRow.id == BoundaryControlRow.boundary_id)
            .where(
                BoundaryControlRow.id == boundary_control_id,
                BoundaryRow.project_id == project_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_pair(self, boundary_id: UUID, control_id: UUID) -> BoundaryControlRow | None:
        result = await self._session.execute(
            select(BoundaryControlRow).where(
                BoundaryControlRow.boundary_id == boundary_id,
                BoundaryControlRow.control_id == control_id,
            )
        )
        return result.scalar_one_or_none()

    async def control_ids_for_boundary(self, boundary_id: UUID) -> set[UUID]:
        result = await self._session.execute(
            select(BoundaryControlRow.control_id).where(
                BoundaryControlRow.boundary_id == boundary_id
            )
        )
        return set(result.scalars().all())

    async def list_for_boundary(self, boundary_id: UUID) -> list[BoundaryControlWithDetails]:
        result = await self._session.execute(
            select(BoundaryControlRow, ControlRow, BoundaryRow)
            .join(ControlRow, ControlRow.id == BoundaryControlRow.control_id)
            .join(BoundaryRow, BoundaryRow.id == BoundaryControlRow.boundary_id)
            .where(BoundaryControlRow.boundary_id == boundary_id)
            .order_by(ControlRow.reference)
        )
        return [_with_details(bc, c, b) for bc, c, b in result.all()]

    async def list_for_project(self, project_id: UUID) -> list[BoundaryControlWithDetails]:
        result = await self._session.execute(
            select(BoundaryControlRow, ControlRow, BoundaryRow)
            .join(ControlRow, ControlRow.id == BoundaryControlRow.control_id)
            .join(BoundaryRow, BoundaryRow.id == BoundaryControlRow.boundary_id)
            .where(BoundaryRow.project_id == project_id)
            .order_by(BoundaryRow.name, ControlRow.reference)
        )
        return [_with_details(bc, c, b) for bc, c, b in result.all()]

    async def get_with_details(self, boundary_control_id: UUID) -> BoundaryControlWithDetails | None:
        result = await self._session.execute(
            select(BoundaryControlRow, ControlRow, BoundaryRow)
            .join(ControlRow, ControlRow.id == BoundaryControlRow.control_id)
            .join(BoundaryRow, BoundaryRow.id == BoundaryControlRow.boundary_id)
            .where(BoundaryControlRow.id == boundary_control_id)
        )
        found = result.one_or_none()
        if found is None:
            return None
        return _with_details(*found)

    async def update(self, row: BoundaryControlRow, **changes) -> BoundaryControlRow:
        apply_changes(row, changes)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def delete(self, row: BoundaryControlRow) -> None:
        await self._session.delete(row)
        await self._session.flush()
